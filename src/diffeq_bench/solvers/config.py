"""Solver configurations, one variant per integrator family.

Adaptive configs carry tolerances; fixed-step configs carry a step size or a
table of step sizes indexed by tolerance level. Both are validated when
constructed, so a malformed config never reaches a solve.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace

import numpy as np

from ..errors import ConfigurationError


@dataclass(frozen=True)
class SolverConfig(ABC):
    """Options shared by every integrator family.

    Attributes:
        algorithm: Algorithm id resolved by the binding registry.
        name: Display name; defaults to the algorithm id.
        dense_output: Request a continuous interpolant.
        save_every_step: Store every step, or only the end points.
        max_steps: Abort a run after this many steps.
        max_wall_time: Abort a run after this many seconds.
    """
    algorithm: str
    name: str = ""
    dense_output: bool = False
    save_every_step: bool = True
    max_steps: int | None = None
    max_wall_time: float | None = None

    def __post_init__(self) -> None:
        if not self.algorithm:
            raise ConfigurationError("Config has no algorithm")
        if not self.name:
            object.__setattr__(self, 'name', self.algorithm)
        if self.max_steps is not None and self.max_steps < 1:
            raise ConfigurationError(
                f"max_steps must be positive, got {self.max_steps}", self.name
            )
        if self.max_wall_time is not None and not self.max_wall_time > 0:
            raise ConfigurationError(
                f"max_wall_time must be positive, got {self.max_wall_time}",
                self.name,
            )
        self._validate()

    @abstractmethod
    def _validate(self) -> None:
        ...

    @property
    @abstractmethod
    def adaptive(self) -> bool:
        """Whether the family adapts its step size at runtime."""
        ...

    @abstractmethod
    def for_level(
        self,
        level: int,
        n_levels: int,
        abstol: float,
        reltol: float,
    ) -> SolverConfig:
        """Config to use at one level of a tolerance sweep."""
        ...

    @abstractmethod
    def with_setting(
        self,
        dt: float | None = None,
        tolerance: tuple[float, float] | None = None,
    ) -> SolverConfig:
        """Config with a shootout-wide step size or tolerance applied.

        Each family picks up only the setting it understands.
        """
        ...

    def to_dict(self) -> dict:
        """Convert to dictionary for reporting."""
        return {
            'algorithm': self.algorithm,
            'name': self.name,
            'adaptive': self.adaptive,
            'dense_output': self.dense_output,
            'save_every_step': self.save_every_step,
            'max_steps': self.max_steps,
            'max_wall_time': self.max_wall_time,
        }


@dataclass(frozen=True)
class AdaptiveConfig(SolverConfig):
    """Config for an adaptive integrator.

    Attributes:
        abstol: Absolute tolerance.
        reltol: Relative tolerance.
        max_step: Optional cap on the step size.
    """
    abstol: float | None = 1e-6
    reltol: float | None = 1e-3
    max_step: float | None = None

    def _validate(self) -> None:
        for label, value in (('abstol', self.abstol), ('reltol', self.reltol)):
            if value is None or not value > 0:
                raise ConfigurationError(
                    f"adaptive config requires a positive {label}, got {value}",
                    self.name,
                )
        if self.max_step is not None and not self.max_step > 0:
            raise ConfigurationError(
                f"max_step must be positive, got {self.max_step}", self.name
            )

    @property
    def adaptive(self) -> bool:
        return True

    def with_tolerance(self, abstol: float, reltol: float) -> AdaptiveConfig:
        return replace(self, abstol=abstol, reltol=reltol)

    def for_level(self, level, n_levels, abstol, reltol) -> AdaptiveConfig:
        return self.with_tolerance(abstol, reltol)

    def with_setting(self, dt=None, tolerance=None) -> AdaptiveConfig:
        if tolerance is None:
            return self
        return self.with_tolerance(*tolerance)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update(abstol=self.abstol, reltol=self.reltol, max_step=self.max_step)
        return d


@dataclass(frozen=True)
class FixedStepConfig(SolverConfig):
    """Config for a fixed-step integrator.

    Fixed-step methods have no tolerance parameter, so a tolerance sweep maps
    each level to an entry of ``dts``. The table is supplied by the caller.

    Attributes:
        dt: Step size used outside of tolerance sweeps.
        dts: Step size per tolerance level.
    """
    dt: float | None = None
    dts: tuple[float, ...] | None = None

    def _validate(self) -> None:
        if self.dt is None and self.dts is None:
            raise ConfigurationError(
                "fixed-step config requires dt or a dts table", self.name
            )
        if self.dt is not None and not self.dt > 0:
            raise ConfigurationError(
                f"dt must be positive, got {self.dt}", self.name
            )
        if self.dts is not None:
            dts = tuple(float(h) for h in np.atleast_1d(self.dts))
            if len(dts) == 0 or not all(h > 0 for h in dts):
                raise ConfigurationError(
                    f"dts must be a non-empty sequence of positive step sizes, "
                    f"got {self.dts}",
                    self.name,
                )
            object.__setattr__(self, 'dts', dts)

    @property
    def adaptive(self) -> bool:
        return False

    @property
    def n_levels(self) -> int | None:
        """Length of the step-size table, if one was given."""
        return None if self.dts is None else len(self.dts)

    def with_dt(self, dt: float) -> FixedStepConfig:
        return replace(self, dt=dt, dts=None)

    def for_level(self, level, n_levels, abstol, reltol) -> FixedStepConfig:
        if self.dts is None:
            if n_levels == 1:
                return self
            raise ConfigurationError(
                f"fixed-step config needs a dts table with {n_levels} entries "
                "for a tolerance sweep",
                self.name,
            )
        if len(self.dts) != n_levels:
            raise ConfigurationError(
                f"dts table has {len(self.dts)} entries but the sweep has "
                f"{n_levels} tolerance levels",
                self.name,
            )
        return self.with_dt(self.dts[level])

    def with_setting(self, dt=None, tolerance=None) -> FixedStepConfig:
        if dt is None:
            if self.dt is None:
                raise ConfigurationError(
                    "fixed-step config has only a dts table; pass a dt", self.name
                )
            return self
        return self.with_dt(dt)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update(dt=self.dt, dts=list(self.dts) if self.dts is not None else None)
        return d
