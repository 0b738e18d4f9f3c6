"""Solver bindings: a uniform ``solve`` over heterogeneous integrator families.

Each binding adapts one family of integrators. New algorithms are added by
registering another binding with a :class:`BindingRegistry`; the engines
never branch on algorithm names.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

import numpy as np

from ..dynamics import (
    ADAPTIVE_METHODS,
    FixedStepMethod,
    SDEMethod,
    Trajectory,
    integrate_adaptive,
    integrate_fixed,
    integrate_sde,
)
from ..errors import BenchmarkError, ConfigurationError, SolveFailure
from ..problems import ProblemSpec
from .config import AdaptiveConfig, FixedStepConfig, SolverConfig


class SolverBinding(ABC):
    """Adapter from (problem, config) to one external integrator family.

    Subclasses declare the algorithm ids they serve and implement
    :meth:`_integrate`. Timing, failure translation and result checks are
    shared.
    """

    #: Algorithm ids served by this binding.
    algorithms: tuple[str, ...] = ()

    #: Config variant accepted by this binding.
    config_type: type[SolverConfig] = SolverConfig

    #: Whether the family integrates SDEs (True) or ODEs (False).
    stochastic: bool = False

    def supports(self, problem: ProblemSpec, config: SolverConfig) -> None:
        """Check that this binding can solve ``problem`` with ``config``.

        Raises:
            ConfigurationError: If the combination is not supported.
        """
        if config.algorithm not in self.algorithms:
            raise ConfigurationError(
                f"algorithm '{config.algorithm}' is not served by "
                f"{type(self).__name__}",
                config.name,
            )
        if not isinstance(config, self.config_type):
            raise ConfigurationError(
                f"algorithm '{config.algorithm}' requires a "
                f"{self.config_type.__name__}, got {type(config).__name__}",
                config.name,
            )
        if problem.stochastic != self.stochastic:
            kind = "stochastic" if problem.stochastic else "deterministic"
            raise ConfigurationError(
                f"algorithm '{config.algorithm}' cannot solve the {kind} "
                f"problem '{problem.name}'",
                config.name,
            )
        self._check(problem, config)

    def _check(self, problem: ProblemSpec, config: SolverConfig) -> None:
        """Family-specific compatibility checks."""

    def solve(
        self,
        problem: ProblemSpec,
        config: SolverConfig,
        seed: int | None = None,
    ) -> tuple[Trajectory, float]:
        """Solve the problem once.

        Wall-clock time covers only the integrator call; building the
        right-hand side and checking the result are excluded.

        Args:
            problem: Problem to solve. Never mutated.
            config: Solver configuration.
            seed: Seed for the noise of stochastic solves.

        Returns:
            Tuple of (trajectory, wall_time in seconds).

        Raises:
            ConfigurationError: If the config is incompatible with the problem.
            SolveFailure: If the solve did not complete.
        """
        self.supports(problem, config)
        call = self._prepare(problem, config, seed)

        start = time.perf_counter()
        try:
            trajectory = call()
        except BenchmarkError:
            raise
        except Exception as exc:
            # Errors raised inside the problem's own dynamics
            raise SolveFailure(
                f"{config.name} raised {type(exc).__name__}: {exc}"
            ) from exc
        wall_time = time.perf_counter() - start

        if not trajectory.is_finite:
            raise SolveFailure(f"{config.name} returned a non-finite trajectory")
        if not np.isclose(trajectory.t_end, problem.t1):
            raise SolveFailure(
                f"{config.name} stopped at t={trajectory.t_end:.6g} before "
                f"t1={problem.t1:.6g}"
            )
        return trajectory, wall_time

    @abstractmethod
    def _prepare(self, problem: ProblemSpec, config: SolverConfig, seed: int | None):
        """Return a zero-argument callable that runs the integrator."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(algorithms={list(self.algorithms)})"


class ScipyODEBinding(SolverBinding):
    """Adaptive ODE methods from scipy.integrate."""

    algorithms = tuple(ADAPTIVE_METHODS)
    config_type = AdaptiveConfig

    def _prepare(self, problem, config, seed):
        f = problem.rhs()

        def call() -> Trajectory:
            return integrate_adaptive(
                f, problem.initial_state, problem.time_span,
                method=config.algorithm,
                rtol=config.reltol,
                atol=config.abstol,
                dense_output=config.dense_output,
                save_every_step=config.save_every_step,
                max_step=config.max_step,
                max_steps=config.max_steps,
                max_wall_time=config.max_wall_time,
            )
        return call


class FixedStepODEBinding(SolverBinding):
    """Reference fixed-step ODE methods (Euler, Midpoint, RK4)."""

    algorithms = tuple(m.value for m in FixedStepMethod)
    config_type = FixedStepConfig

    def _check(self, problem, config):
        if config.dt is None:
            raise ConfigurationError(
                "fixed-step solve needs a dt; pick a level of the dts table first",
                config.name,
            )

    def _prepare(self, problem, config, seed):
        f = problem.rhs()
        method = FixedStepMethod(config.algorithm)

        def call() -> Trajectory:
            return integrate_fixed(
                f, problem.initial_state, problem.time_span,
                method=method,
                dt=config.dt,
                dense_output=config.dense_output,
                save_every_step=config.save_every_step,
                max_steps=config.max_steps,
                max_wall_time=config.max_wall_time,
            )
        return call


class SDEBinding(SolverBinding):
    """Reference fixed-step SDE methods (Euler-Maruyama, Milstein)."""

    algorithms = tuple(m.value for m in SDEMethod)
    config_type = FixedStepConfig
    stochastic = True

    def _check(self, problem, config):
        if config.dt is None:
            raise ConfigurationError(
                "fixed-step solve needs a dt; pick a level of the dts table first",
                config.name,
            )
        if config.dense_output:
            raise ConfigurationError(
                "dense output is not available for SDE methods", config.name
            )

    def _prepare(self, problem, config, seed):
        f = problem.rhs()
        g = problem.noise()
        method = SDEMethod(config.algorithm)
        rng = np.random.default_rng(seed)

        def call() -> Trajectory:
            return integrate_sde(
                f, g, problem.initial_state, problem.time_span,
                method=method,
                dt=config.dt,
                rng=rng,
                save_every_step=config.save_every_step,
                max_steps=config.max_steps,
                max_wall_time=config.max_wall_time,
            )
        return call


class BindingRegistry:
    """Maps algorithm ids to the binding that serves them."""

    def __init__(self, bindings: list[SolverBinding] | None = None):
        self._bindings: dict[str, SolverBinding] = {}
        for binding in bindings or []:
            self.register(binding)

    def register(self, binding: SolverBinding) -> None:
        """Register a binding for every algorithm it declares.

        Later registrations replace earlier ones for the same id.
        """
        if not binding.algorithms:
            raise ValueError(f"{binding!r} declares no algorithms")
        for algorithm in binding.algorithms:
            self._bindings[algorithm] = binding

    def resolve(self, config: SolverConfig) -> SolverBinding:
        """Find the binding for a config.

        Raises:
            ConfigurationError: If no binding serves the config's algorithm.
        """
        try:
            return self._bindings[config.algorithm]
        except KeyError:
            raise ConfigurationError(
                f"unknown algorithm '{config.algorithm}'; known algorithms: "
                f"{sorted(self._bindings)}",
                config.name,
            ) from None

    def validate(self, problem: ProblemSpec, config: SolverConfig) -> SolverBinding:
        """Resolve a config and check it against a problem."""
        binding = self.resolve(config)
        binding.supports(problem, config)
        return binding

    @property
    def algorithms(self) -> list[str]:
        return sorted(self._bindings)

    def __contains__(self, algorithm: str) -> bool:
        return algorithm in self._bindings


def default_registry() -> BindingRegistry:
    """Registry with the bundled integrator families."""
    return BindingRegistry([
        ScipyODEBinding(),
        FixedStepODEBinding(),
        SDEBinding(),
    ])
