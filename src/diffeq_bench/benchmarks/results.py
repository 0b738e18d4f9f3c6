"""Result containers and the efficiency/ranking policy.

Efficiency is ``1 / (error * time)``. The edge cases are fixed explicitly:

- zero error gives infinite efficiency; among several zero-error configs
  the lowest mean time wins;
- a zero measured time is replaced by ``MIN_MEASURABLE_TIME``;
- failed configs do not participate: efficiency and ratio are NaN;
- remaining ties go to the lowest configuration index.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ..errors import AllRunsFailedError


# Smallest wall time credited to a solve, in seconds
MIN_MEASURABLE_TIME = 1e-9


@dataclass(frozen=True)
class RunResult:
    """Outcome of a single solve.

    Attributes:
        config_name: Display name of the config.
        tolerance_index: Tolerance level the run belongs to.
        elapsed_time: Wall-clock seconds spent in the solve (NaN if failed).
        error: Error against the exact/reference solution (NaN if failed).
        succeeded: Whether the solve completed.
        failure_reason: Message of the SolveFailure, if any.
    """
    config_name: str
    tolerance_index: int
    elapsed_time: float
    error: float
    succeeded: bool
    failure_reason: str | None = None

    @classmethod
    def failed(cls, config_name: str, tolerance_index: int, reason: str) -> RunResult:
        return cls(
            config_name=config_name,
            tolerance_index=tolerance_index,
            elapsed_time=float('nan'),
            error=float('nan'),
            succeeded=False,
            failure_reason=reason,
        )

    def to_dict(self) -> dict:
        return {
            'config_name': self.config_name,
            'tolerance_index': self.tolerance_index,
            'elapsed_time': self.elapsed_time,
            'error': self.error,
            'succeeded': self.succeeded,
            'failure_reason': self.failure_reason,
        }


def efficiency(error: float, time: float) -> float:
    """Efficiency 1 / (error * time) with the zero-error and zero-time policy."""
    time = max(time, MIN_MEASURABLE_TIME)
    if error == 0:
        return float('inf')
    if np.isinf(error):
        return 0.0
    return 1.0 / (error * time)


@dataclass
class SummaryResult:
    """Aggregate of all repetitions of one (config, tolerance) cell.

    Attributes:
        config_name: Display name of the config.
        tolerance_index: Tolerance level of the cell.
        mean_time: Mean wall time over successful runs (NaN if none).
        error: Error estimate over successful runs (NaN if none). Mean
            for deterministic problems, RMS for stochastic ones.
        n_runs: Number of repetitions attempted.
        n_succeeded: Number of repetitions that completed.
        std_time: Standard deviation of the wall time over successful runs.
        failure: Set when every repetition failed.
        runs: The individual run results.
    """
    config_name: str
    tolerance_index: int
    mean_time: float
    error: float
    n_runs: int
    n_succeeded: int
    std_time: float = float('nan')
    failure: AllRunsFailedError | None = None
    runs: list[RunResult] = field(default_factory=list, repr=False)

    @classmethod
    def from_runs(
        cls,
        config_name: str,
        tolerance_index: int,
        runs: list[RunResult],
        stochastic: bool = False,
    ) -> SummaryResult:
        """Aggregate run results, averaging only over successes."""
        ok = [r for r in runs if r.succeeded]
        if not ok:
            reasons = list(dict.fromkeys(
                r.failure_reason for r in runs if r.failure_reason
            ))
            return cls(
                config_name=config_name,
                tolerance_index=tolerance_index,
                mean_time=float('nan'),
                error=float('nan'),
                n_runs=len(runs),
                n_succeeded=0,
                failure=AllRunsFailedError(config_name, tolerance_index, reasons),
                runs=list(runs),
            )

        times = np.array([r.elapsed_time for r in ok])
        errors = np.array([r.error for r in ok])
        if stochastic:
            error = float(np.sqrt(np.mean(errors**2)))
        else:
            error = float(np.mean(errors))

        return cls(
            config_name=config_name,
            tolerance_index=tolerance_index,
            mean_time=float(np.mean(times)),
            error=error,
            n_runs=len(runs),
            n_succeeded=len(ok),
            std_time=float(np.std(times)),
            runs=list(runs),
        )

    @property
    def succeeded(self) -> bool:
        """Whether at least one repetition completed."""
        return self.n_succeeded > 0

    @property
    def success_fraction(self) -> float:
        if self.n_runs == 0:
            return 0.0
        return self.n_succeeded / self.n_runs

    @property
    def efficiency(self) -> float:
        """1 / (error * time), or NaN for a failed cell."""
        if not self.succeeded:
            return float('nan')
        return efficiency(self.error, self.mean_time)

    @property
    def failure_reasons(self) -> list[str]:
        return list(dict.fromkeys(
            r.failure_reason for r in self.runs if r.failure_reason
        ))

    def to_dict(self) -> dict:
        """Convert to dictionary for reporting."""
        return {
            'config_name': self.config_name,
            'tolerance_index': self.tolerance_index,
            'mean_time': self.mean_time,
            'std_time': self.std_time,
            'error': self.error,
            'efficiency': self.efficiency,
            'n_runs': self.n_runs,
            'n_succeeded': self.n_succeeded,
            'success_fraction': self.success_fraction,
            'failure': str(self.failure) if self.failure else None,
            'failure_reasons': self.failure_reasons,
        }

    def summary(self) -> str:
        """Return a one-line summary string."""
        if not self.succeeded:
            return f"{self.config_name}: FAILED ({self.n_runs} runs)"
        return (
            f"{self.config_name}: time={self.mean_time:.3e}s, "
            f"error={self.error:.3e}, ok={self.n_succeeded}/{self.n_runs}"
        )


def rank(summaries: list[SummaryResult]) -> tuple[int | None, np.ndarray, np.ndarray, np.ndarray]:
    """Rank summaries by efficiency.

    Args:
        summaries: One summary per config, in config order.

    Returns:
        Tuple of (best_index, efficiencies, effratios, participating).
        ``best_index`` is None when nothing succeeded. Non-participating
        entries have NaN efficiency and ratio.
    """
    n = len(summaries)
    participating = np.array([s.succeeded for s in summaries], dtype=bool)
    efficiencies = np.array([s.efficiency for s in summaries], dtype=float)
    effratios = np.full(n, np.nan)
    times = np.array([
        max(s.mean_time, MIN_MEASURABLE_TIME) if s.succeeded else np.nan
        for s in summaries
    ])

    candidates = [i for i in range(n) if participating[i]]
    if not candidates:
        return None, efficiencies, effratios, participating

    zero_error = [i for i in candidates if np.isinf(efficiencies[i])]
    if zero_error:
        best = min(zero_error, key=lambda i: (times[i], i))
    else:
        best = max(candidates, key=lambda i: (efficiencies[i], -i))

    for i in candidates:
        if i == best:
            effratios[i] = 1.0
        elif np.isinf(efficiencies[best]):
            if np.isinf(efficiencies[i]):
                effratios[i] = times[i] / times[best]
            else:
                effratios[i] = np.inf
        elif efficiencies[i] == 0:
            effratios[i] = np.inf
        else:
            effratios[i] = efficiencies[best] / efficiencies[i]

    return best, efficiencies, effratios, participating


@dataclass(frozen=True, eq=False)
class ShootoutResult:
    """Per-config comparison at a single setting.

    Attributes:
        summaries: One summary per config, in config order.
        setting: The dt and/or tolerance the shootout was run at.
    """
    summaries: tuple[SummaryResult, ...]
    setting: dict = field(default_factory=dict)
    best_index: int | None = field(init=False)
    efficiencies: np.ndarray = field(init=False, repr=False)
    effratios: np.ndarray = field(init=False, repr=False)
    participating: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'summaries', tuple(self.summaries))
        best, eff, ratios, participating = rank(list(self.summaries))
        for arr in (eff, ratios, participating):
            arr.setflags(write=False)
        object.__setattr__(self, 'best_index', best)
        object.__setattr__(self, 'efficiencies', eff)
        object.__setattr__(self, 'effratios', ratios)
        object.__setattr__(self, 'participating', participating)

    @property
    def names(self) -> list[str]:
        return [s.config_name for s in self.summaries]

    @property
    def times(self) -> np.ndarray:
        return np.array([s.mean_time for s in self.summaries])

    @property
    def errors(self) -> np.ndarray:
        return np.array([s.error for s in self.summaries])

    @property
    def best(self) -> SummaryResult | None:
        if self.best_index is None:
            return None
        return self.summaries[self.best_index]

    @property
    def failed(self) -> list[SummaryResult]:
        """Summaries excluded from the ranking."""
        return [s for s in self.summaries if not s.succeeded]

    def __len__(self) -> int:
        return len(self.summaries)

    def to_dict(self) -> dict:
        """Convert to dictionary for reporting."""
        return {
            'setting': self.setting,
            'names': self.names,
            'best_index': self.best_index,
            'efficiencies': self.efficiencies.tolist(),
            'effratios': self.effratios.tolist(),
            'participating': self.participating.tolist(),
            'summaries': [s.to_dict() for s in self.summaries],
        }

    def summary(self) -> str:
        """Return a formatted summary table."""
        lines = [f"Shootout {self.setting}" if self.setting else "Shootout"]
        lines.append("=" * 50)
        for i, s in enumerate(self.summaries):
            if self.participating[i]:
                marker = "*" if i == self.best_index else " "
                lines.append(
                    f"{marker} {s.config_name:<20} time={s.mean_time:.3e}s "
                    f"error={s.error:.3e} ratio={self.effratios[i]:.3g}"
                )
            else:
                lines.append(f"  {s.config_name:<20} FAILED")
        if self.best is not None:
            lines.append(f"Best: {self.best.config_name}")
        return '\n'.join(lines)


@dataclass(frozen=True)
class WorkPrecisionResult:
    """Config x tolerance grid of summaries from a work-precision sweep.

    Attributes:
        names: Config display names, in config order.
        tolerances: (abstol, reltol) per level, in sweep order.
        summaries: ``summaries[i][j]`` is config i at level j.
    """
    names: tuple[str, ...]
    tolerances: tuple[tuple[float, float], ...]
    summaries: tuple[tuple[SummaryResult, ...], ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, 'names', tuple(self.names))
        object.__setattr__(self, 'tolerances', tuple(self.tolerances))
        object.__setattr__(self, 'summaries', tuple(tuple(row) for row in self.summaries))
        if len(self.summaries) != len(self.names):
            raise ValueError(
                f"Got {len(self.summaries)} rows for {len(self.names)} configs"
            )
        for row in self.summaries:
            if len(row) != len(self.tolerances):
                raise ValueError(
                    f"Row has {len(row)} cells for {len(self.tolerances)} levels"
                )

    @property
    def n_configs(self) -> int:
        return len(self.names)

    @property
    def n_levels(self) -> int:
        return len(self.tolerances)

    @property
    def shape(self) -> tuple[int, int]:
        return (self.n_configs, self.n_levels)

    def _grid(self, attr: str) -> np.ndarray:
        return np.array([
            [getattr(cell, attr) for cell in row] for row in self.summaries
        ], dtype=float).reshape(self.shape)

    @property
    def times(self) -> np.ndarray:
        """Mean times, shape (n_configs, n_levels); NaN for failed cells."""
        return self._grid('mean_time')

    @property
    def errors(self) -> np.ndarray:
        """Errors, shape (n_configs, n_levels); NaN for failed cells."""
        return self._grid('error')

    @property
    def efficiencies(self) -> np.ndarray:
        return self._grid('efficiency')

    def cell(self, config: int | str, level: int) -> SummaryResult:
        """Summary for one config (index or name) at one level."""
        i = self.names.index(config) if isinstance(config, str) else config
        return self.summaries[i][level]

    def failed_cells(self) -> list[tuple[int, int]]:
        """(config, level) indices of cells where every run failed."""
        return [
            (i, j)
            for i, row in enumerate(self.summaries)
            for j, cell in enumerate(row)
            if not cell.succeeded
        ]

    @property
    def is_complete(self) -> bool:
        return not self.failed_cells()

    def ranking_at(self, level: int) -> ShootoutResult:
        """Rank the configs at one reference tolerance level."""
        abstol, reltol = self.tolerances[level]
        return ShootoutResult(
            summaries=tuple(row[level] for row in self.summaries),
            setting={'level': level, 'abstol': abstol, 'reltol': reltol},
        )

    def best_index_at(self, level: int) -> int | None:
        return self.ranking_at(level).best_index

    def effratios_at(self, level: int) -> np.ndarray:
        return self.ranking_at(level).effratios

    def to_dict(self) -> dict:
        """Convert to dictionary for reporting."""
        return {
            'names': list(self.names),
            'tolerances': [list(t) for t in self.tolerances],
            'summaries': [[c.to_dict() for c in row] for row in self.summaries],
        }

    def summary(self) -> str:
        """Return a formatted summary string."""
        lines = [
            f"Work-precision: {self.n_configs} configs x {self.n_levels} tolerances",
            "=" * 50,
        ]
        for i, name in enumerate(self.names):
            lines.append(f"{name}:")
            for j, (abstol, reltol) in enumerate(self.tolerances):
                cell = self.summaries[i][j]
                tol = f"abstol={abstol:.0e}, reltol={reltol:.0e}"
                if cell.succeeded:
                    lines.append(
                        f"  [{tol}] time={cell.mean_time:.3e}s error={cell.error:.3e}"
                    )
                else:
                    lines.append(f"  [{tol}] FAILED")
        failed = self.failed_cells()
        if failed:
            lines.append(f"Failed cells: {failed}")
        return '\n'.join(lines)
