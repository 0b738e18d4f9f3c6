"""Work-precision sweeps: every config across a sequence of tolerances."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

import numpy as np

from ..errors import ConfigurationError
from ..problems import ProblemSpec
from ..solvers import BindingRegistry, SolverConfig
from .metrics import MetricCollector
from .results import SummaryResult, WorkPrecisionResult


def normalize_tolerance(tol: float | tuple[float, float]) -> tuple[float, float]:
    """Turn one tolerance level into an (abstol, reltol) pair.

    Accepts a number (abstol == reltol) or any length-2 sequence,
    including a numpy array.

    Raises:
        ConfigurationError: If the level is malformed or not positive.
    """
    try:
        values = np.asarray(tol, dtype=float)
    except (TypeError, ValueError):
        raise ConfigurationError(f"tolerance levels must be numbers, got {tol!r}") from None
    if values.ndim == 0:
        abstol = reltol = float(values)
    elif values.shape == (2,):
        abstol, reltol = float(values[0]), float(values[1])
    else:
        raise ConfigurationError(
            f"tolerance levels must be (abstol, reltol) pairs, got {tol!r}"
        )
    if not (abstol > 0 and reltol > 0):
        raise ConfigurationError(f"tolerances must be positive, got {tol!r}")
    return abstol, reltol


def normalize_tolerances(
    tolerances: Sequence[float | tuple[float, float]],
) -> tuple[tuple[float, float], ...]:
    """Turn a tolerance sequence into (abstol, reltol) pairs.

    A bare number means abstol == reltol. A 2D array is read row by row.

    Raises:
        ConfigurationError: If the sequence is empty or has a bad level.
    """
    if np.isscalar(tolerances):
        raise ConfigurationError(
            f"tolerances must be a sequence of levels, got {tolerances!r}"
        )
    levels = tuple(normalize_tolerance(tol) for tol in tolerances)
    if not levels:
        raise ConfigurationError("tolerance sequence is empty")
    return levels


def check_unique_names(configs: Sequence[SolverConfig]) -> None:
    """Raise ConfigurationError if two configs share a display name."""
    seen = set()
    for config in configs:
        if config.name in seen:
            raise ConfigurationError(
                "duplicate config name; give each config a distinct name",
                config.name,
            )
        seen.add(config.name)


class WorkPrecisionEngine:
    """Runs each config at each tolerance level and collects a grid.

    Adaptive configs get the level's tolerances. Fixed-step configs use the
    entry of their ``dts`` table at the level's index. All configs are
    validated against the problem before the first solve.

    Cells are independent. By default they run sequentially so timings are
    not contended; ``n_workers > 1`` runs them on a thread pool.
    """

    def __init__(
        self,
        collector: MetricCollector | None = None,
        registry: BindingRegistry | None = None,
        n_workers: int = 1,
        verbose: bool = False,
    ):
        """Initialize the engine.

        Args:
            collector: Metric collector; a default one is built if None.
            registry: Binding registry for the default collector.
            n_workers: Worker threads for independent cells.
            verbose: Whether to print progress.
        """
        if n_workers < 1:
            raise ConfigurationError(f"n_workers must be positive, got {n_workers}")
        self.collector = collector or MetricCollector(registry=registry, verbose=verbose)
        self.n_workers = n_workers
        self.verbose = verbose

    def plan(
        self,
        problem: ProblemSpec,
        configs: Sequence[SolverConfig],
        tolerances: Sequence[float | tuple[float, float]],
    ) -> list[list[SolverConfig]]:
        """Resolve the config used in every cell and validate all of them.

        Returns:
            ``cells[i][j]`` is the config for config i at level j.

        Raises:
            ConfigurationError: On any invalid config or mismatch.
        """
        configs = list(configs)
        if not configs:
            raise ConfigurationError("no configs to benchmark")
        check_unique_names(configs)
        levels = normalize_tolerances(tolerances)

        cells = []
        for config in configs:
            row = [
                config.for_level(j, len(levels), abstol, reltol)
                for j, (abstol, reltol) in enumerate(levels)
            ]
            for cell in row:
                self.collector.registry.validate(problem, cell)
            cells.append(row)
        return cells

    def run(
        self,
        problem: ProblemSpec,
        configs: Sequence[SolverConfig],
        tolerances: Sequence[float | tuple[float, float]],
        repetitions: int | None = None,
    ) -> WorkPrecisionResult:
        """Run the sweep.

        Args:
            problem: Problem shared read-only by every cell.
            configs: Configs to compare.
            tolerances: Ordered tolerance levels, (abstol, reltol) or a number.
            repetitions: Solves per cell; the collector's default if None.

        Returns:
            WorkPrecisionResult with one cell per (config, level). Failed
            cells are kept and flagged.

        Raises:
            ConfigurationError: On any invalid config, before solving.
        """
        levels = normalize_tolerances(tolerances)
        cells = self.plan(problem, configs, levels)
        self.collector.prepare(problem)

        if self.verbose:
            print(f"\nWork-precision on {problem.name}: "
                  f"{len(cells)} configs x {len(levels)} tolerances", flush=True)
            print("=" * 50, flush=True)

        jobs = [
            (i, j, cell)
            for i, row in enumerate(cells)
            for j, cell in enumerate(row)
        ]

        def measure(job) -> SummaryResult:
            _, j, cell = job
            return self.collector.measure(
                problem, cell, repetitions=repetitions, tolerance_index=j
            )

        if self.n_workers == 1:
            summaries = [measure(job) for job in jobs]
        else:
            with ThreadPoolExecutor(max_workers=self.n_workers) as pool:
                summaries = list(pool.map(measure, jobs))

        grid = [[None] * len(levels) for _ in cells]
        for (i, j, _), summary in zip(jobs, summaries):
            grid[i][j] = summary

        result = WorkPrecisionResult(
            names=tuple(row[0].name for row in cells),
            tolerances=levels,
            summaries=grid,
        )

        if self.verbose:
            print("=" * 50, flush=True)
            print(f"Sweep complete, failed cells: {result.failed_cells() or 'none'}", flush=True)

        return result
