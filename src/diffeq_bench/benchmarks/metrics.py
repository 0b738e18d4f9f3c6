"""Metric collection: repeated solves, timing and error statistics."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Callable

import numpy as np

from ..dynamics import Trajectory
from ..errors import BenchmarkWarning, ConfigurationError, SolveFailure
from ..problems import ProblemSpec
from ..solvers import AdaptiveConfig, BindingRegistry, SolverConfig, default_registry
from .results import MIN_MEASURABLE_TIME, RunResult, SummaryResult


@dataclass(frozen=True)
class BenchmarkDefaults:
    """Default settings for benchmark runs.

    Attributes:
        repetitions: Solves per cell for deterministic problems.
        stochastic_repetitions: Solves per cell for stochastic problems,
            which have high run-to-run variance.
        reference_algorithm: Algorithm used for reference solutions when a
            problem has no analytic solution.
        reference_tolerance: abstol and reltol of the reference solve.
        min_measurable_time: Smallest wall time credited to a solve.
    """
    repetitions: int = 20
    stochastic_repetitions: int = 1000
    reference_algorithm: str = 'DOP853'
    reference_tolerance: float = 1e-13
    min_measurable_time: float = MIN_MEASURABLE_TIME


DEFAULTS = BenchmarkDefaults()

ERROR_NORMS = ('final', 'l2', 'linf')
STATE_NORMS = ('l2', 'linf', 'l1')


def state_norm(diff: np.ndarray, norm: str = 'l2') -> float:
    """Norm of a state difference vector.

    Args:
        diff: Difference between numerical and exact state, shape (n_dims,).
        norm: 'l2' (Euclidean), 'linf' (max abs) or 'l1' (sum of abs).
    """
    diff = np.asarray(diff, dtype=float).ravel()
    if norm == 'l2':
        return float(np.linalg.norm(diff))
    if norm == 'linf':
        return float(np.max(np.abs(diff)))
    if norm == 'l1':
        return float(np.sum(np.abs(diff)))
    raise ValueError(f"Unknown state norm: {norm}")


def trajectory_error(
    trajectory: Trajectory,
    exact: Callable[[float, np.ndarray | None], np.ndarray],
    error_norm: str = 'final',
    norm: str = 'l2',
) -> float:
    """Error of a trajectory against an exact solution.

    Args:
        trajectory: Numerical solution.
        exact: Callable (t, W) -> exact state; W is the Brownian value at t
            (None for ODE trajectories).
        error_norm: 'final' compares the end point only. 'l2' is the RMS of
            the pointwise errors over the saved time points and 'linf' their
            maximum.
        norm: State norm applied at each time point.

    Returns:
        Non-negative error.
    """
    def pointwise(i: int) -> float:
        W = None if trajectory.brownian is None else trajectory.brownian[i]
        return state_norm(trajectory.states[i] - exact(trajectory.times[i], W), norm)

    if error_norm == 'final':
        return pointwise(trajectory.n_points - 1)

    errors = np.array([pointwise(i) for i in range(trajectory.n_points)])
    if error_norm == 'l2':
        return float(np.sqrt(np.mean(errors**2)))
    if error_norm == 'linf':
        return float(np.max(errors))
    raise ValueError(f"Unknown error norm: {error_norm}")


class MetricCollector:
    """Runs a configured solve repeatedly and aggregates time and error.

    Failures of individual solves are recorded, never raised. A cell where
    every repetition failed comes back flagged with an AllRunsFailedError
    and a BenchmarkWarning is emitted.
    """

    def __init__(
        self,
        repetitions: int | None = None,
        error_norm: str = 'final',
        norm: str = 'l2',
        seed: int | None = None,
        reference: Trajectory | SolverConfig | None = None,
        registry: BindingRegistry | None = None,
        defaults: BenchmarkDefaults = DEFAULTS,
        verbose: bool = False,
    ):
        """Initialize the collector.

        Args:
            repetitions: Solves per cell. Defaults to
                ``defaults.repetitions`` for ODEs and
                ``defaults.stochastic_repetitions`` for SDEs.
            error_norm: 'final', 'l2' or 'linf' time-series error.
            norm: State norm, 'l2', 'linf' or 'l1'.
            seed: Base seed for stochastic solves; repetition i uses seed + i.
            reference: Reference trajectory (with dense output) or config
                used when a problem has no analytic solution.
            registry: Binding registry resolving algorithm ids.
            defaults: Default settings.
            verbose: Whether to print progress.
        """
        if error_norm not in ERROR_NORMS:
            raise ConfigurationError(
                f"error_norm must be one of {ERROR_NORMS}, got {error_norm!r}"
            )
        if norm not in STATE_NORMS:
            raise ConfigurationError(
                f"norm must be one of {STATE_NORMS}, got {norm!r}"
            )
        if repetitions is not None and repetitions < 1:
            raise ConfigurationError(f"repetitions must be positive, got {repetitions}")

        self.repetitions = repetitions
        self.error_norm = error_norm
        self.norm = norm
        self.seed = seed
        self.reference = reference
        self.registry = registry or default_registry()
        self.defaults = defaults
        self.verbose = verbose
        self._references: dict[int, tuple[ProblemSpec, Trajectory]] = {}

    @classmethod
    def for_stochastic(cls, **kwargs) -> MetricCollector:
        """Collector with the high repetition count used for SDE sweeps."""
        kwargs.setdefault('repetitions', DEFAULTS.stochastic_repetitions)
        return cls(**kwargs)

    def repetitions_for(self, problem: ProblemSpec) -> int:
        if self.repetitions is not None:
            return self.repetitions
        if problem.stochastic:
            return self.defaults.stochastic_repetitions
        return self.defaults.repetitions

    def prepare(self, problem: ProblemSpec) -> None:
        """Compute anything needed before solving, such as a reference.

        Called by the engines before dispatching cells so reference solves
        happen once, outside any timed region.

        Raises:
            ConfigurationError: If no exact or reference solution is possible.
        """
        if problem.has_analytic:
            return
        if problem.stochastic:
            raise ConfigurationError(
                f"Stochastic problem '{problem.name}' needs an analytic solution "
                "for error computation"
            )
        if id(problem) in self._references:
            return

        if isinstance(self.reference, Trajectory):
            reference = self.reference
        else:
            config = self.reference or AdaptiveConfig(
                algorithm=self.defaults.reference_algorithm,
                name='reference',
                abstol=self.defaults.reference_tolerance,
                reltol=self.defaults.reference_tolerance,
                dense_output=True,
            )
            binding = self.registry.validate(problem, config)
            if self.verbose:
                print(f"Computing reference solution for {problem.name} "
                      f"with {config.name}...", flush=True)
            try:
                reference, _ = binding.solve(problem, config)
            except SolveFailure as exc:
                raise ConfigurationError(
                    f"Reference solve for '{problem.name}' failed: {exc}",
                    config.name,
                ) from exc
        self._references[id(problem)] = (problem, reference)

    def exact_solution(self, problem: ProblemSpec) -> Callable[[float, np.ndarray | None], np.ndarray]:
        """Callable (t, W) -> exact or reference state for the problem."""
        if problem.has_analytic:
            return problem.exact
        self.prepare(problem)
        _, reference = self._references[id(problem)]

        def from_reference(t: float, W: np.ndarray | None = None) -> np.ndarray:
            return reference.interpolate(t)
        return from_reference

    def measure(
        self,
        problem: ProblemSpec,
        config: SolverConfig,
        repetitions: int | None = None,
        tolerance_index: int = 0,
    ) -> SummaryResult:
        """Solve ``repetitions`` times and aggregate the results.

        Args:
            problem: Problem to solve.
            config: Solver configuration.
            repetitions: Override the collector's repetition count.
            tolerance_index: Level recorded on the results.

        Returns:
            SummaryResult; flagged as failed if no repetition completed.

        Raises:
            ConfigurationError: If the config cannot run on this problem.
        """
        n = repetitions if repetitions is not None else self.repetitions_for(problem)
        if n < 1:
            raise ConfigurationError(f"repetitions must be positive, got {n}", config.name)

        binding = self.registry.validate(problem, config)
        exact = self.exact_solution(problem)

        runs = []
        for i in range(n):
            seed = None if self.seed is None else self.seed + i
            try:
                trajectory, wall_time = binding.solve(problem, config, seed=seed)
                error = trajectory_error(trajectory, exact, self.error_norm, self.norm)
                if not np.isfinite(error):
                    raise SolveFailure(f"{config.name} gave a non-finite error")
            except SolveFailure as exc:
                runs.append(RunResult.failed(config.name, tolerance_index, str(exc)))
                continue
            runs.append(RunResult(
                config_name=config.name,
                tolerance_index=tolerance_index,
                elapsed_time=max(wall_time, self.defaults.min_measurable_time),
                error=error,
                succeeded=True,
            ))

        summary = SummaryResult.from_runs(
            config.name, tolerance_index, runs, stochastic=problem.stochastic
        )

        if summary.failure is not None:
            warnings.warn(str(summary.failure), BenchmarkWarning, stacklevel=2)

        if self.verbose:
            print(f"  {summary.summary()} [level {tolerance_index}]", flush=True)

        return summary
