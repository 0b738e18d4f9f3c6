"""Empirical convergence order of fixed-step methods."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from ..dynamics import effective_step
from ..errors import ConfigurationError
from ..problems import ProblemSpec
from ..solvers import FixedStepConfig
from .metrics import MetricCollector
from .results import SummaryResult


@dataclass
class ConvergenceResult:
    """Errors over a step-size sequence and the fitted order.

    Attributes:
        config_name: Display name of the config.
        dts: Step sizes actually taken, in the order given. A requested dt
            that does not divide the time span is shrunk to one that does.
        errors: Error at each step size (NaN where every run failed).
        order: Slope of log(error) against log(dt), NaN if fewer than two
            usable points.
        summaries: The underlying summaries.
    """
    config_name: str
    dts: np.ndarray
    errors: np.ndarray
    order: float
    summaries: list[SummaryResult] = field(default_factory=list, repr=False)

    def to_dict(self) -> dict:
        return {
            'config_name': self.config_name,
            'dts': self.dts.tolist(),
            'errors': self.errors.tolist(),
            'order': self.order,
        }

    def summary(self) -> str:
        lines = [f"Convergence of {self.config_name}: order ~ {self.order:.2f}"]
        for dt, err in zip(self.dts, self.errors):
            lines.append(f"  dt={dt:.3e} error={err:.3e}")
        return '\n'.join(lines)


def fit_order(dts: np.ndarray, errors: np.ndarray) -> float:
    """Least-squares slope of log(error) against log(dt).

    Points with non-finite or non-positive error are skipped.
    """
    dts = np.asarray(dts, dtype=float)
    errors = np.asarray(errors, dtype=float)
    mask = np.isfinite(errors) & (errors > 0)
    if np.count_nonzero(mask) < 2:
        return float('nan')
    slope, _ = np.polyfit(np.log(dts[mask]), np.log(errors[mask]), 1)
    return float(slope)


def estimate_order(
    problem: ProblemSpec,
    config: FixedStepConfig,
    dts: Sequence[float],
    collector: MetricCollector | None = None,
    repetitions: int | None = None,
) -> ConvergenceResult:
    """Solve at each step size and fit the observed order of accuracy.

    For SDEs with the RMS error aggregate this estimates the strong order.
    The default collector solves a deterministic problem once per step size
    and a stochastic one ``DEFAULTS.stochastic_repetitions`` times.

    Raises:
        ConfigurationError: If the config is not fixed-step or dts is empty.
    """
    if not isinstance(config, FixedStepConfig):
        raise ConfigurationError(
            "convergence analysis needs a fixed-step config", config.name
        )
    dts = np.asarray(dts, dtype=float)
    if dts.size == 0:
        raise ConfigurationError("no step sizes given", config.name)

    if collector is None:
        collector = MetricCollector(repetitions=None if problem.stochastic else 1)
    collector.prepare(problem)

    summaries = [
        collector.measure(problem, config.with_dt(dt), repetitions=repetitions, tolerance_index=k)
        for k, dt in enumerate(dts)
    ]
    errors = np.array([s.error for s in summaries])
    steps = np.array([effective_step(problem.time_span, dt) for dt in dts])

    return ConvergenceResult(
        config_name=config.name,
        dts=steps,
        errors=errors,
        order=fit_order(steps, errors),
        summaries=summaries,
    )
