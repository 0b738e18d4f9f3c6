"""Benchmarking infrastructure for diffeq-bench.

This module provides tools for:
- Collecting timing and error statistics over repeated solves (MetricCollector)
- Work-precision sweeps across tolerance levels (WorkPrecisionEngine)
- Single-setting efficiency shootouts and rankings (ShootoutEngine, ShootoutSet)
- Empirical convergence order estimation (estimate_order)
"""

from .results import (
    MIN_MEASURABLE_TIME,
    RunResult,
    SummaryResult,
    ShootoutResult,
    WorkPrecisionResult,
    efficiency,
    rank,
)
from .metrics import (
    BenchmarkDefaults,
    DEFAULTS,
    MetricCollector,
    state_norm,
    trajectory_error,
)
from .work_precision import WorkPrecisionEngine, normalize_tolerances
from .shootout import ShootoutEngine, ShootoutSet, ShootoutSetResult
from .convergence import ConvergenceResult, estimate_order, fit_order

__all__ = [
    # Results
    'MIN_MEASURABLE_TIME',
    'RunResult',
    'SummaryResult',
    'ShootoutResult',
    'WorkPrecisionResult',
    'efficiency',
    'rank',
    # Metrics
    'BenchmarkDefaults',
    'DEFAULTS',
    'MetricCollector',
    'state_norm',
    'trajectory_error',
    # Engines
    'WorkPrecisionEngine',
    'normalize_tolerances',
    'ShootoutEngine',
    'ShootoutSet',
    'ShootoutSetResult',
    # Convergence
    'ConvergenceResult',
    'estimate_order',
    'fit_order',
]
