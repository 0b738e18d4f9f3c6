"""diffeq-bench: work-precision and shootout benchmarking for ODE/SDE integrators."""

from .errors import (
    BenchmarkError,
    ConfigurationError,
    SolveFailure,
    BudgetExceeded,
    AllRunsFailedError,
    DegenerateRankingError,
    BenchmarkWarning,
)
from .problems import ProblemSpec
from .dynamics import Trajectory
from .solvers import (
    SolverConfig,
    AdaptiveConfig,
    FixedStepConfig,
    SolverBinding,
    BindingRegistry,
    default_registry,
)
from .benchmarks import (
    MetricCollector,
    WorkPrecisionEngine,
    ShootoutEngine,
    ShootoutSet,
    SummaryResult,
    ShootoutResult,
    WorkPrecisionResult,
    estimate_order,
)

__version__ = "0.1.0"

__all__ = [
    "BenchmarkError",
    "ConfigurationError",
    "SolveFailure",
    "BudgetExceeded",
    "AllRunsFailedError",
    "DegenerateRankingError",
    "BenchmarkWarning",
    "ProblemSpec",
    "Trajectory",
    "SolverConfig",
    "AdaptiveConfig",
    "FixedStepConfig",
    "SolverBinding",
    "BindingRegistry",
    "default_registry",
    "MetricCollector",
    "WorkPrecisionEngine",
    "ShootoutEngine",
    "ShootoutSet",
    "SummaryResult",
    "ShootoutResult",
    "WorkPrecisionResult",
    "estimate_order",
]
