"""Exception and warning types for the benchmarking harness.

Configuration problems fail fast, before any solve is attempted. Failures
of individual solves are recovered by the metric collector and recorded as
data; only empty rankings propagate to the caller as a hard failure.
"""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for all harness errors."""


class ConfigurationError(BenchmarkError, ValueError):
    """A solver config or problem is malformed or incompatible.

    Attributes:
        config_name: Display name of the offending config, if any.
    """

    def __init__(self, message: str, config_name: str | None = None):
        if config_name is not None:
            message = f"[{config_name}] {message}"
        super().__init__(message)
        self.config_name = config_name


class SolveFailure(BenchmarkError, RuntimeError):
    """A single solve did not complete.

    Raised by bindings for divergence, non-finite states, step-size
    underflow, exhausted step/wall-time budgets, or errors raised by the
    problem's own dynamics.
    """


class BudgetExceeded(SolveFailure):
    """A solve ran past its step-count or wall-clock budget."""


class AllRunsFailedError(BenchmarkError):
    """Every repetition of a (config, tolerance) cell failed.

    Instances are attached to the failed summary rather than raised.

    Attributes:
        config_name: Display name of the config.
        tolerance_index: Tolerance level of the cell.
        reasons: Distinct failure messages seen across repetitions.
    """

    def __init__(self, config_name: str, tolerance_index: int, reasons: list[str]):
        self.config_name = config_name
        self.tolerance_index = tolerance_index
        self.reasons = reasons
        detail = "; ".join(reasons) if reasons else "no reason recorded"
        super().__init__(
            f"All runs of '{config_name}' at tolerance level {tolerance_index} "
            f"failed: {detail}"
        )


class DegenerateRankingError(BenchmarkError, RuntimeError):
    """No config succeeded, so there is nothing to rank."""


class BenchmarkWarning(RuntimeWarning):
    """Warning category for recoverable benchmark outcomes."""
