"""Solver configurations and the bindings that run them."""

from .config import SolverConfig, AdaptiveConfig, FixedStepConfig
from .bindings import (
    SolverBinding,
    ScipyODEBinding,
    FixedStepODEBinding,
    SDEBinding,
    BindingRegistry,
    default_registry,
)

__all__ = [
    "SolverConfig",
    "AdaptiveConfig",
    "FixedStepConfig",
    "SolverBinding",
    "ScipyODEBinding",
    "FixedStepODEBinding",
    "SDEBinding",
    "BindingRegistry",
    "default_registry",
]
