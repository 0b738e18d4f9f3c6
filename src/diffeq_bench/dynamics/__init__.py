"""Dynamics module: trajectories and the integrator backends."""

from .trajectory import Trajectory
from .integrators import (
    integrate_adaptive,
    integrate_fixed,
    integrate_sde,
    effective_step,
    FixedStepMethod,
    SDEMethod,
    ADAPTIVE_METHODS,
    DEFAULT_MAX_FIXED_STEPS,
)

__all__ = [
    "Trajectory",
    "integrate_adaptive",
    "integrate_fixed",
    "integrate_sde",
    "effective_step",
    "FixedStepMethod",
    "SDEMethod",
    "ADAPTIVE_METHODS",
    "DEFAULT_MAX_FIXED_STEPS",
]
