"""Problem definitions: the ProblemSpec type and a library of test problems."""

from .base import ProblemSpec, DynamicsFunction, InPlaceDynamicsFunction
from .library import (
    linear_problem,
    linear_2d_problem,
    linear_system_problem,
    harmonic_oscillator_problem,
    lotka_volterra_problem,
    additive_noise_problem,
    geometric_brownian_problem,
    linear_2d_sde_problem,
    get_standard_problems,
)

__all__ = [
    "ProblemSpec",
    "DynamicsFunction",
    "InPlaceDynamicsFunction",
    "linear_problem",
    "linear_2d_problem",
    "linear_system_problem",
    "harmonic_oscillator_problem",
    "lotka_volterra_problem",
    "additive_noise_problem",
    "geometric_brownian_problem",
    "linear_2d_sde_problem",
    "get_standard_problems",
]
