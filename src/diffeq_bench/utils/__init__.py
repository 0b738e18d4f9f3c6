"""Utility functions for visualization and helpers."""

from .visualization import (
    plot_work_precision,
    plot_shootout,
    plot_convergence,
    plot_trajectory,
)

__all__ = [
    "plot_work_precision",
    "plot_shootout",
    "plot_convergence",
    "plot_trajectory",
]
