"""Plotting for benchmark results.

These helpers only read result objects; the engines never call them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import matplotlib.pyplot as plt

if TYPE_CHECKING:
    from ..benchmarks.convergence import ConvergenceResult
    from ..benchmarks.results import ShootoutResult, WorkPrecisionResult
    from ..dynamics.trajectory import Trajectory


def plot_work_precision(
    result: WorkPrecisionResult,
    ax: plt.Axes | None = None,
    **kwargs
) -> plt.Axes:
    """Plot error against mean time for every config, log-log.

    Failed cells are left out of each config's line.

    Args:
        result: Work-precision sweep result.
        ax: Matplotlib axes (creates new if None).
        **kwargs: Additional arguments to ax.loglog.

    Returns:
        The matplotlib axes.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    times = result.times
    errors = result.errors
    for i, name in enumerate(result.names):
        mask = np.isfinite(times[i]) & np.isfinite(errors[i]) & (errors[i] > 0)
        if not np.any(mask):
            continue
        ax.loglog(errors[i][mask], times[i][mask], 'o-', label=name, **kwargs)

    ax.set_xlabel('Error')
    ax.set_ylabel('Time (s)')
    ax.set_title('Work-Precision Diagram')
    ax.grid(True, which='both', alpha=0.3)
    ax.legend()

    return ax


def plot_shootout(
    result: ShootoutResult,
    ax: plt.Axes | None = None,
    color: str = 'steelblue',
    best_color: str = 'seagreen',
) -> plt.Axes:
    """Bar chart of efficiency ratios against the best config.

    Non-participating configs are drawn as hatched empty bars. Configs
    with an infinite ratio (beaten by a zero-error config) are capped at
    ten times the largest finite ratio and labelled 'inf'.

    Args:
        result: Shootout result.
        ax: Matplotlib axes (creates new if None).
        color: Bar colour.
        best_color: Colour of the winning config's bar.

    Returns:
        The matplotlib axes.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 5))

    positions = np.arange(len(result))
    ratios = result.effratios
    finite = ratios[np.isfinite(ratios)]
    cap = 10.0 * (finite.max() if finite.size else 1.0)

    for i, name in enumerate(result.names):
        if result.participating[i] and np.isinf(ratios[i]):
            ax.bar(positions[i], cap, color=color, hatch='xx', alpha=0.6)
            ax.annotate('inf', (positions[i], cap), ha='center', va='bottom')
        elif result.participating[i]:
            c = best_color if i == result.best_index else color
            ax.bar(positions[i], ratios[i], color=c)
        else:
            ax.bar(positions[i], 1.0, fill=False, hatch='//', edgecolor='gray')

    ax.set_xticks(positions)
    ax.set_xticklabels(result.names, rotation=30, ha='right')
    ax.set_yscale('log')
    ax.set_ylabel('Efficiency ratio (best / config)')
    ax.set_title(f'Shootout {result.setting}' if result.setting else 'Shootout')

    return ax


def plot_convergence(
    result: ConvergenceResult,
    ax: plt.Axes | None = None,
    **kwargs
) -> plt.Axes:
    """Plot error against step size with a reference slope."""
    if ax is None:
        fig, ax = plt.subplots()

    ax.loglog(result.dts, result.errors, 'o-', label=result.config_name, **kwargs)

    if np.isfinite(result.order):
        # Reference line through the first point
        ref = result.errors[0] * (result.dts / result.dts[0])**result.order
        ax.loglog(result.dts, ref, 'k--', alpha=0.5,
                  label=f'slope {result.order:.2f}')

    ax.set_xlabel('dt')
    ax.set_ylabel('Error')
    ax.legend()

    return ax


def plot_trajectory(
    trajectory: Trajectory,
    ax: plt.Axes | None = None,
    **kwargs
) -> plt.Axes:
    """Plot every state component of a trajectory against time."""
    if ax is None:
        fig, ax = plt.subplots()

    for d in range(trajectory.n_dims):
        ax.plot(trajectory.times, trajectory.states[:, d], label=f'u[{d}]', **kwargs)
    ax.set_xlabel('Time')
    ax.set_ylabel('State')

    return ax
