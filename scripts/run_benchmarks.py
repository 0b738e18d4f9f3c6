#!/usr/bin/env python3
"""Run the standard diffeq-bench benchmarks.

This script runs:
1. Work-precision sweep of adaptive and fixed-step ODE methods
2. Fixed-step ODE shootout at dt = 1/64
3. SDE shootout (Euler-Maruyama vs Milstein) on geometric Brownian motion
4. Convergence order checks for the fixed-step methods

Usage:
    python scripts/run_benchmarks.py [--quick] [--save] [--outdir DIR]

Options:
    --quick        Fewer repetitions and tolerance levels
    --save         Save figures
    --outdir       Output directory (default: ./results/benchmarks)
    --workers      Worker threads for the work-precision sweep
"""

from __future__ import annotations

import argparse
import time
from pathlib import Path

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from diffeq_bench import (
    AdaptiveConfig,
    FixedStepConfig,
    MetricCollector,
    ShootoutEngine,
    WorkPrecisionEngine,
    estimate_order,
)
from diffeq_bench.problems import geometric_brownian_problem, linear_2d_problem, linear_problem
from diffeq_bench.utils import plot_convergence, plot_shootout, plot_work_precision


def run_work_precision(
    quick: bool = True,
    repetitions: int = 20,
    n_workers: int = 1,
    verbose: bool = True,
):
    """Work-precision sweep on the 2D linear problem."""
    if verbose:
        print("\n" + "=" * 60)
        print("Work-Precision: linear_2d")
        print("=" * 60)

    n_levels = 4 if quick else 7
    exponents = np.arange(3, 3 + n_levels)
    tolerances = [(10.0**-(e + 3), 10.0**-e) for e in exponents]
    dts = tuple(2.0**-(k + 3) for k in range(n_levels))

    configs = [
        AdaptiveConfig('RK23'),
        AdaptiveConfig('RK45'),
        AdaptiveConfig('DOP853'),
        FixedStepConfig('RK4', dts=dts),
    ]

    engine = WorkPrecisionEngine(
        collector=MetricCollector(repetitions=repetitions),
        n_workers=n_workers,
        verbose=verbose,
    )
    result = engine.run(linear_2d_problem(), configs, tolerances)

    if verbose:
        print(result.summary())
        ranking = result.ranking_at(n_levels - 1)
        print(f"\nBest at tightest tolerance: {ranking.best.config_name}")

    return result


def run_ode_shootout(repetitions: int = 20, verbose: bool = True):
    """Fixed-step shootout on scalar exponential growth, dense output on/off."""
    configs = [
        FixedStepConfig('Euler', dt=1 / 64),
        FixedStepConfig('Midpoint', dt=1 / 64),
        FixedStepConfig('RK4', dt=1 / 64),
        FixedStepConfig('RK4', name='RK4 (dense)', dt=1 / 64, dense_output=True),
    ]
    engine = ShootoutEngine(collector=MetricCollector(repetitions=repetitions), verbose=verbose)
    return engine.run(linear_problem(), configs, dt=1 / 64)


def run_sde_shootout(repetitions: int = 1000, seed: int = 42, verbose: bool = True):
    """Euler-Maruyama against Milstein on geometric Brownian motion."""
    configs = [
        FixedStepConfig('EM', dt=1 / 64),
        FixedStepConfig('RKMil', dt=1 / 64),
    ]
    collector = MetricCollector.for_stochastic(repetitions=repetitions, seed=seed)
    engine = ShootoutEngine(collector=collector, verbose=verbose)
    return engine.run(geometric_brownian_problem(), configs, dt=1 / 64)


def run_convergence(verbose: bool = True):
    """Observed order of accuracy of each fixed-step ODE method."""
    if verbose:
        print("\n" + "=" * 60)
        print("Convergence")
        print("=" * 60)

    problem = linear_problem()
    dts = [2.0**-k for k in range(2, 7)]
    results = {}
    for name in ('Euler', 'Midpoint', 'RK4'):
        results[name] = estimate_order(problem, FixedStepConfig(name, dt=dts[0]), dts)
        if verbose:
            print(results[name].summary())
    return results


def main():
    parser = argparse.ArgumentParser(
        description="Run diffeq-bench benchmarks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--quick', action='store_true',
                       help='Fewer repetitions and tolerance levels')
    parser.add_argument('--save', action='store_true',
                       help='Save figures')
    parser.add_argument('--outdir', type=str, default='./results/benchmarks',
                       help='Output directory')
    parser.add_argument('--repetitions', type=int, default=None,
                       help='Solves per cell (default: 5 quick, 20 full)')
    parser.add_argument('--workers', type=int, default=1,
                       help='Worker threads for the work-precision sweep')
    args = parser.parse_args()

    outdir = Path(args.outdir)
    if args.save:
        outdir.mkdir(parents=True, exist_ok=True)

    repetitions = args.repetitions or (5 if args.quick else 20)
    sde_repetitions = 100 if args.quick else 1000

    print("=" * 60)
    print("diffeq-bench Benchmark Suite")
    print("=" * 60)
    print(f"Mode: {'quick' if args.quick else 'full'}")

    total_start = time.perf_counter()

    wp = run_work_precision(quick=args.quick, repetitions=repetitions, n_workers=args.workers)
    ode = run_ode_shootout(repetitions=repetitions)
    sde = run_sde_shootout(repetitions=sde_repetitions)
    convergence = run_convergence()

    total_time = time.perf_counter() - total_start

    print("\n" + "=" * 60)
    print("Benchmark Summary")
    print("=" * 60)
    print(f"Work-precision failed cells: {wp.failed_cells() or 'none'}")
    print(f"ODE shootout winner: {ode.best.config_name}")
    print(f"SDE shootout winner: {sde.best.config_name}")
    for name, conv in convergence.items():
        print(f"{name} observed order: {conv.order:.2f}")
    print(f"Total runtime: {total_time:.1f}s")

    if args.save:
        fig, ax = plt.subplots(figsize=(8, 6))
        plot_work_precision(wp, ax=ax)
        fig.savefig(outdir / 'work_precision.png', dpi=150, bbox_inches='tight')

        fig, axes = plt.subplots(1, 2, figsize=(14, 5))
        plot_shootout(ode, ax=axes[0])
        plot_shootout(sde, ax=axes[1])
        fig.tight_layout()
        fig.savefig(outdir / 'shootouts.png', dpi=150, bbox_inches='tight')

        fig, ax = plt.subplots()
        for conv in convergence.values():
            plot_convergence(conv, ax=ax)
        fig.savefig(outdir / 'convergence.png', dpi=150, bbox_inches='tight')
        print(f"Saved figures to {outdir}")

    print("\nBenchmarks complete!")


if __name__ == '__main__':
    main()
