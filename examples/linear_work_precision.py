"""Work-precision example on scalar exponential growth.

Compares scipy's adaptive Runge-Kutta methods against fixed-step RK4 over a
tolerance sweep. Fixed-step RK4 has no tolerance, so each tolerance level is
paired with a step size from an explicit table.

Usage:
    python linear_work_precision.py                        # Print results only
    python linear_work_precision.py --save                 # Save plot to current directory
    python linear_work_precision.py --save --outdir ./figs # Save plot to specific directory
"""

import argparse
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from diffeq_bench import AdaptiveConfig, FixedStepConfig, MetricCollector, WorkPrecisionEngine
from diffeq_bench.problems import linear_problem
from diffeq_bench.utils import plot_work_precision


def main():
    parser = argparse.ArgumentParser(description="Work-precision on du/dt = 1.01u")
    parser.add_argument('--save', action='store_true', help='Save the plot')
    parser.add_argument('--outdir', type=str, default='.', help='Output directory')
    args = parser.parse_args()

    print("=" * 60)
    print("Work-precision: du/dt = 1.01 u, u0 = 1/2, t in [0, 1]")
    print("=" * 60)

    problem = linear_problem()

    # abstol = reltol / 1000 at each level
    reltols = [10.0**-k for k in range(3, 8)]
    tolerances = [(rtol / 1000, rtol) for rtol in reltols]
    dts = (1/8, 1/16, 1/32, 1/64, 1/128)

    configs = [
        AdaptiveConfig('RK23'),
        AdaptiveConfig('RK45'),
        AdaptiveConfig('DOP853'),
        AdaptiveConfig('RK45', name='RK45 (final only)', save_every_step=False),
        FixedStepConfig('RK4', dts=dts),
    ]

    engine = WorkPrecisionEngine(collector=MetricCollector(repetitions=20), verbose=True)
    result = engine.run(problem, configs, tolerances)

    print()
    print(result.summary())

    ranking = result.ranking_at(len(tolerances) - 1)
    print()
    print(ranking.summary())

    if args.save:
        fig, ax = plt.subplots(figsize=(8, 6))
        plot_work_precision(result, ax=ax)
        outdir = Path(args.outdir)
        outdir.mkdir(parents=True, exist_ok=True)
        fig.savefig(outdir / 'linear_work_precision.png', dpi=150, bbox_inches='tight')
        print(f"\nFigure saved to {outdir.absolute()}")


if __name__ == '__main__':
    main()
