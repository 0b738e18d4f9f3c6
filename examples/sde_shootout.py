"""SDE shootout example: Euler-Maruyama against Milstein.

Runs each scheme many times on geometric Brownian motion (the linear SDE
du = 1.01 u dt + 0.87 u dW) and on an additive-noise SDE, then ranks them
by efficiency. Stochastic runs vary a lot from path to path, so errors are
aggregated as the RMS over 1000 seeded repetitions.

Usage:
    python sde_shootout.py                        # Print results only
    python sde_shootout.py --save                 # Save plots to current directory
    python sde_shootout.py --save --outdir ./figs # Save plots to specific directory
"""

import argparse
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from diffeq_bench import FixedStepConfig, MetricCollector, ShootoutEngine, ShootoutSet
from diffeq_bench.problems import additive_noise_problem, geometric_brownian_problem
from diffeq_bench.utils import plot_shootout


def main():
    parser = argparse.ArgumentParser(description="SDE shootout")
    parser.add_argument('--save', action='store_true', help='Save the plots')
    parser.add_argument('--outdir', type=str, default='.', help='Output directory')
    parser.add_argument('--repetitions', type=int, default=1000, help='Runs per scheme')
    args = parser.parse_args()

    configs = [
        FixedStepConfig('EM', dt=1/64),
        FixedStepConfig('RKMil', dt=1/64),
    ]
    collector = MetricCollector.for_stochastic(repetitions=args.repetitions, seed=100)
    engine = ShootoutEngine(collector=collector, verbose=True)

    results = {}
    for problem in (geometric_brownian_problem(), additive_noise_problem()):
        results[problem.name] = engine.run(problem, configs)

    # One shootout per step size
    print("\n" + "=" * 60)
    print("Shootout set over dt")
    print("=" * 60)
    shootouts = ShootoutSet(engine).run(
        geometric_brownian_problem(), configs, dts=[1/16, 1/64, 1/256]
    )
    for setting, name in zip(shootouts.settings, shootouts.best_names):
        print(f"  dt={setting['dt']:.4g}: best is {name}")

    if args.save:
        fig, axes = plt.subplots(1, len(results), figsize=(12, 5))
        for ax, (name, result) in zip(axes, results.items()):
            plot_shootout(result, ax=ax)
            ax.set_title(name)
        outdir = Path(args.outdir)
        outdir.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(outdir / 'sde_shootout.png', dpi=150, bbox_inches='tight')
        print(f"\nFigure saved to {outdir.absolute()}")


if __name__ == '__main__':
    main()
