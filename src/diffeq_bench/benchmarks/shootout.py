"""Shootouts: head-to-head efficiency comparison at a single setting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..errors import ConfigurationError, DegenerateRankingError
from ..problems import ProblemSpec
from ..solvers import BindingRegistry, SolverConfig
from .metrics import MetricCollector
from .results import ShootoutResult
from .work_precision import check_unique_names, normalize_tolerance


class ShootoutEngine:
    """Runs each config once through the collector and ranks them.

    The result carries per-config time, error and efficiency, the index of
    the most efficient config, and every config's cost ratio against it.
    """

    def __init__(
        self,
        collector: MetricCollector | None = None,
        registry: BindingRegistry | None = None,
        verbose: bool = False,
    ):
        self.collector = collector or MetricCollector(registry=registry, verbose=verbose)
        self.verbose = verbose

    def run(
        self,
        problem: ProblemSpec,
        configs: Sequence[SolverConfig],
        repetitions: int | None = None,
        dt: float | None = None,
        tolerance: float | tuple[float, float] | None = None,
    ) -> ShootoutResult:
        """Run the shootout.

        Args:
            problem: Problem shared read-only by every config.
            configs: Configs to compare.
            repetitions: Solves per config; the collector's default if None.
            dt: Step size applied to every fixed-step config.
            tolerance: (abstol, reltol), or one number for both, applied to
                every adaptive config.

        Returns:
            ShootoutResult ranking the configs.

        Raises:
            ConfigurationError: On any invalid config, before solving.
            DegenerateRankingError: If no config succeeded.
        """
        configs = list(configs)
        if not configs:
            raise ConfigurationError("no configs to compare")
        check_unique_names(configs)

        if tolerance is not None:
            tolerance = normalize_tolerance(tolerance)

        resolved = [c.with_setting(dt=dt, tolerance=tolerance) for c in configs]
        for config in resolved:
            self.collector.registry.validate(problem, config)
        self.collector.prepare(problem)

        setting = {}
        if dt is not None:
            setting['dt'] = dt
        if tolerance is not None:
            setting['abstol'], setting['reltol'] = tolerance

        if self.verbose:
            print(f"\nShootout on {problem.name}: {len(resolved)} configs {setting}", flush=True)
            print("=" * 50, flush=True)

        summaries = [
            self.collector.measure(problem, config, repetitions=repetitions)
            for config in resolved
        ]
        result = ShootoutResult(summaries=tuple(summaries), setting=setting)

        if result.best_index is None:
            raise DegenerateRankingError(
                f"No config succeeded on '{problem.name}': "
                + "; ".join(str(s.failure) for s in summaries)
            )

        if self.verbose:
            print(result.summary(), flush=True)

        return result


@dataclass
class ShootoutSetResult:
    """Shootouts at several settings.

    Attributes:
        settings: The dt/tolerance of each shootout.
        results: One ShootoutResult per setting.
    """
    settings: list[dict] = field(default_factory=list)
    results: list[ShootoutResult] = field(default_factory=list)

    def add_result(self, result: ShootoutResult):
        self.settings.append(result.setting)
        self.results.append(result)

    @property
    def best_names(self) -> list[str]:
        """Name of the winner at each setting."""
        return [r.best.config_name for r in self.results]

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)

    def to_dict(self) -> dict:
        return {
            'settings': self.settings,
            'results': [r.to_dict() for r in self.results],
        }

    def summary(self) -> str:
        return '\n\n'.join(r.summary() for r in self.results)


class ShootoutSet:
    """Runs one shootout per step size and/or tolerance."""

    def __init__(self, engine: ShootoutEngine | None = None, verbose: bool = False):
        self.engine = engine or ShootoutEngine(verbose=verbose)

    def run(
        self,
        problem: ProblemSpec,
        configs: Sequence[SolverConfig],
        dts: Sequence[float] | None = None,
        tolerances: Sequence[float | tuple[float, float]] | None = None,
        repetitions: int | None = None,
    ) -> ShootoutSetResult:
        """Run shootouts at paired settings.

        ``dts[k]`` and ``tolerances[k]`` are used together in shootout k.

        Raises:
            ConfigurationError: If neither sequence is given or their
                lengths differ.
            DegenerateRankingError: If any shootout has no successful config.
        """
        if dts is None and tolerances is None:
            raise ConfigurationError("ShootoutSet needs dts and/or tolerances")
        if dts is not None and tolerances is not None and len(dts) != len(tolerances):
            raise ConfigurationError(
                f"dts has {len(dts)} entries but tolerances has {len(tolerances)}"
            )
        n = len(dts) if dts is not None else len(tolerances)

        result = ShootoutSetResult()
        for k in range(n):
            result.add_result(self.engine.run(
                problem, configs,
                repetitions=repetitions,
                dt=None if dts is None else dts[k],
                tolerance=None if tolerances is None else tolerances[k],
            ))
        return result
