"""Tests for the metric collector."""

import time

import numpy as np
import pytest

from diffeq_bench.benchmarks.metrics import MetricCollector, state_norm, trajectory_error
from diffeq_bench.benchmarks.results import MIN_MEASURABLE_TIME
from diffeq_bench.dynamics import Trajectory
from diffeq_bench.errors import BenchmarkWarning, ConfigurationError, SolveFailure
from diffeq_bench.problems import (
    ProblemSpec,
    geometric_brownian_problem,
    linear_problem,
    lotka_volterra_problem,
)
from diffeq_bench.solvers import (
    AdaptiveConfig,
    FixedStepConfig,
    FixedStepODEBinding,
    default_registry,
)


class FlakyBinding(FixedStepODEBinding):
    """RK4 that fails every other call."""

    algorithms = ('FlakyRK4',)

    def __init__(self):
        self.calls = 0

    def _prepare(self, problem, config, seed):
        self.calls += 1
        fail = self.calls % 2 == 0
        call = super()._prepare(problem, FixedStepConfig('RK4', dt=config.dt), seed)

        def flaky():
            if fail:
                raise SolveFailure("step size underflow")
            return call()
        return flaky


class BrokenBinding(FlakyBinding):
    algorithms = ('Broken',)

    def _prepare(self, problem, config, seed):
        def broken():
            raise SolveFailure("diverged")
        return broken


def registry_with(*bindings):
    registry = default_registry()
    for binding in bindings:
        registry.register(binding)
    return registry


class TestNorms:
    """Tests for state and time-series norms."""

    def test_state_norms(self):
        diff = np.array([3.0, -4.0])

        assert state_norm(diff, 'l2') == pytest.approx(5.0)
        assert state_norm(diff, 'linf') == pytest.approx(4.0)
        assert state_norm(diff, 'l1') == pytest.approx(7.0)

    def test_unknown_norm(self):
        with pytest.raises(ValueError):
            state_norm(np.ones(2), 'l3')

    def test_time_series_errors(self):
        traj = Trajectory(np.array([0.0, 1.0, 2.0]), np.array([0.0, 1.0, 2.0]))

        def exact(t, W=None):
            return np.array([0.0])

        assert trajectory_error(traj, exact, 'final') == pytest.approx(2.0)
        assert trajectory_error(traj, exact, 'linf') == pytest.approx(2.0)
        assert trajectory_error(traj, exact, 'l2') == pytest.approx(np.sqrt(5 / 3))

    def test_invalid_collector_norms(self):
        with pytest.raises(ConfigurationError):
            MetricCollector(error_norm='mean')
        with pytest.raises(ConfigurationError):
            MetricCollector(norm='l3')
        with pytest.raises(ConfigurationError):
            MetricCollector(repetitions=0)


class TestMeasure:
    """Tests for MetricCollector.measure."""

    def test_dense_output_does_not_change_error(self):
        """RK4 at dt = 1/64 with and without dense output."""
        problem = linear_problem()
        collector = MetricCollector(repetitions=3)

        plain = collector.measure(problem, FixedStepConfig('RK4', dt=1/64))
        dense = collector.measure(
            problem, FixedStepConfig('RK4', name='RK4 dense', dt=1/64, dense_output=True)
        )

        assert plain.succeeded and dense.succeeded
        assert plain.error == pytest.approx(dense.error, rel=1e-12)
        assert plain.error < 1e-7
        assert plain.mean_time > 0
        assert dense.mean_time > 0

    def test_repeatable_errors(self):
        problem = linear_problem()
        collector = MetricCollector(repetitions=2)
        config = AdaptiveConfig('RK45', abstol=1e-8, reltol=1e-8)

        first = collector.measure(problem, config)
        second = collector.measure(problem, config)

        assert first.error == second.error
        assert first.n_runs == 2

    def test_times_clamped(self):
        summary = MetricCollector(repetitions=2).measure(
            linear_problem(), FixedStepConfig('Euler', dt=0.5)
        )

        assert all(r.elapsed_time >= MIN_MEASURABLE_TIME for r in summary.runs)

    def test_partial_failure_recorded(self):
        registry = registry_with(FlakyBinding())
        collector = MetricCollector(repetitions=4, registry=registry)

        summary = collector.measure(linear_problem(), FixedStepConfig('FlakyRK4', dt=1/64))

        assert summary.succeeded
        assert summary.n_runs == 4
        assert summary.n_succeeded == 2
        assert summary.failure is None
        assert summary.failure_reasons == ['step size underflow']
        assert np.isfinite(summary.error)

    def test_all_runs_failed(self):
        registry = registry_with(BrokenBinding())
        collector = MetricCollector(repetitions=3, registry=registry)

        with pytest.warns(BenchmarkWarning, match='diverged'):
            summary = collector.measure(linear_problem(), FixedStepConfig('Broken', dt=0.1))

        assert not summary.succeeded
        assert summary.failure.reasons == ['diverged']
        assert np.isnan(summary.error)

    def test_wall_clock_budget_recorded(self):
        """A run past max_wall_time is a failed run, not an exception."""
        def slow_decay(t, u):
            time.sleep(0.002)
            return -u

        problem = ProblemSpec(
            dynamics=slow_decay,
            initial_state=1.0,
            time_span=(0, 1),
            analytic_solution=lambda t, u0: u0 * np.exp(-t),
        )
        config = FixedStepConfig('RK4', dt=1e-3, max_wall_time=0.05)

        start = time.perf_counter()
        with pytest.warns(BenchmarkWarning):
            summary = MetricCollector(repetitions=1).measure(problem, config)
        elapsed = time.perf_counter() - start

        assert elapsed < 1.0
        assert not summary.succeeded
        assert not summary.runs[0].succeeded
        assert 'Wall-clock budget' in summary.runs[0].failure_reason

    def test_invalid_config_raises(self):
        with pytest.raises(ConfigurationError):
            MetricCollector().measure(linear_problem(), AdaptiveConfig('Tsit5'))

    def test_repetition_defaults(self):
        collector = MetricCollector()

        assert collector.repetitions_for(linear_problem()) == 20
        assert collector.repetitions_for(geometric_brownian_problem()) == 1000
        assert MetricCollector.for_stochastic().repetitions == 1000


class TestReference:
    """Tests for problems without analytic solutions."""

    def test_reference_solution(self):
        problem = lotka_volterra_problem()
        collector = MetricCollector(repetitions=1)

        loose = collector.measure(problem, AdaptiveConfig('RK45', abstol=1e-4, reltol=1e-4))
        tight = collector.measure(problem, AdaptiveConfig('RK45', abstol=1e-9, reltol=1e-9))

        assert 0 < tight.error < loose.error

    def test_reference_trajectory_supplied(self):
        problem = ProblemSpec(dynamics=lambda t, u: -u, initial_state=1.0, time_span=(0, 1))
        reference = Trajectory(
            times=np.linspace(0, 1, 1001),
            states=np.exp(-np.linspace(0, 1, 1001)),
        )
        collector = MetricCollector(repetitions=1, reference=reference)

        summary = collector.measure(problem, FixedStepConfig('RK4', dt=0.01))

        assert summary.error < 1e-8

    def test_stochastic_without_analytic(self):
        problem = ProblemSpec(
            dynamics=lambda t, u: u,
            initial_state=1.0,
            time_span=(0, 1),
            stochastic=True,
            diffusion=lambda t, u: u,
        )
        with pytest.raises(ConfigurationError):
            MetricCollector(repetitions=1).measure(problem, FixedStepConfig('EM', dt=0.1))


class TestStochastic:
    """Tests for SDE error statistics."""

    def test_seeded_measure_reproducible(self):
        problem = geometric_brownian_problem()
        config = FixedStepConfig('EM', dt=1/64)

        a = MetricCollector(repetitions=20, seed=5).measure(problem, config)
        b = MetricCollector(repetitions=20, seed=5).measure(problem, config)

        assert a.error == b.error

    def test_error_shrinks_with_dt(self):
        problem = geometric_brownian_problem()
        collector = MetricCollector(repetitions=200, seed=42)

        coarse = collector.measure(problem, FixedStepConfig('EM', dt=1/16))
        fine = collector.measure(problem, FixedStepConfig('EM', dt=1/256))

        assert fine.error < coarse.error

    def test_milstein_beats_euler_maruyama(self):
        problem = geometric_brownian_problem()
        collector = MetricCollector(repetitions=200, seed=42)

        em = collector.measure(problem, FixedStepConfig('EM', dt=1/64))
        milstein = collector.measure(problem, FixedStepConfig('RKMil', dt=1/64))

        assert milstein.error < em.error
