"""Tests for result containers and the efficiency ranking."""

import numpy as np
import pytest

from diffeq_bench.benchmarks.results import (
    MIN_MEASURABLE_TIME,
    RunResult,
    ShootoutResult,
    SummaryResult,
    WorkPrecisionResult,
    efficiency,
    rank,
)
from diffeq_bench.errors import AllRunsFailedError


def make_summary(name, time, error, tolerance_index=0):
    """Summary of one successful run."""
    run = RunResult(name, tolerance_index, time, error, succeeded=True)
    return SummaryResult.from_runs(name, tolerance_index, [run])


def make_failed(name, tolerance_index=0):
    run = RunResult.failed(name, tolerance_index, "diverged")
    return SummaryResult.from_runs(name, tolerance_index, [run])


class TestEfficiency:
    """Tests for the efficiency formula."""

    def test_basic(self):
        assert efficiency(1e-3, 1e-2) == pytest.approx(1e5)

    def test_zero_error(self):
        assert efficiency(0.0, 1e-3) == np.inf

    def test_zero_time_uses_sentinel(self):
        assert efficiency(1.0, 0.0) == pytest.approx(1 / MIN_MEASURABLE_TIME)

    def test_infinite_error(self):
        assert efficiency(np.inf, 1.0) == 0.0


class TestSummaryResult:
    """Tests for aggregation of repeated runs."""

    def test_mean_over_successes(self):
        runs = [
            RunResult('A', 0, 1.0, 0.1, True),
            RunResult('A', 0, 3.0, 0.3, True),
            RunResult.failed('A', 0, 'diverged'),
        ]
        summary = SummaryResult.from_runs('A', 0, runs)

        assert summary.mean_time == pytest.approx(2.0)
        assert summary.error == pytest.approx(0.2)
        assert summary.n_runs == 3
        assert summary.n_succeeded == 2
        assert summary.success_fraction == pytest.approx(2 / 3)
        assert summary.failure is None
        assert summary.failure_reasons == ['diverged']

    def test_stochastic_rms(self):
        runs = [
            RunResult('EM', 0, 1.0, 0.3, True),
            RunResult('EM', 0, 1.0, 0.4, True),
        ]
        summary = SummaryResult.from_runs('EM', 0, runs, stochastic=True)

        assert summary.error == pytest.approx(np.sqrt((0.09 + 0.16) / 2))

    def test_all_failed(self):
        runs = [RunResult.failed('A', 2, 'step budget'), RunResult.failed('A', 2, 'step budget')]
        summary = SummaryResult.from_runs('A', 2, runs)

        assert not summary.succeeded
        assert np.isnan(summary.mean_time)
        assert np.isnan(summary.error)
        assert np.isnan(summary.efficiency)
        assert isinstance(summary.failure, AllRunsFailedError)
        assert summary.failure.tolerance_index == 2
        assert summary.failure.reasons == ['step budget']

    def test_to_dict(self):
        d = make_summary('A', 0.5, 0.01).to_dict()

        assert d['config_name'] == 'A'
        assert d['efficiency'] == pytest.approx(200.0)
        assert d['failure'] is None


class TestRank:
    """Tests for the ranking policy."""

    def test_best_has_ratio_one(self):
        summaries = [
            make_summary('A', 1.0, 1e-3),
            make_summary('B', 0.5, 1e-3),
            make_summary('C', 2.0, 1e-4),
        ]
        best, eff, ratios, participating = rank(summaries)

        assert best == 2
        assert ratios[best] == 1.0
        assert np.all(ratios[participating] >= 1.0)
        np.testing.assert_allclose(ratios, eff[best] / eff)

    def test_best_is_argmax(self):
        summaries = [make_summary(str(i), t, e) for i, (t, e) in
                     enumerate([(0.3, 1e-2), (0.1, 1e-3), (0.2, 1e-3)])]
        best, eff, _, _ = rank(summaries)

        assert best == int(np.argmax(eff))

    def test_tie_goes_to_lowest_index(self):
        summaries = [make_summary('A', 1.0, 1e-3), make_summary('B', 1.0, 1e-3)]
        best, _, ratios, _ = rank(summaries)

        assert best == 0
        np.testing.assert_array_equal(ratios, [1.0, 1.0])

    def test_failed_config_excluded(self):
        summaries = [make_failed('A'), make_summary('B', 1.0, 1e-3)]
        best, eff, ratios, participating = rank(summaries)

        assert best == 1
        np.testing.assert_array_equal(participating, [False, True])
        assert np.isnan(eff[0])
        assert np.isnan(ratios[0])
        assert ratios[1] == 1.0

    def test_nothing_succeeded(self):
        best, eff, ratios, participating = rank([make_failed('A'), make_failed('B')])

        assert best is None
        assert not participating.any()
        assert np.all(np.isnan(ratios))

    def test_zero_error_wins(self):
        summaries = [make_summary('A', 0.1, 1e-12), make_summary('B', 5.0, 0.0)]
        best, _, ratios, _ = rank(summaries)

        assert best == 1
        assert ratios[0] == np.inf

    def test_zero_error_tie_broken_by_time(self):
        summaries = [
            make_summary('A', 2.0, 0.0),
            make_summary('B', 1.0, 0.0),
            make_summary('C', 1.0, 0.0),
        ]
        best, _, ratios, _ = rank(summaries)

        assert best == 1
        np.testing.assert_allclose(ratios, [2.0, 1.0, 1.0])


class TestShootoutResult:
    """Tests for ShootoutResult."""

    def test_ranking_fields(self):
        result = ShootoutResult(
            summaries=[make_summary('A', 1.0, 1e-3), make_summary('B', 1.0, 1e-4)],
            setting={'dt': 0.1},
        )

        assert result.best_index == 1
        assert result.best.config_name == 'B'
        assert result.names == ['A', 'B']
        np.testing.assert_allclose(result.effratios, [10.0, 1.0])
        assert len(result) == 2

    def test_arrays_read_only(self):
        result = ShootoutResult(summaries=[make_summary('A', 1.0, 1e-3)])
        with pytest.raises(ValueError):
            result.effratios[0] = 2.0

    def test_summary_marks_failures(self):
        result = ShootoutResult(summaries=[make_failed('A'), make_summary('B', 1.0, 1e-3)])
        text = result.summary()

        assert 'FAILED' in text
        assert 'Best: B' in text
        assert [s.config_name for s in result.failed] == ['A']


class TestWorkPrecisionResult:
    """Tests for WorkPrecisionResult."""

    def make_result(self):
        rows = [
            [make_summary('A', 1.0, 1e-3, 0), make_summary('A', 2.0, 1e-5, 1)],
            [make_summary('B', 0.5, 1e-3, 0), make_failed('B', 1)],
        ]
        return WorkPrecisionResult(
            names=('A', 'B'),
            tolerances=((1e-6, 1e-3), (1e-8, 1e-5)),
            summaries=rows,
        )

    def test_shape_and_grids(self):
        result = self.make_result()

        assert result.shape == (2, 2)
        assert result.times.shape == (2, 2)
        assert np.isnan(result.errors[1, 1])
        assert result.cell('B', 0).mean_time == 0.5

    def test_failed_cells(self):
        result = self.make_result()

        assert result.failed_cells() == [(1, 1)]
        assert not result.is_complete

    def test_ranking_at_level(self):
        result = self.make_result()

        assert result.best_index_at(0) == 1
        assert result.best_index_at(1) == 0
        assert np.isnan(result.effratios_at(1)[1])

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            WorkPrecisionResult(
                names=('A',),
                tolerances=((1e-6, 1e-3), (1e-8, 1e-5)),
                summaries=[[make_summary('A', 1.0, 1e-3)]],
            )

    def test_to_dict(self):
        d = self.make_result().to_dict()

        assert d['names'] == ['A', 'B']
        assert len(d['summaries']) == 2
