"""Tests for solver configurations."""

import pytest

from diffeq_bench.errors import ConfigurationError
from diffeq_bench.solvers import AdaptiveConfig, FixedStepConfig


class TestAdaptiveConfig:
    """Tests for AdaptiveConfig."""

    def test_defaults(self):
        config = AdaptiveConfig('RK45')

        assert config.name == 'RK45'
        assert config.adaptive
        assert config.abstol == 1e-6
        assert config.reltol == 1e-3
        assert not config.dense_output
        assert config.save_every_step

    def test_display_name(self):
        config = AdaptiveConfig('RK45', name='RK45 (dense)', dense_output=True)
        assert config.name == 'RK45 (dense)'
        assert config.algorithm == 'RK45'

    @pytest.mark.parametrize('abstol, reltol', [(None, 1e-3), (1e-6, 0.0), (-1e-6, 1e-3)])
    def test_invalid_tolerances(self, abstol, reltol):
        with pytest.raises(ConfigurationError):
            AdaptiveConfig('RK45', abstol=abstol, reltol=reltol)

    def test_empty_algorithm(self):
        with pytest.raises(ConfigurationError):
            AdaptiveConfig('')

    def test_invalid_budgets(self):
        with pytest.raises(ConfigurationError):
            AdaptiveConfig('RK45', max_steps=0)
        with pytest.raises(ConfigurationError):
            AdaptiveConfig('RK45', max_wall_time=-1.0)

    def test_for_level_applies_tolerances(self):
        config = AdaptiveConfig('DOP853', max_steps=100)
        level = config.for_level(2, 4, 1e-8, 1e-5)

        assert (level.abstol, level.reltol) == (1e-8, 1e-5)
        assert level.max_steps == 100
        assert config.abstol == 1e-6

    def test_with_setting_ignores_dt(self):
        config = AdaptiveConfig('RK45')

        assert config.with_setting(dt=0.1) is config
        tightened = config.with_setting(tolerance=(1e-9, 1e-7))
        assert (tightened.abstol, tightened.reltol) == (1e-9, 1e-7)

    def test_error_message_names_config(self):
        with pytest.raises(ConfigurationError, match=r"\[tight\]"):
            AdaptiveConfig('RK45', name='tight', abstol=0)

    def test_to_dict(self):
        d = AdaptiveConfig('RK23', abstol=1e-4).to_dict()

        assert d['algorithm'] == 'RK23'
        assert d['adaptive'] is True
        assert d['abstol'] == 1e-4


class TestFixedStepConfig:
    """Tests for FixedStepConfig."""

    def test_requires_step(self):
        with pytest.raises(ConfigurationError):
            FixedStepConfig('RK4')

    def test_invalid_dt(self):
        with pytest.raises(ConfigurationError):
            FixedStepConfig('RK4', dt=0.0)

    def test_invalid_dts(self):
        with pytest.raises(ConfigurationError):
            FixedStepConfig('RK4', dts=())
        with pytest.raises(ConfigurationError):
            FixedStepConfig('RK4', dts=(0.1, -0.05))

    def test_dts_normalized_to_tuple(self):
        config = FixedStepConfig('RK4', dts=[0.1, 0.05])

        assert config.dts == (0.1, 0.05)
        assert config.n_levels == 2
        assert not config.adaptive

    def test_for_level_picks_table_entry(self):
        config = FixedStepConfig('RK4', dts=(0.1, 0.05, 0.025))
        level = config.for_level(1, 3, 1e-6, 1e-3)

        assert level.dt == 0.05
        assert level.dts is None
        assert level.name == 'RK4'

    def test_for_level_length_mismatch(self):
        config = FixedStepConfig('RK4', dts=(0.1, 0.05))
        with pytest.raises(ConfigurationError):
            config.for_level(0, 3, 1e-6, 1e-3)

    def test_for_level_without_table(self):
        config = FixedStepConfig('RK4', dt=0.1)

        assert config.for_level(0, 1, 1e-6, 1e-3) is config
        with pytest.raises(ConfigurationError):
            config.for_level(0, 2, 1e-6, 1e-3)

    def test_with_setting(self):
        config = FixedStepConfig('Euler', dt=0.1)

        assert config.with_setting().dt == 0.1
        assert config.with_setting(dt=0.01).dt == 0.01
        assert config.with_setting(tolerance=(1e-6, 1e-3)) is config

    def test_with_setting_table_only(self):
        config = FixedStepConfig('Euler', dts=(0.1, 0.05))
        with pytest.raises(ConfigurationError):
            config.with_setting()

    def test_frozen(self):
        config = FixedStepConfig('RK4', dt=0.1)
        with pytest.raises(AttributeError):
            config.dt = 0.2
