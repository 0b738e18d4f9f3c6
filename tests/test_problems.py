"""Tests for problem specifications and the problem library."""

import numpy as np
import pytest

from diffeq_bench.errors import ConfigurationError
from diffeq_bench.problems import (
    ProblemSpec,
    linear_problem,
    linear_2d_problem,
    linear_system_problem,
    harmonic_oscillator_problem,
    lotka_volterra_problem,
    geometric_brownian_problem,
    get_standard_problems,
)


class TestProblemSpec:
    """Tests for ProblemSpec construction and accessors."""

    def test_scalar_initial_state(self):
        problem = linear_problem(u0=0.5)

        assert problem.initial_state.shape == (1,)
        assert problem.n_dims == 1
        assert problem.time_span == (0.0, 1.0)

    def test_initial_state_is_copied_and_read_only(self):
        u0 = np.array([1.0, 2.0])
        problem = ProblemSpec(dynamics=lambda t, u: -u, initial_state=u0, time_span=(0, 1))

        u0[0] = 100.0
        assert problem.initial_state[0] == 1.0
        with pytest.raises(ValueError):
            problem.initial_state[0] = 5.0

    def test_frozen(self):
        problem = linear_problem()
        with pytest.raises(AttributeError):
            problem.name = "other"

    def test_invalid_time_span(self):
        with pytest.raises(ConfigurationError):
            ProblemSpec(dynamics=lambda t, u: u, initial_state=1.0, time_span=(1, 1))

    def test_matrix_initial_state_rejected(self):
        with pytest.raises(ConfigurationError):
            ProblemSpec(dynamics=lambda t, u: u, initial_state=np.ones((2, 2)), time_span=(0, 1))

    def test_stochastic_needs_diffusion(self):
        with pytest.raises(ConfigurationError):
            ProblemSpec(dynamics=lambda t, u: u, initial_state=1.0, time_span=(0, 1), stochastic=True)

    def test_diffusion_needs_stochastic(self):
        with pytest.raises(ConfigurationError):
            ProblemSpec(
                dynamics=lambda t, u: u, initial_state=1.0, time_span=(0, 1),
                diffusion=lambda t, u: u,
            )

    def test_inplace_rhs(self):
        """In-place dynamics are wrapped into a fresh-output callable."""
        problem = linear_2d_problem(alpha=2.0)
        f = problem.rhs()
        u = np.ones(problem.n_dims)

        du = f(0.0, u)

        np.testing.assert_array_equal(du, 2.0 * u)
        assert du is not u

    def test_rhs_accepts_lists(self):
        problem = ProblemSpec(
            dynamics=lambda t, u: [u[1], -u[0]],
            initial_state=[1.0, 0.0],
            time_span=(0, 1),
        )
        du = problem.rhs()(0.0, problem.initial_state)

        assert isinstance(du, np.ndarray)
        np.testing.assert_array_equal(du, [0.0, -1.0])

    def test_exact_without_analytic(self):
        with pytest.raises(ConfigurationError):
            lotka_volterra_problem().exact(1.0)

    def test_sde_exact_needs_brownian(self):
        with pytest.raises(ValueError):
            geometric_brownian_problem().exact(1.0)

    def test_noise_on_ode(self):
        with pytest.raises(ConfigurationError):
            linear_problem().noise()


class TestProblemLibrary:
    """Tests for the standard problems."""

    def test_standard_problems(self):
        problems = get_standard_problems()

        assert 'linear' in problems
        assert 'geometric_brownian' in problems
        assert problems['additive_noise'].stochastic
        assert not problems['linear_2d'].stochastic

    def test_analytic_matches_initial_state(self):
        """Every analytic solution starts at u0 (W = 0 for SDEs)."""
        for name, problem in get_standard_problems().items():
            if not problem.has_analytic:
                continue
            W = np.zeros(problem.n_dims) if problem.stochastic else None
            np.testing.assert_allclose(
                problem.exact(problem.t0, W), problem.initial_state,
                err_msg=f"{name} analytic solution is off at t0",
            )

    def test_linear_analytic(self):
        problem = linear_problem()
        np.testing.assert_allclose(problem.exact(1.0), [0.5 * np.exp(1.01)])

    def test_linear_system_analytic_solves_ode(self):
        """Finite-difference derivative of the analytic solution matches A u."""
        A = np.array([[-1.0, 1.0], [-1.0, -1.0]])
        problem = linear_system_problem(A, np.array([1.0, 0.5]))
        t, h = 0.3, 1e-6

        derivative = (problem.exact(t + h) - problem.exact(t - h)) / (2 * h)

        np.testing.assert_allclose(derivative, A @ problem.exact(t), rtol=1e-6)

    def test_harmonic_oscillator_period(self):
        problem = harmonic_oscillator_problem()
        np.testing.assert_allclose(problem.exact(2 * np.pi), [1.0, 0.0], atol=1e-10)

    def test_linear_system_requires_square(self):
        with pytest.raises(ValueError):
            linear_system_problem(np.ones((2, 3)), np.ones(2))
