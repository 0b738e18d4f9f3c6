"""Standard test problems with known solutions.

The linear and noise problems mirror the classic work-precision test set:
exponential growth in one and several components, a rotating linear
system, and additive/multiplicative noise SDEs with closed-form solutions.
"""

from __future__ import annotations

import numpy as np
from scipy.linalg import expm

from .base import ProblemSpec


def linear_problem(
    alpha: float = 1.01,
    u0: float = 0.5,
    t_span: tuple[float, float] = (0.0, 1.0),
) -> ProblemSpec:
    """Scalar exponential growth du/dt = alpha * u.

    Exact solution u(t) = u0 * exp(alpha * t).
    """
    def f(t, u):
        return alpha * u

    def exact(t, u0):
        return u0 * np.exp(alpha * t)

    return ProblemSpec(
        dynamics=f,
        initial_state=u0,
        time_span=t_span,
        analytic_solution=exact,
        name="linear",
    )


def linear_2d_problem(
    alpha: float = 1.01,
    shape: tuple[int, int] = (4, 2),
    t_span: tuple[float, float] = (0.0, 1.0),
) -> ProblemSpec:
    """Componentwise exponential growth on a flattened 2D array.

    Uses an in-place right-hand side to exercise that code path.
    """
    n = int(np.prod(shape))
    u0 = np.linspace(0.1, 0.9, n)

    def f(t, u, out):
        np.multiply(alpha, u, out=out)

    def exact(t, u0):
        return u0 * np.exp(alpha * t)

    return ProblemSpec(
        dynamics=f,
        initial_state=u0,
        time_span=t_span,
        analytic_solution=exact,
        inplace=True,
        name="linear_2d",
    )


def linear_system_problem(
    A: np.ndarray,
    u0: np.ndarray,
    t_span: tuple[float, float] = (0.0, 1.0),
    name: str = "linear_system",
) -> ProblemSpec:
    """Linear system du/dt = A u with solution u(t) = expm(A (t - t0)) u0."""
    A = np.asarray(A, dtype=float)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"A must be a square matrix, got shape {A.shape}")
    t0 = float(t_span[0])

    def f(t, u):
        return A @ u

    def exact(t, u0):
        return expm(A * (t - t0)) @ u0

    return ProblemSpec(
        dynamics=f,
        initial_state=u0,
        time_span=t_span,
        analytic_solution=exact,
        name=name,
    )


def harmonic_oscillator_problem(
    omega: float = 1.0,
    u0: tuple[float, float] = (1.0, 0.0),
    t_span: tuple[float, float] = (0.0, 2 * np.pi),
) -> ProblemSpec:
    """Harmonic oscillator x' = y, y' = -omega^2 x."""
    A = np.array([
        [0.0, 1.0],
        [-omega**2, 0.0],
    ])
    return linear_system_problem(A, np.asarray(u0), t_span, name="harmonic_oscillator")


def lotka_volterra_problem(
    a: float = 1.5,
    b: float = 1.0,
    c: float = 3.0,
    d: float = 1.0,
    u0: tuple[float, float] = (1.0, 1.0),
    t_span: tuple[float, float] = (0.0, 10.0),
) -> ProblemSpec:
    """Lotka-Volterra predator-prey model. No closed-form solution."""
    def f(t, u):
        x, y = u
        return np.array([a * x - b * x * y, -c * y + d * x * y])

    return ProblemSpec(
        dynamics=f,
        initial_state=np.asarray(u0),
        time_span=t_span,
        name="lotka_volterra",
    )


def additive_noise_problem(
    alpha: float = 0.1,
    beta: float = 0.05,
    u0: float = 1.0,
    t_span: tuple[float, float] = (0.0, 1.0),
) -> ProblemSpec:
    """Scalar SDE with additive noise.

    du = (beta / sqrt(1 + t) - u / (2 (1 + t))) dt + alpha * beta / sqrt(1 + t) dW

    Exact solution u(t) = u0 / sqrt(1 + t) + beta (t + alpha W(t)) / sqrt(1 + t).
    """
    def f(t, u):
        return beta / np.sqrt(1 + t) - u / (2 * (1 + t))

    def g(t, u):
        return np.full_like(u, alpha * beta / np.sqrt(1 + t))

    def exact(t, u0, W):
        return u0 / np.sqrt(1 + t) + beta * (t + alpha * W) / np.sqrt(1 + t)

    return ProblemSpec(
        dynamics=f,
        initial_state=u0,
        time_span=t_span,
        analytic_solution=exact,
        stochastic=True,
        diffusion=g,
        name="additive_noise",
    )


def geometric_brownian_problem(
    mu: float = 1.01,
    sigma: float = 0.87,
    u0: float = 0.5,
    t_span: tuple[float, float] = (0.0, 1.0),
) -> ProblemSpec:
    """Scalar linear SDE du = mu u dt + sigma u dW.

    Exact solution u(t) = u0 exp((mu - sigma^2 / 2) t + sigma W(t)).
    """
    def f(t, u):
        return mu * u

    def g(t, u):
        return sigma * u

    def exact(t, u0, W):
        return u0 * np.exp((mu - sigma**2 / 2) * t + sigma * W)

    return ProblemSpec(
        dynamics=f,
        initial_state=u0,
        time_span=t_span,
        analytic_solution=exact,
        stochastic=True,
        diffusion=g,
        name="geometric_brownian",
    )


def linear_2d_sde_problem(
    mu: float = 1.01,
    sigma: float = 0.87,
    shape: tuple[int, int] = (4, 2),
    t_span: tuple[float, float] = (0.0, 1.0),
) -> ProblemSpec:
    """Componentwise geometric Brownian motion with independent noise."""
    n = int(np.prod(shape))
    u0 = np.linspace(0.1, 0.9, n)

    def f(t, u):
        return mu * u

    def g(t, u):
        return sigma * u

    def exact(t, u0, W):
        return u0 * np.exp((mu - sigma**2 / 2) * t + sigma * W)

    return ProblemSpec(
        dynamics=f,
        initial_state=u0,
        time_span=t_span,
        analytic_solution=exact,
        stochastic=True,
        diffusion=g,
        name="linear_2d_sde",
    )


def get_standard_problems() -> dict[str, ProblemSpec]:
    """All standard problems keyed by name."""
    problems = [
        linear_problem(),
        linear_2d_problem(),
        harmonic_oscillator_problem(),
        lotka_volterra_problem(),
        additive_noise_problem(),
        geometric_brownian_problem(),
        linear_2d_sde_problem(),
    ]
    return {p.name: p for p in problems}
