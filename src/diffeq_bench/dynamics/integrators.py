"""Integrator backends reached through the solver bindings.

Three families are provided:

- adaptive ODE methods from ``scipy.integrate`` (RK45, DOP853, Radau, ...),
  stepped one step at a time so that step budgets can be enforced;
- reference fixed-step ODE steppers (explicit Euler, midpoint, RK4);
- reference fixed-step SDE steppers for diagonal noise (Euler-Maruyama and
  a derivative-free Milstein scheme).

Every call allocates its own state arrays, so concurrent solves never share
scratch memory.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable

import numpy as np
from scipy.integrate import BDF, DOP853, LSODA, OdeSolution, Radau, RK23, RK45
from scipy.interpolate import CubicHermiteSpline

from ..errors import BudgetExceeded, SolveFailure
from .trajectory import Trajectory


DynamicsFunction = Callable[[float, np.ndarray], np.ndarray]


class FixedStepMethod(Enum):
    """Fixed-step ODE methods. Values are the algorithm ids."""
    EULER = "Euler"         # Forward Euler (first order)
    MIDPOINT = "Midpoint"   # Explicit midpoint (second order)
    RK4 = "RK4"             # Classic Runge-Kutta 4th order

    @property
    def order(self) -> int:
        return _FIXED_ORDERS[self]


class SDEMethod(Enum):
    """Fixed-step SDE methods for diagonal noise. Values are the algorithm ids."""
    EULER_MARUYAMA = "EM"   # strong order 0.5
    MILSTEIN = "RKMil"      # derivative-free Milstein, strong order 1.0

    @property
    def strong_order(self) -> float:
        return 0.5 if self is SDEMethod.EULER_MARUYAMA else 1.0


_FIXED_ORDERS = {
    FixedStepMethod.EULER: 1,
    FixedStepMethod.MIDPOINT: 2,
    FixedStepMethod.RK4: 4,
}

ADAPTIVE_METHODS = {
    'RK23': RK23,
    'RK45': RK45,
    'DOP853': DOP853,
    'Radau': Radau,
    'BDF': BDF,
    'LSODA': LSODA,
}

# Cap on fixed-step counts when the caller gives no budget
DEFAULT_MAX_FIXED_STEPS = 10_000_000


class _Budget:
    """Step-count and wall-clock budget for one solve."""

    def __init__(self, max_steps: int | None, max_wall_time: float | None):
        self.max_steps = max_steps
        self.max_wall_time = max_wall_time
        self.start = time.perf_counter()

    def check(self, n_steps: int) -> None:
        if self.max_steps is not None and n_steps > self.max_steps:
            raise BudgetExceeded(
                f"Step budget exhausted after {self.max_steps} steps"
            )
        if self.max_wall_time is not None:
            elapsed = time.perf_counter() - self.start
            if elapsed > self.max_wall_time:
                raise BudgetExceeded(
                    f"Wall-clock budget of {self.max_wall_time:.3g}s exceeded "
                    f"after {n_steps} steps"
                )


def _n_fixed_steps(t_span: tuple[float, float], dt: float) -> int:
    t_start, t_end = t_span
    # Guard against ceil(64.0000000001) for dt values like 1/64
    return max(1, int(np.ceil((t_end - t_start) / dt - 1e-9)))


def effective_step(t_span: tuple[float, float], dt: float) -> float:
    """Step size actually taken for a requested dt.

    Fixed-step methods shrink dt so an integer number of steps lands on
    t_end.
    """
    t_start, t_end = t_span
    return (t_end - t_start) / _n_fixed_steps(t_span, dt)


def integrate_adaptive(
    f: DynamicsFunction,
    u0: np.ndarray,
    t_span: tuple[float, float],
    method: str = 'RK45',
    rtol: float = 1e-3,
    atol: float = 1e-6,
    dense_output: bool = False,
    save_every_step: bool = True,
    max_step: float | None = None,
    max_steps: int | None = None,
    max_wall_time: float | None = None,
) -> Trajectory:
    """Integrate an ODE with an adaptive scipy method.

    Args:
        f: Dynamics function f(t, u) -> du/dt.
        u0: Initial state, shape (n_dims,).
        t_span: Time interval (t_start, t_end).
        method: Key of ADAPTIVE_METHODS.
        rtol: Relative tolerance.
        atol: Absolute tolerance.
        dense_output: Build a continuous interpolant over the whole span.
        save_every_step: Store every accepted step; otherwise only the end
            points are kept.
        max_step: Maximum step size.
        max_steps: Abort after this many accepted steps.
        max_wall_time: Abort after this many seconds.

    Returns:
        Trajectory containing the solution.

    Raises:
        SolveFailure: If the solver fails, the state becomes non-finite, or
            a budget is exhausted.
    """
    if method not in ADAPTIVE_METHODS:
        raise ValueError(f"Unknown adaptive method: {method}")

    u0 = np.array(u0, dtype=float)
    t_start, t_end = t_span
    budget = _Budget(max_steps, max_wall_time)

    # A NaN derivative makes the step-size controller loop forever
    def guarded(t, u):
        du = f(t, u)
        if not np.all(np.isfinite(du)):
            raise SolveFailure(f"{method}: non-finite derivative at t={t:.6g}")
        return du

    solver = ADAPTIVE_METHODS[method](
        guarded, t_start, u0, t_end,
        rtol=rtol, atol=atol,
        max_step=np.inf if max_step is None else max_step,
    )

    times = [t_start]
    states = [u0.copy()]
    step_times = [t_start]
    interpolants = []
    n_steps = 0

    while solver.status == 'running':
        message = solver.step()
        if solver.status == 'failed':
            raise SolveFailure(f"{method} failed at t={solver.t:.6g}: {message}")

        n_steps += 1
        if not np.all(np.isfinite(solver.y)):
            raise SolveFailure(f"{method} produced a non-finite state at t={solver.t:.6g}")

        if dense_output:
            step_times.append(solver.t)
            interpolants.append(solver.dense_output())
        if save_every_step or solver.status == 'finished':
            times.append(solver.t)
            states.append(solver.y.copy())

        if solver.status == 'running':
            budget.check(n_steps)

    interpolant = OdeSolution(step_times, interpolants) if dense_output else None

    return Trajectory(
        times=np.array(times),
        states=np.array(states),
        interpolant=interpolant,
        n_steps=n_steps,
    )


def _euler_step(f, t, u, dt, k1):
    return u + dt * k1


def _midpoint_step(f, t, u, dt, k1):
    k2 = f(t + dt/2, u + dt/2 * k1)
    return u + dt * k2


def _rk4_step(f, t, u, dt, k1):
    k2 = f(t + dt/2, u + dt/2 * k1)
    k3 = f(t + dt/2, u + dt/2 * k2)
    k4 = f(t + dt, u + dt * k3)
    return u + dt/6 * (k1 + 2*k2 + 2*k3 + k4)


_FIXED_STEPPERS = {
    FixedStepMethod.EULER: _euler_step,
    FixedStepMethod.MIDPOINT: _midpoint_step,
    FixedStepMethod.RK4: _rk4_step,
}


def integrate_fixed(
    f: DynamicsFunction,
    u0: np.ndarray,
    t_span: tuple[float, float],
    method: FixedStepMethod = FixedStepMethod.RK4,
    dt: float = 0.01,
    dense_output: bool = False,
    save_every_step: bool = True,
    max_steps: int | None = None,
    max_wall_time: float | None = None,
) -> Trajectory:
    """Integrate an ODE with a fixed-step explicit method.

    The step is shrunk slightly if needed so that an integer number of steps
    lands exactly on t_end. Dense output is a cubic Hermite interpolant
    through the step points and does not change the stepping itself.

    Raises:
        SolveFailure: If the state becomes non-finite or a budget is exhausted.
    """
    u = np.array(u0, dtype=float)
    t_start, t_end = t_span
    n_steps = _n_fixed_steps(t_span, dt)
    budget = _Budget(
        DEFAULT_MAX_FIXED_STEPS if max_steps is None else max_steps,
        max_wall_time,
    )
    budget.check(n_steps)

    times = np.linspace(t_start, t_end, n_steps + 1)
    h = (t_end - t_start) / n_steps
    stepper = _FIXED_STEPPERS[method]
    keep_all = save_every_step or dense_output

    states = np.empty((n_steps + 1 if keep_all else 2, len(u)))
    states[0] = u
    derivs = np.empty((n_steps + 1, len(u))) if dense_output else None

    for i in range(n_steps):
        t = times[i]
        k1 = f(t, u)
        if derivs is not None:
            derivs[i] = k1
        u = stepper(f, t, u, h, k1)
        if not np.all(np.isfinite(u)):
            raise SolveFailure(
                f"{method.value} produced a non-finite state at t={times[i + 1]:.6g}"
            )
        if keep_all:
            states[i + 1] = u
        if max_wall_time is not None:
            budget.check(i + 1)

    interpolant = None
    if dense_output:
        derivs[-1] = f(t_end, u)
        interpolant = CubicHermiteSpline(times, states.T, derivs.T, axis=1)

    if keep_all and save_every_step:
        out_times, out_states = times, states
    else:
        out_times = np.array([t_start, t_end])
        out_states = np.array([states[0], u])

    return Trajectory(
        times=out_times,
        states=out_states,
        interpolant=interpolant,
        n_steps=n_steps,
    )


def integrate_sde(
    f: DynamicsFunction,
    g: DynamicsFunction,
    u0: np.ndarray,
    t_span: tuple[float, float],
    method: SDEMethod = SDEMethod.EULER_MARUYAMA,
    dt: float = 0.01,
    rng: np.random.Generator | None = None,
    save_every_step: bool = True,
    max_steps: int | None = None,
    max_wall_time: float | None = None,
) -> Trajectory:
    """Integrate an SDE du = f dt + g dW with diagonal noise.

    The Brownian path is sampled from ``rng`` and returned alongside the
    states, so the analytic solution can be evaluated on the same path.

    Raises:
        SolveFailure: If the state becomes non-finite or a budget is exhausted.
    """
    rng = np.random.default_rng() if rng is None else rng
    u = np.array(u0, dtype=float)
    t_start, t_end = t_span
    n_steps = _n_fixed_steps(t_span, dt)
    budget = _Budget(
        DEFAULT_MAX_FIXED_STEPS if max_steps is None else max_steps,
        max_wall_time,
    )
    budget.check(n_steps)

    times = np.linspace(t_start, t_end, n_steps + 1)
    h = (t_end - t_start) / n_steps
    sqrt_h = np.sqrt(h)
    n_saved = n_steps + 1 if save_every_step else 2

    states = np.empty((n_saved, len(u)))
    brownian = np.empty((n_saved, len(u)))
    states[0] = u
    brownian[0] = 0.0
    W = np.zeros_like(u)

    for i in range(n_steps):
        t = times[i]
        dW = rng.standard_normal(u.shape) * sqrt_h
        drift = f(t, u)
        noise = g(t, u)

        if method is SDEMethod.EULER_MARUYAMA:
            u = u + drift * h + noise * dW
        else:
            # Derivative-free Milstein: g' g is approximated by a
            # supporting value one sqrt(h) noise increment ahead.
            support = u + drift * h + noise * sqrt_h
            correction = (g(t, support) - noise) * (dW**2 - h) / (2 * sqrt_h)
            u = u + drift * h + noise * dW + correction

        W = W + dW
        if not np.all(np.isfinite(u)):
            raise SolveFailure(
                f"{method.value} produced a non-finite state at t={times[i + 1]:.6g}"
            )
        if save_every_step:
            states[i + 1] = u
            brownian[i + 1] = W
        if max_wall_time is not None:
            budget.check(i + 1)

    if not save_every_step:
        states[-1] = u
        brownian[-1] = W
        times = np.array([t_start, t_end])

    return Trajectory(
        times=times,
        states=states,
        brownian=brownian,
        n_steps=n_steps,
    )
