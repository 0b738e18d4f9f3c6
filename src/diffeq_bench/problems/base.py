"""Problem description shared read-only by every benchmark run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from ..errors import ConfigurationError


# f(t, u) -> du/dt
DynamicsFunction = Callable[[float, np.ndarray], np.ndarray]

# f(t, u, out) writes du/dt into out
InPlaceDynamicsFunction = Callable[[float, np.ndarray, np.ndarray], None]


@dataclass(frozen=True, eq=False)
class ProblemSpec:
    """An ODE or SDE initial value problem.

    For SDEs the noise is diagonal: du = f(t, u) dt + g(t, u) dW, with one
    independent Wiener process per state component.

    Attributes:
        dynamics: Drift/right-hand side f(t, u), or f(t, u, out) if inplace.
        initial_state: Initial condition, scalar or 1D array. Stored as a
            read-only float array of shape (n_dims,).
        time_span: Integration interval (t0, t1).
        analytic_solution: Exact solution. ODE: (t, u0) -> u(t).
            SDE: (t, u0, W) -> u(t), where W is the Brownian value at t.
        stochastic: Whether the problem is an SDE.
        diffusion: Noise coefficient g(t, u) (or g(t, u, out) if inplace).
            Required when stochastic.
        inplace: Whether dynamics and diffusion write into an output array.
        name: Display name.
    """
    dynamics: DynamicsFunction | InPlaceDynamicsFunction
    initial_state: np.ndarray
    time_span: tuple[float, float]
    analytic_solution: Callable[..., np.ndarray] | None = None
    stochastic: bool = False
    diffusion: DynamicsFunction | InPlaceDynamicsFunction | None = None
    inplace: bool = False
    name: str = "problem"

    def __post_init__(self) -> None:
        u0 = np.array(self.initial_state, dtype=float, ndmin=1)
        if u0.ndim != 1:
            raise ConfigurationError(
                f"Problem '{self.name}': initial state must be a scalar or 1D "
                f"array, got shape {u0.shape}"
            )
        u0.setflags(write=False)
        object.__setattr__(self, 'initial_state', u0)

        t0, t1 = (float(t) for t in self.time_span)
        if not t1 > t0:
            raise ConfigurationError(
                f"Problem '{self.name}': time span must satisfy t0 < t1, "
                f"got ({t0}, {t1})"
            )
        object.__setattr__(self, 'time_span', (t0, t1))

        if self.stochastic and self.diffusion is None:
            raise ConfigurationError(
                f"Problem '{self.name}' is stochastic but has no diffusion term"
            )
        if not self.stochastic and self.diffusion is not None:
            raise ConfigurationError(
                f"Problem '{self.name}' has a diffusion term but is not "
                "marked stochastic"
            )

    @property
    def n_dims(self) -> int:
        """Dimension of the state space."""
        return self.initial_state.shape[0]

    @property
    def t0(self) -> float:
        return self.time_span[0]

    @property
    def t1(self) -> float:
        return self.time_span[1]

    @property
    def has_analytic(self) -> bool:
        """Whether an exact solution is available for error computation."""
        return self.analytic_solution is not None

    def rhs(self) -> DynamicsFunction:
        """Out-of-place drift f(t, u) returning a fresh float array."""
        return self._out_of_place(self.dynamics)

    def noise(self) -> DynamicsFunction:
        """Out-of-place diffusion g(t, u) returning a fresh float array."""
        if self.diffusion is None:
            raise ConfigurationError(
                f"Problem '{self.name}' has no diffusion term"
            )
        return self._out_of_place(self.diffusion)

    def _out_of_place(self, func) -> DynamicsFunction:
        if self.inplace:
            def wrapped(t: float, u: np.ndarray) -> np.ndarray:
                out = np.empty_like(u, dtype=float)
                func(t, u, out)
                return out
        else:
            def wrapped(t: float, u: np.ndarray) -> np.ndarray:
                return np.asarray(func(t, u), dtype=float).reshape(u.shape)
        return wrapped

    def exact(self, t: float, brownian: np.ndarray | None = None) -> np.ndarray:
        """Evaluate the analytic solution at time t.

        Args:
            t: Time point.
            brownian: Brownian value W(t); required for SDEs.

        Returns:
            Exact state, shape (n_dims,).
        """
        if self.analytic_solution is None:
            raise ConfigurationError(
                f"Problem '{self.name}' has no analytic solution"
            )
        u0 = self.initial_state.copy()
        if self.stochastic:
            if brownian is None:
                raise ValueError("SDE analytic solution needs the Brownian value W(t)")
            value = self.analytic_solution(t, u0, brownian)
        else:
            value = self.analytic_solution(t, u0)
        return np.array(value, dtype=float, ndmin=1).reshape(self.n_dims)

    def __repr__(self) -> str:
        kind = "SDE" if self.stochastic else "ODE"
        return (
            f"ProblemSpec(name={self.name!r}, {kind}, n_dims={self.n_dims}, "
            f"t=[{self.t0:.4g}, {self.t1:.4g}])"
        )
