"""Trajectory data structure for storing integrator output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np
from scipy.interpolate import interp1d


@dataclass
class Trajectory:
    """A trajectory storing time points and state values.

    Attributes:
        times: 1D array of time points, shape (n_points,)
        states: 2D array of states, shape (n_points, n_dims)
        brownian: Brownian path W at the saved times, shape (n_points, n_dims).
            Only set for SDE solves.
        interpolant: Dense output callable t -> state(s), if the solve
            produced one.
        n_steps: Number of integrator steps taken.
    """
    times: np.ndarray
    states: np.ndarray
    brownian: np.ndarray | None = None
    interpolant: Callable[[float | np.ndarray], np.ndarray] | None = None
    n_steps: int = 0

    def __post_init__(self) -> None:
        self.times = np.asarray(self.times, dtype=float)
        self.states = np.asarray(self.states, dtype=float)

        if self.states.ndim == 1:
            self.states = self.states.reshape(-1, 1)

        if len(self.times) != len(self.states):
            raise ValueError(
                f"Length mismatch: times has {len(self.times)} points, "
                f"states has {len(self.states)} points"
            )

        if self.brownian is not None:
            self.brownian = np.asarray(self.brownian, dtype=float)
            if self.brownian.ndim == 1:
                self.brownian = self.brownian.reshape(-1, 1)
            if self.brownian.shape != self.states.shape:
                raise ValueError(
                    f"Brownian path shape {self.brownian.shape} does not match "
                    f"states shape {self.states.shape}"
                )

    @property
    def n_points(self) -> int:
        """Number of time points in the trajectory."""
        return len(self.times)

    @property
    def n_dims(self) -> int:
        """Dimension of the state space."""
        return self.states.shape[1]

    @property
    def t_start(self) -> float:
        return float(self.times[0])

    @property
    def t_end(self) -> float:
        return float(self.times[-1])

    @property
    def has_dense_output(self) -> bool:
        return self.interpolant is not None

    @property
    def initial_state(self) -> np.ndarray:
        """Initial state of the trajectory."""
        return self.states[0].copy()

    @property
    def final_state(self) -> np.ndarray:
        """Final state of the trajectory."""
        return self.states[-1].copy()

    @property
    def final_brownian(self) -> np.ndarray | None:
        """Brownian value at the final time, if recorded."""
        if self.brownian is None:
            return None
        return self.brownian[-1].copy()

    @property
    def is_finite(self) -> bool:
        """Whether every stored state is finite."""
        return bool(np.all(np.isfinite(self.states)))

    def interpolate(self, t: float | np.ndarray) -> np.ndarray:
        """Evaluate the trajectory at given time(s).

        Uses the dense output when available, otherwise linear interpolation
        between saved points.

        Args:
            t: Time point(s) at which to interpolate.

        Returns:
            State(s) at the given time(s). Shape (n_dims,) for scalar t,
            or (n_times, n_dims) for array t.
        """
        t = np.asarray(t, dtype=float)
        scalar_input = t.ndim == 0
        t = np.atleast_1d(t)

        if self.interpolant is not None:
            # scipy dense output returns (n_dims, n_times)
            result = np.asarray(self.interpolant(t)).reshape(self.n_dims, -1).T
        else:
            interpolator = interp1d(
                self.times, self.states, axis=0,
                kind='linear', bounds_error=True
            )
            result = interpolator(t)

        if scalar_input:
            return result[0]
        return result

    def __len__(self) -> int:
        return self.n_points

    def __repr__(self) -> str:
        return (
            f"Trajectory(n_points={self.n_points}, n_dims={self.n_dims}, "
            f"n_steps={self.n_steps}, t=[{self.t_start:.4f}, {self.t_end:.4f}])"
        )
