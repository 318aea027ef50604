"""
integrate.py - Reference numerical integration of the Bloch equations.
======================================================================

Adaptive Runge-Kutta (scipy solve_ivp) integration of

  * the state ODE              dM/dt   = F(M)
  * the sensitivity equations  dS_k/dt = J S_k + dF/dp_k(M)

driven directly by :func:`core.bloch_ode`, :func:`core.bloch_pdy` and
:func:`core.bloch_b1_pdp`.  This is slow compared to the matrix
propagators but shares no code with them, which makes it the
cross-check for the system matrices.
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np
from scipy.integrate import solve_ivp

from .core import bloch_ode, bloch_pdy, bloch_b1_pdp


log = logging.getLogger(__name__)


def time_axis(t_max: float, dt: float) -> np.ndarray:
    """Return sample times from 0 up to t_max, spaced by dt.

    Samples step by dt.  A sample overshooting t_max by less than dt / 2
    is moved onto t_max, so the final step can be shorter than dt.  No
    sample ever exceeds t_max.

    Examples
    --------
    >>> time_axis(1.0, 0.25)
    array([0.  , 0.25, 0.5 , 0.75, 1.  ])
    >>> time_axis(1.1, 0.4)
    array([0. , 0.4, 0.8, 1.1])
    """
    if t_max <= 0:
        raise ValueError(f"t_max must be positive, got {t_max}")
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")
    # np.arange can overshoot t_max by an epsilon; solve_ivp rejects that
    return np.clip(np.arange(0.0, t_max + dt * 0.5, dt), 0.0, t_max)


def _solve(rhs, y0, t_max, dt, method, rtol, atol):
    t_eval = time_axis(t_max, dt)
    log.debug("solve_ivp %s on %d states, %d samples", method, len(y0), len(t_eval))

    sol = solve_ivp(
        fun=rhs,
        t_span=(0.0, t_max),
        y0=y0,
        method=method,
        t_eval=t_eval,
        rtol=rtol,
        atol=atol,
    )
    if not sol.success:
        raise RuntimeError(f"solve_ivp failed: {sol.message}")
    return sol


def simulate_bloch(
    M_init: np.ndarray,
    r1: float,
    r2: float,
    gb: np.ndarray,
    t_max: float,
    dt: float,
    method: str = "RK45",
    rtol: float = 1e-8,
    atol: float = 1e-10,
) -> Tuple[np.ndarray, np.ndarray]:
    """Integrate :func:`core.bloch_ode` from *M_init* on a uniform grid.

    Parameters
    ----------
    M_init : (3,) array   initial magnetisation
    r1, r2 : float        relaxation rates
    gb     : (3,) array   constant field (rad / time)
    t_max  : float        end time
    dt     : float        output spacing
    method : str          solve_ivp method ('RK45', 'DOP853', 'Radau', ...)

    Returns
    -------
    t : (N,) np.ndarray
    M : (N, 3) np.ndarray
    """
    gb = np.asarray(gb, dtype=float)
    sol = _solve(lambda t, y: bloch_ode(y, r1, r2, gb),
                 np.asarray(M_init, dtype=float), t_max, dt, method, rtol, atol)
    return sol.t, sol.y.T


def simulate_sensitivities(
    M_init: np.ndarray,
    r1: float,
    r2: float,
    gb: np.ndarray,
    t_max: float,
    dt: float,
    phase: float = 0.0,
    b1: float = 1.0,
    method: str = "RK45",
    rtol: float = 1e-8,
    atol: float = 1e-10,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Integrate the state together with dM/dR1, dM/dR2 and dM/dB1.

    All sensitivities start at zero.

    Returns
    -------
    t : (N,) np.ndarray
    M : (N, 3) np.ndarray
    S : (N, 3, 3) np.ndarray, S[n, k] = dM/dp_k at t[n], p = (R1, R2, B1)
    """
    gb = np.asarray(gb, dtype=float)
    J = bloch_pdy(None, r1, r2, gb)

    def rhs(t, y):
        M = y[:3]
        S = y[3:].reshape(3, 3)
        dS = S @ J.T + bloch_b1_pdp(M, r1, r2, gb, phase, b1)
        return np.concatenate([bloch_ode(M, r1, r2, gb), dS.ravel()])

    y0 = np.concatenate([np.asarray(M_init, dtype=float), np.zeros(9)])
    sol = _solve(rhs, y0, t_max, dt, method, rtol, atol)
    y = sol.y.T
    return sol.t, y[:, :3], y[:, 3:].reshape(-1, 3, 3)
