"""
sequences.py - Propagating augmented states through pulse sequences.
====================================================================

An augmented state is the homogeneous vector used by the system
matrices:

    X = [M, dM/dp_1, ..., dM/dp_K, 1]        len(X) = 4 + 3K

with K = 0 (plain state), 2 (R1, R2) or 3 (R1, R2, B1).

Building blocks:
  - augmented_state / split_state : pack and unpack X
  - apply_pulse                   : instantaneous RF rotation of every block
  - free_evolve                   : one matrix-propagator step, size picked from X
  - inversion_recovery            : Mz(t) and its R1/R2 derivatives
  - look_locker                   : inversion + train of small-angle pulses
  - exchange_evolution            : multi-pool Bloch-McConnell relaxation
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .rotations import rotation_matrix
from .exchange import ExchangePools, bloch_mcconnell_matrix_int
from .matrices import bloch_matrix_int, bloch_matrix_int_sa, bloch_matrix_int_sa2


_EQUILIBRIUM = np.array([0.0, 0.0, 1.0])


# ===========================================================================
# Augmented state
# ===========================================================================

def augmented_state(M: np.ndarray, n_sens: int = 0) -> np.ndarray:
    """Pack M with *n_sens* zero sensitivities and the homogeneous 1."""
    if n_sens not in (0, 2, 3):
        raise ValueError(f"n_sens must be 0, 2 or 3, got {n_sens}")
    return np.concatenate([np.asarray(M, dtype=float), np.zeros(3 * n_sens), [1.0]])


def split_state(X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Inverse of :func:`augmented_state`.

    Returns
    -------
    M : (3,) np.ndarray
    S : (K, 3) np.ndarray   sensitivities, K may be 0
    """
    X = np.asarray(X, dtype=float)
    return X[:3].copy(), X[3:-1].reshape(-1, 3)


# ===========================================================================
# Segments
# ===========================================================================

def apply_pulse(X: np.ndarray, angle: float, phase: float = 0.0) -> np.ndarray:
    """Hard RF pulse applied to M and to every sensitivity block.

    Same rotation as :func:`core.bloch_excitation2`, built once as a
    matrix and applied to all blocks.

    The flip angle is taken as independent of the fitted parameters, so
    sensitivities rotate exactly like M.  B1 sensitivity is accrued
    only during finite RF segments (see :func:`free_evolve`).

    Invariant: the homogeneous entry X[-1] is left unchanged.
    """
    X = np.asarray(X, dtype=float)
    R = rotation_matrix("z", phase) @ rotation_matrix("x", angle) @ rotation_matrix("z", -phase)
    out = X.copy()
    out[:-1] = (X[:-1].reshape(-1, 3) @ R.T).ravel()
    return out


def free_evolve(
    X: np.ndarray,
    t: float,
    r1: float,
    r2: float,
    gb: np.ndarray,
    phase: float = 0.0,
    b1: float = 1.0,
) -> np.ndarray:
    """Advance augmented state X by *t* under a constant field *gb*.

    The propagator (4x4, 10x10 or 13x13) is chosen from len(X); *phase*
    and *b1* are only used by the 13x13 case.

    Raises
    ------
    ValueError
        If *t* is negative or len(X) is not 4, 10 or 13.
    """
    if t < 0:
        raise ValueError(f"t must be non-negative, got {t}")
    X = np.asarray(X, dtype=float)
    n = len(X)
    if n == 4:
        P = bloch_matrix_int(t, r1, r2, gb)
    elif n == 10:
        P = bloch_matrix_int_sa(t, r1, r2, gb)
    elif n == 13:
        P = bloch_matrix_int_sa2(t, r1, r2, gb, phase, b1)
    else:
        raise ValueError(f"augmented state must have length 4, 10 or 13, got {n}")
    return P @ X


# ===========================================================================
# Sequences
# ===========================================================================

def inversion_recovery(
    r1: float,
    r2: float,
    times: np.ndarray,
    gb: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Ideal inversion at t = 0 followed by free relaxation.

    On resonance the longitudinal signal and its R1 derivative are

        Mz(t)      = 1 - 2 exp(-R1 t)
        dMz/dR1(t) = 2 t exp(-R1 t)

    Parameters
    ----------
    r1, r2 : float       relaxation rates
    times  : (T,) array  inversion times (>= 0)
    gb     : (3,) array  field during recovery (default 0)

    Returns
    -------
    M, dM_dR1, dM_dR2 : np.ndarray, shape (T, 3) each
    """
    times = np.atleast_1d(np.asarray(times, dtype=float))
    if np.any(times < 0):
        raise ValueError("inversion times must be non-negative")
    gb = np.zeros(3) if gb is None else np.asarray(gb, dtype=float)

    X0 = apply_pulse(augmented_state(_EQUILIBRIUM, n_sens=2), np.pi)

    M, dR1, dR2 = [], [], []
    for t in times:
        m, S = split_state(free_evolve(X0, t, r1, r2, gb))
        M.append(m)
        dR1.append(S[0])
        dR2.append(S[1])
    return np.array(M), np.array(dR1), np.array(dR2)


def look_locker(
    r1: float,
    r2: float,
    angle: float,
    tr: float,
    n_pulses: int,
    phase: float = 0.0,
    inversion: bool = True,
    gb: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Inversion-prepared train of hard pulses separated by *tr*.

    Sample n is taken directly after pulse n, i.e. at time n * tr after
    the (optional) inversion.

    Returns
    -------
    M : (n_pulses, 3) np.ndarray
    S : (n_pulses, 2, 3) np.ndarray   dM/dR1, dM/dR2 per sample
    """
    if n_pulses < 1:
        raise ValueError(f"n_pulses must be >= 1, got {n_pulses}")
    if tr <= 0:
        raise ValueError(f"tr must be positive, got {tr}")
    gb = np.zeros(3) if gb is None else np.asarray(gb, dtype=float)

    X = augmented_state(_EQUILIBRIUM, n_sens=2)
    if inversion:
        X = apply_pulse(X, np.pi)

    P = bloch_matrix_int_sa(tr, r1, r2, gb)

    M_all, S_all = [], []
    for n in range(n_pulses):
        if n > 0:
            X = P @ X
        X = apply_pulse(X, angle, phase)
        m, S = split_state(X)
        M_all.append(m)
        S_all.append(S)
    return np.array(M_all), np.array(S_all)


def exchange_evolution(
    pools: ExchangePools,
    times: np.ndarray,
    M_init: Optional[np.ndarray] = None,
    gb: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Evolve a multi-pool state under Bloch-McConnell dynamics.

    Parameters
    ----------
    pools  : ExchangePools
    times  : (T,) array       evaluation times (>= 0)
    M_init : (P, 3) array     initial per-pool magnetisation; default is
                              every pool inverted, [0, 0, -fraction[p]]
    gb     : (3,) array       shared field (default 0)

    Returns
    -------
    M : (T, P, 3) np.ndarray
    """
    times = np.atleast_1d(np.asarray(times, dtype=float))
    if np.any(times < 0):
        raise ValueError("times must be non-negative")
    gb = np.zeros(3) if gb is None else np.asarray(gb, dtype=float)
    P = pools.n_pools

    if M_init is None:
        M_init = np.zeros((P, 3))
        M_init[:, 2] = -pools.fraction
    M_init = np.asarray(M_init, dtype=float)
    if M_init.shape != (P, 3):
        raise ValueError(f"M_init must have shape ({P}, 3), got {M_init.shape}")

    X0 = np.concatenate([M_init.ravel(), [1.0]])
    return np.array([(bloch_mcconnell_matrix_int(t, pools, gb) @ X0)[:-1].reshape(P, 3)
                     for t in times])
