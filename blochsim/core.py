"""
core.py - Bloch equations, Jacobians and analytic propagators.
==============================================================

Normalised Bloch equations (equilibrium Mz = M0 = 1) in a field
gb = [gx, gy, gz] given in rad / time, same units as R1 = 1/T1 and
R2 = 1/T2:

    dMx/dt = (M x gb)_x  -  R2 * Mx
    dMy/dt = (M x gb)_y  -  R2 * My
    dMz/dt = (M x gb)_z  -  R1 * (Mz - 1)

gx, gy are the transverse RF field; gz collects off-resonance and
gradient contributions.

Layout conventions for the derivatives returned here:

    bloch_pdy    : J[i, j]  = dF_i / dM_j        (ordinary Jacobian)
    bloch_pdp    : P[k, :]  = dF / dp_k,   p = (R1, R2)
    bloch_b1_pdp : P[k, :]  = dF / dp_k,   p = (R1, R2, B1)

so that a sensitivity S_k = dM/dp_k obeys  dS_k/dt = J @ S_k + P[k].
"""

from __future__ import annotations

import numpy as np

from .rotations import rotx, rotz, vec3_rot


M0 = 1.0    # equilibrium magnetisation


# ===========================================================================
# Right-hand side
# ===========================================================================

def bloch_ode(
    M: np.ndarray,
    r1: float,
    r2: float,
    gb: np.ndarray,
) -> np.ndarray:
    """Instantaneous derivative dM/dt of the Bloch equations.

    Parameters
    ----------
    M      : (3,) array   magnetisation [Mx, My, Mz]
    r1, r2 : float        longitudinal / transverse relaxation rates
    gb     : (3,) array   field [gx, gy, gz] in rad / time

    Returns
    -------
    dMdt : (3,) np.ndarray

    Examples
    --------
    >>> bloch_ode([0., 0., 1.], 1.0, 10.0, [0., 0., 5.])
    array([0., 0., 0.])
    """
    M = np.asarray(M, dtype=float)
    out = vec3_rot(M, gb)
    out[0] -= M[0] * r2
    out[1] -= M[1] * r2
    out[2] -= (M[2] - M0) * r1
    return out


# ===========================================================================
# Jacobians
# ===========================================================================

def bloch_pdy(
    M: np.ndarray,
    r1: float,
    r2: float,
    gb: np.ndarray,
) -> np.ndarray:
    """Jacobian dF/dM of :func:`bloch_ode` (3x3).

    The ODE is linear in M, so the result does not depend on *M*; it is
    the cross-product operator of *gb* with R2, R2, R1 subtracted on the
    diagonal.  Column j is the precession of the unit vector e_j.

    Returns
    -------
    J : (3, 3) np.ndarray with J[i, j] = dF_i / dM_j

    Invariant
    ---------
    ``bloch_pdy(M, r1, r2, gb) == bloch_matrix_ode(r1, r2, gb)[:3, :3]``
    """
    J = np.column_stack([vec3_rot(e, gb) for e in np.eye(3)])
    J[0, 0] -= r2
    J[1, 1] -= r2
    J[2, 2] -= r1
    return J


def bloch_pdp(
    M: np.ndarray,
    r1: float,
    r2: float,
    gb: np.ndarray,
) -> np.ndarray:
    """Derivatives of :func:`bloch_ode` with respect to (R1, R2).

    Returns
    -------
    P : (2, 3) np.ndarray
        P[0] = dF/dR1 = [0, 0, -(Mz - 1)]
        P[1] = dF/dR2 = [-Mx, -My, 0]
    """
    Mx, My, Mz = np.asarray(M, dtype=float)
    return np.array([
        [0.0, 0.0, -(Mz - M0)],
        [-Mx, -My, 0.0],
    ])


def bloch_b1_pdp(
    M: np.ndarray,
    r1: float,
    r2: float,
    gb: np.ndarray,
    phase: float,
    b1: float,
) -> np.ndarray:
    """Derivatives of :func:`bloch_ode` with respect to (R1, R2, B1).

    Extends :func:`bloch_pdp` by the B1 row for an RF field of transmit
    *phase* scaled by *b1*:

        dF/dB1 = b1 * [ sin(phase) Mz,
                        cos(phase) Mz,
                       -(sin(phase) Mx + cos(phase) My) ]

    Returns
    -------
    P : (3, 3) np.ndarray, rows ordered (R1, R2, B1)
    """
    Mx, My, Mz = np.asarray(M, dtype=float)
    s, c = np.sin(phase), np.cos(phase)
    return np.vstack([
        bloch_pdp(M, r1, r2, gb),
        [s * Mz * b1, c * Mz * b1, -(s * Mx + c * My) * b1],
    ])


# ===========================================================================
# Analytic propagators
# ===========================================================================

def bloch_relaxation(
    M: np.ndarray,
    t: float,
    r1: float,
    r2: float,
    gb: np.ndarray,
) -> np.ndarray:
    """Exact free precession + relaxation over time *t* (no RF).

        M_perp -> rotz(M_perp, gz t) * exp(-t R2)
        Mz     -> Mz + (1 - Mz)(1 - exp(-t R1))

    Raises
    ------
    ValueError
        If a transverse field component is non-zero; the closed form only
        holds without B1(t).  Not meant to be caught.
    """
    gb = np.asarray(gb, dtype=float)
    if gb[0] != 0.0 or gb[1] != 0.0:
        raise ValueError(f"bloch_relaxation requires gx = gy = 0, got gb={gb.tolist()}")

    M = np.asarray(M, dtype=float)
    out = rotz(M, gb[2] * t)
    out[0] *= np.exp(-t * r2)
    out[1] *= np.exp(-t * r2)
    out[2] += (M0 - M[2]) * (1.0 - np.exp(-t * r1))
    return out


def bloch_excitation(
    M: np.ndarray,
    t: float,
    r1: float,
    r2: float,
    gb: np.ndarray,
) -> np.ndarray:
    """Exact on-resonance RF rotation about x by gx * t (no relaxation).

    Raises
    ------
    ValueError
        If gz is non-zero (rotating frame, no gradient).  Not meant to be
        caught.
    """
    gb = np.asarray(gb, dtype=float)
    if gb[2] != 0.0:
        raise ValueError(f"bloch_excitation requires gz = 0, got gb={gb.tolist()}")
    return rotx(M, gb[0] * t)


def bloch_excitation2(M: np.ndarray, angle: float, phase: float) -> np.ndarray:
    """Hard RF pulse of flip *angle* and transmit *phase* (radians).

    Rotate into the pulse frame, flip about x, rotate back.

    Examples
    --------
    >>> np.round(bloch_excitation2([0., 0., 1.], np.pi / 2, 0.0), 12)
    array([0., 1., 0.])
    """
    return rotz(rotx(rotz(M, -phase), angle), phase)
