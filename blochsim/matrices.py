"""
matrices.py - Homogeneous-coordinate system matrices for the Bloch equations.
=============================================================================

The affine Bloch ODE  dM/dt = J M + b  is made linear by appending a
constant coordinate:

    X = [M, 1]        dX/dt = A X        A = [[J, b],
                                              [0, 0]]

so a finite step of length t is just  X(t) = expm(A t) X(0).

Parameter sensitivities S_p = dM/dp obey the same operator J plus a
forcing term that is affine in M:

    dS_p/dt = J S_p + dF/dp(M),      dF/dp(M) = C_p M + c_p

Stacking [M, S_p1, S_p2, ..., 1] gives one larger linear system whose
diagonal blocks are all J, whose block (p, 0) is C_p and whose last
column holds b and c_p.  Every builder below goes through
:func:`assemble_system_matrix`; the C_p / c_p are read off the explicit
parameter Jacobians in :mod:`core`, so matrix entries and Jacobians are
the same numbers by construction.

Dimensions:
    bloch_matrix_ode      4 x 4    [M, 1]
    bloch_matrix_ode_sa  10 x 10   [M, dM/dR1, dM/dR2, 1]
    bloch_matrix_ode_sa2 13 x 13   [M, dM/dR1, dM/dR2, dM/dB1, 1]
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence, Tuple

import numpy as np
from scipy.linalg import expm

from .core import M0, bloch_pdy, bloch_pdp, bloch_b1_pdp


log = logging.getLogger(__name__)

_ORIGIN = np.zeros(3)


# ===========================================================================
# Generic assembler
# ===========================================================================

def bloch_block(r1: float, r2: float, gb: np.ndarray) -> np.ndarray:
    """3x3 linear Bloch operator J (identical to :func:`core.bloch_pdy`)."""
    return bloch_pdy(_ORIGIN, r1, r2, gb)


def assemble_system_matrix(
    blocks: Sequence[np.ndarray],
    couplings: Iterable[Tuple[int, int, np.ndarray]] = (),
    forcing: Iterable[Tuple[int, float]] = (),
) -> np.ndarray:
    """Embed 3x3 blocks into a (1 + 3P) x (1 + 3P) homogeneous system.

    Parameters
    ----------
    blocks    : P arrays of shape (3, 3), placed on the diagonal at 3p
    couplings : (p, q, C) triples; C is added at rows 3p..3p+2,
                columns 3q..3q+2 (p may equal q)
    forcing   : (row, value) pairs added to the last column

    Returns
    -------
    A : np.ndarray, shape (N, N) with N = 1 + 3P and A[N-1] == 0
    """
    N = 1 + 3 * len(blocks)
    A = np.zeros((N, N))

    for p, blk in enumerate(blocks):
        A[3 * p:3 * p + 3, 3 * p:3 * p + 3] = blk

    for p, q, C in couplings:
        A[3 * p:3 * p + 3, 3 * q:3 * q + 3] += C

    for row, value in forcing:
        A[row, N - 1] += value

    return A


def _affine_parts(pdp: Callable[[np.ndarray], np.ndarray]) -> Tuple[np.ndarray, np.ndarray]:
    """Split a parameter Jacobian P(M) = C_k M + c_k into (C, c).

    Returns C of shape (K, 3, 3) and c of shape (K, 3).
    """
    c = pdp(_ORIGIN)
    C = np.stack([pdp(e) - c for e in np.eye(3)], axis=-1)
    return C, c


def _sensitivity_matrix(
    r1: float,
    r2: float,
    gb: np.ndarray,
    pdp: Callable[[np.ndarray], np.ndarray],
) -> np.ndarray:
    J = bloch_block(r1, r2, gb)
    C, c = _affine_parts(pdp)
    K = len(c)

    couplings = [(k + 1, 0, C[k]) for k in range(K)]
    forcing = [(2, M0 * r1)]
    forcing += [(3 * (k + 1) + i, c[k, i]) for k in range(K) for i in range(3)]

    return assemble_system_matrix([J] * (K + 1), couplings, forcing)


# ===========================================================================
# Builders
# ===========================================================================

def bloch_matrix_ode(r1: float, r2: float, gb: np.ndarray) -> np.ndarray:
    """Base 4x4 system for X = [Mx, My, Mz, 1].

        [[-r2,  gz, -gy,  0 ],
         [-gz, -r2,  gx,  0 ],
         [ gy, -gx, -r1,  r1],
         [  0,   0,   0,  0 ]]
    """
    return assemble_system_matrix([bloch_block(r1, r2, gb)], forcing=[(2, M0 * r1)])


def bloch_matrix_ode_sa(r1: float, r2: float, gb: np.ndarray) -> np.ndarray:
    """10x10 system for X = [M, dM/dR1, dM/dR2, 1].

    Couplings: A[5, 2] = -1 (R1), A[6, 0] = A[7, 1] = -1 (R2).
    Forcing:   A[2, 9] = r1, A[5, 9] = 1.
    """
    return _sensitivity_matrix(r1, r2, gb, lambda M: bloch_pdp(M, r1, r2, gb))


def bloch_matrix_ode_sa2(
    r1: float,
    r2: float,
    gb: np.ndarray,
    phase: float,
    b1: float,
) -> np.ndarray:
    """13x13 system for X = [M, dM/dR1, dM/dR2, dM/dB1, 1].

    As :func:`bloch_matrix_ode_sa` plus the B1 block at rows/cols 9-11:

        A[9, 2]  =  sin(phase) b1      A[11, 0] = -sin(phase) b1
        A[10, 2] =  cos(phase) b1      A[11, 1] = -cos(phase) b1
    """
    return _sensitivity_matrix(
        r1, r2, gb, lambda M: bloch_b1_pdp(M, r1, r2, gb, phase, b1))


# ===========================================================================
# Integrators
# ===========================================================================

def matrix_exponential(A: np.ndarray, t: float) -> np.ndarray:
    """Propagator expm(A t) of a homogeneous system matrix."""
    log.debug("expm of %dx%d system, t=%g", A.shape[0], A.shape[1], t)
    return expm(np.asarray(A, dtype=float) * t)


def bloch_matrix_int(t: float, r1: float, r2: float, gb: np.ndarray) -> np.ndarray:
    """4x4 propagator over time *t*; apply as ``P @ [Mx, My, Mz, 1]``."""
    return matrix_exponential(bloch_matrix_ode(r1, r2, gb), t)


def bloch_matrix_int_sa(t: float, r1: float, r2: float, gb: np.ndarray) -> np.ndarray:
    """10x10 propagator of state and (R1, R2) sensitivities."""
    return matrix_exponential(bloch_matrix_ode_sa(r1, r2, gb), t)


def bloch_matrix_int_sa2(
    t: float,
    r1: float,
    r2: float,
    gb: np.ndarray,
    phase: float,
    b1: float,
) -> np.ndarray:
    """13x13 propagator of state and (R1, R2, B1) sensitivities."""
    return matrix_exponential(bloch_matrix_ode_sa2(r1, r2, gb, phase, b1), t)
