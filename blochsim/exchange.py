"""
exchange.py - Multi-pool Bloch-McConnell (chemical exchange) systems.
=====================================================================

P chemically distinct pools each follow their own Bloch equations and
swap magnetisation at first-order rates k[p][q].  The state is

    X = [Mx_0, My_0, Mz_0,  Mx_1, My_1, Mz_1,  ...,  1]      (1 + 3P)

and the generator is assembled from per-pool 3x3 Bloch blocks (own R1,
R2, and off-resonance offset Om[p] added to gz) plus k[p][q] * I3 on
block (p, q).  Pool p recovers towards Th[p] (its equilibrium fraction),
so the last column carries Th[p] * R1[p] at row 3p + 2.

Sign convention for k is taken as given: the diagonal entries k[p][p]
act as efflux from pool p, the off-diagonal k[p][q] as influx into p
from q.  A conserving rate matrix therefore has negative diagonal and
columns summing to zero.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np

from .core import M0
from .matrices import assemble_system_matrix, bloch_block, matrix_exponential


class ExchangePools(NamedTuple):
    """Parameters of a P-pool exchange system.

    Fields
    ------
    r1, r2   : (P,) arrays   per-pool relaxation rates
    k        : (P, P) array  exchange-rate matrix
    fraction : (P,) array    equilibrium fraction Th[p]
    offset   : (P,) array    off-resonance Om[p] (rad / time)
    """
    r1: np.ndarray
    r2: np.ndarray
    k: np.ndarray
    fraction: np.ndarray
    offset: np.ndarray

    @classmethod
    def create(cls, r1, r2, k, fraction=None, offset=None) -> "ExchangePools":
        """Build a validated pool set; *fraction* defaults to 1/P each,
        *offset* to 0.

        Raises
        ------
        ValueError
            If no pool is given, per-pool arrays differ in length or k is
            not P x P.
        """
        r1 = np.atleast_1d(np.asarray(r1, dtype=float))
        r2 = np.atleast_1d(np.asarray(r2, dtype=float))
        P = r1.shape[0]
        if P < 1:
            raise ValueError("at least one pool is required")
        k = np.asarray(k, dtype=float)
        if k.ndim == 0:
            k = k.reshape(1, 1)
        if fraction is None:
            fraction = np.full(P, 1.0 / P)
        if offset is None:
            offset = np.zeros(P)
        fraction = np.atleast_1d(np.asarray(fraction, dtype=float))
        offset = np.atleast_1d(np.asarray(offset, dtype=float))

        for name, arr in (("r2", r2), ("fraction", fraction), ("offset", offset)):
            if arr.shape != (P,):
                raise ValueError(f"{name} must have shape ({P},), got {arr.shape}")
        if k.shape != (P, P):
            raise ValueError(f"k must have shape ({P}, {P}), got {k.shape}")

        return cls(r1, r2, k, fraction, offset)

    @property
    def n_pools(self) -> int:
        return len(self.r1)


def bloch_mcconnell_matrix_ode(pools: ExchangePools, gb: np.ndarray) -> np.ndarray:
    """(1 + 3P) x (1 + 3P) Bloch-McConnell generator.

    Parameters
    ----------
    pools : ExchangePools
    gb    : (3,) array   field shared by all pools; each pool sees
                         [gx, gy, gz + offset[p]]

    Returns
    -------
    A : np.ndarray
        With P = 1, k = 0, fraction = 1 this equals
        :func:`matrices.bloch_matrix_ode`.
    """
    gb = np.asarray(gb, dtype=float)
    P = pools.n_pools

    blocks = []
    for p in range(P):
        g = gb.copy()
        g[2] += pools.offset[p]
        blocks.append(bloch_block(pools.r1[p], pools.r2[p], g))

    forcing = [(3 * p + 2, M0 * pools.fraction[p] * pools.r1[p]) for p in range(P)]
    couplings = [(p, q, pools.k[p, q] * np.eye(3)) for p in range(P) for q in range(P)]

    return assemble_system_matrix(blocks, couplings, forcing)


def bloch_mcconnell_matrix_int(t: float, pools: ExchangePools, gb: np.ndarray) -> np.ndarray:
    """Propagator expm(A t) of :func:`bloch_mcconnell_matrix_ode`."""
    return matrix_exponential(bloch_mcconnell_matrix_ode(pools, gb), t)
