"""
visualization.py - Diagnostic figures for propagated states.
============================================================

  - plot_magnetization  : Mx, My, Mz and |M_perp| against time
  - plot_sensitivities  : dM/dp curves, one panel per parameter
  - plot_pool_recovery  : longitudinal recovery of each exchange pool
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt


C_MX   = "#E63946"
C_MY   = "#2C7BB6"
C_MZ   = "#6A994E"
C_PERP = "#9B2226"


def _style(ax, ylabel: str, time_unit: str) -> None:
    ax.axhline(0, color="black", lw=0.6, alpha=0.4)
    ax.set_xlabel(f"Time ({time_unit})", fontsize=11)
    ax.set_ylabel(ylabel, fontsize=11)
    ax.legend(fontsize=8, loc="best", framealpha=0.85)
    ax.grid(True, ls="--", alpha=0.35)
    ax.set_facecolor("#F9F9F9")


def _finish(fig, save_path: Optional[str]) -> plt.Figure:
    fig.patch.set_facecolor("white")
    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
    return fig


def plot_magnetization(
    t: np.ndarray,
    M: np.ndarray,
    title: str = "Magnetisation",
    time_unit: str = "s",
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Two panels: components on the left, |M_perp| on the right.

    Parameters
    ----------
    t : (N,) array      sample times
    M : (N, 3) array    magnetisation per sample
    """
    M = np.asarray(M, dtype=float)
    M_perp = np.hypot(M[:, 0], M[:, 1])

    fig, (ax_c, ax_p) = plt.subplots(1, 2, figsize=(11, 4.2))
    fig.suptitle(title, fontsize=13, fontweight="bold")

    ax_c.plot(t, M[:, 0], color=C_MX, lw=1.8, label=r"$M_x$")
    ax_c.plot(t, M[:, 1], color=C_MY, lw=1.8, label=r"$M_y$")
    ax_c.plot(t, M[:, 2], color=C_MZ, lw=2.0, label=r"$M_z$")
    ax_c.set_ylim(-1.15, 1.15)
    _style(ax_c, "Magnetisation", time_unit)

    ax_p.plot(t, M_perp, color=C_PERP, lw=2.0, label=r"$|M_\perp|$")
    ax_p.set_ylim(-0.05, 1.15)
    _style(ax_p, r"$|M_\perp|$", time_unit)

    return _finish(fig, save_path)


def plot_sensitivities(
    t: np.ndarray,
    S: np.ndarray,
    labels: Sequence[str] = ("R_1", "R_2", "B_1"),
    time_unit: str = "s",
    save_path: Optional[str] = None,
) -> plt.Figure:
    """One panel per parameter showing dMx/dp, dMy/dp, dMz/dp.

    Parameters
    ----------
    t      : (N,) array
    S      : (N, K, 3) array of sensitivities (K parameters)
    labels : K parameter names, rendered as math text
    """
    S = np.asarray(S, dtype=float)
    K = S.shape[1]

    fig, axes = plt.subplots(1, K, figsize=(4.5 * K, 4.0), squeeze=False)
    for k, ax in enumerate(axes[0]):
        name = labels[k] if k < len(labels) else f"p_{k}"
        for i, (comp, c) in enumerate(zip("xyz", (C_MX, C_MY, C_MZ))):
            ax.plot(t, S[:, k, i], color=c, lw=1.6,
                    label=rf"$\partial M_{comp} / \partial {name}$")
        ax.set_title(rf"Sensitivity to ${name}$", fontsize=10)
        _style(ax, "Sensitivity", time_unit)

    return _finish(fig, save_path)


def plot_pool_recovery(
    t: np.ndarray,
    M_pools: np.ndarray,
    fractions: Optional[np.ndarray] = None,
    time_unit: str = "s",
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Mz of every pool plus the total, with equilibrium fractions dashed.

    Parameters
    ----------
    t         : (N,) array
    M_pools   : (N, P, 3) array from :func:`sequences.exchange_evolution`
    fractions : (P,) equilibrium fractions (optional reference lines)
    """
    M_pools = np.asarray(M_pools, dtype=float)
    P = M_pools.shape[1]
    colors = plt.cm.viridis(np.linspace(0.1, 0.85, P))

    fig, ax = plt.subplots(figsize=(8, 4.5))
    for p in range(P):
        ax.plot(t, M_pools[:, p, 2], color=colors[p], lw=1.8, label=f"pool {p}")
        if fractions is not None:
            ax.axhline(fractions[p], color=colors[p], lw=1.0, ls="--", alpha=0.7)
    ax.plot(t, M_pools[:, :, 2].sum(axis=1), color="black", lw=2.0, label="total")
    ax.set_title("Exchange-coupled longitudinal recovery", fontsize=12, fontweight="bold")
    _style(ax, r"$M_z$", time_unit)

    return _finish(fig, save_path)
