"""
rotations.py - Rotation primitives for Bloch vectors.
=====================================================

All rotations act in a RIGHT-handed coordinate system with a CLOCKWISE
rotation for angle > 0 (looking down the positive axis), which is the
same sense in which magnetisation precesses under the Bloch equations:

          z
          |
          |
          |_ _ _ _ y
         /
        /
       x

    rotx :  x' = x
            y' =  y cos(a) + z sin(a)
            z' = -y sin(a) + z cos(a)

The precession term of the Bloch equations, M x B, is the infinitesimal
form of the same rotation:  M + dt * (M x [0, 0, w])  ==  rotz(M, w dt)
to first order in dt.
"""

from __future__ import annotations

import numpy as np


# ---------------------------------------------------------------------------
# Single-axis rotations
# ---------------------------------------------------------------------------

def rotx(M: np.ndarray, angle: float) -> np.ndarray:
    """Rotate M clockwise about the x-axis by *angle* (radians)."""
    x, y, z = np.asarray(M, dtype=float)
    c, s = np.cos(angle), np.sin(angle)
    return np.array([x, y * c + z * s, -y * s + z * c])


def roty(M: np.ndarray, angle: float) -> np.ndarray:
    """Rotate M clockwise about the y-axis by *angle* (radians)."""
    x, y, z = np.asarray(M, dtype=float)
    c, s = np.cos(angle), np.sin(angle)
    return np.array([x * c - z * s, y, x * s + z * c])


def rotz(M: np.ndarray, angle: float) -> np.ndarray:
    """Rotate M clockwise about the z-axis by *angle* (radians)."""
    x, y, z = np.asarray(M, dtype=float)
    c, s = np.cos(angle), np.sin(angle)
    return np.array([x * c + y * s, -x * s + y * c, z])


# ---------------------------------------------------------------------------
# Precession (cross product)
# ---------------------------------------------------------------------------

def vec3_rot(M: np.ndarray, gb: np.ndarray) -> np.ndarray:
    """Precession term M x gb of the Bloch equations.

    Parameters
    ----------
    M  : (3,) array   magnetisation [Mx, My, Mz]
    gb : (3,) array   field [gx, gy, gz] in rad / time

    Returns
    -------
    (3,) np.ndarray
        [My*gz - Mz*gy,  Mz*gx - Mx*gz,  Mx*gy - My*gx]
    """
    return np.cross(np.asarray(M, dtype=float), np.asarray(gb, dtype=float))


# ---------------------------------------------------------------------------
# Matrix form
# ---------------------------------------------------------------------------

def _Rx(a: float) -> np.ndarray:
    c, s = np.cos(a), np.sin(a)
    return np.array([[1.0, 0.0, 0.0],
                     [0.0,   c,   s],
                     [0.0,  -s,   c]])


def _Ry(a: float) -> np.ndarray:
    c, s = np.cos(a), np.sin(a)
    return np.array([[  c, 0.0,  -s],
                     [0.0, 1.0, 0.0],
                     [  s, 0.0,   c]])


def _Rz(a: float) -> np.ndarray:
    c, s = np.cos(a), np.sin(a)
    return np.array([[  c,   s, 0.0],
                     [ -s,   c, 0.0],
                     [0.0, 0.0, 1.0]])


_ROT = {'x': _Rx, 'y': _Ry, 'z': _Rz}


def rotation_matrix(axis: str, angle: float) -> np.ndarray:
    """3x3 orthogonal matrix R with ``R @ M == rot<axis>(M, angle)``.

    Parameters
    ----------
    axis  : str    'x', 'y' or 'z'
    angle : float  rotation angle in radians (clockwise convention)

    Raises
    ------
    ValueError
        If *axis* is not one of 'x', 'y', 'z'.
    """
    if axis not in _ROT:
        raise ValueError(f"axis must be one of {list(_ROT)}, got '{axis}'")
    return _ROT[axis](angle)
