"""
tests/test_matrices.py – Unit tests for the homogeneous system matrices
and their matrix-exponential propagators.
=======================================================================

Physics invariants under test:

  A. Layout        – literal entries of the 4x4, 10x10 and 13x13 generators
  B. Structure     – last row zero, shared diagonal blocks, nesting
  C. Propagators   – agree with the analytic propagators
  D. Sensitivities – propagated dM/dp match central finite differences

Run with:  pytest tests/ -v
"""

import numpy as np
import pytest
import sys, os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from blochsim.core import bloch_pdy, bloch_relaxation, bloch_excitation
from blochsim.matrices import (
    assemble_system_matrix, bloch_block,
    bloch_matrix_ode, bloch_matrix_ode_sa, bloch_matrix_ode_sa2,
    matrix_exponential,
    bloch_matrix_int, bloch_matrix_int_sa, bloch_matrix_int_sa2,
)


R1, R2 = 1.2, 9.0
GB = np.array([2.0, -3.0, 25.0])
PHASE, B1 = 0.6, 0.85
M_TEST = np.array([0.2, -0.6, 0.4])
H = 1e-6


def _random_params(rng):
    return (rng.uniform(0, 5), rng.uniform(0, 50), rng.normal(scale=30, size=3),
            rng.uniform(-np.pi, np.pi), rng.uniform(0.5, 1.5))


# ===========================================================================
# Group A – literal layout
# ===========================================================================

class TestLayout:
    def test_base_matrix(self):
        gx, gy, gz = GB
        expected = np.array([
            [-R2,  gz, -gy, 0.],
            [-gz, -R2,  gx, 0.],
            [ gy, -gx, -R1, R1],
            [0.,   0.,  0., 0.],
        ])
        assert np.array_equal(bloch_matrix_ode(R1, R2, GB), expected)

    def test_sa_entries(self):
        A = bloch_matrix_ode_sa(R1, R2, GB)
        assert A.shape == (10, 10)
        base = bloch_matrix_ode(R1, R2, GB)[:3, :3]
        for b in range(3):
            assert np.array_equal(A[3 * b:3 * b + 3, 3 * b:3 * b + 3], base)

        assert A[5, 2] == -1.0
        assert A[6, 0] == -1.0 and A[7, 1] == -1.0
        assert A[2, 9] == R1 and A[5, 9] == 1.0

        mask = np.ones_like(A, dtype=bool)
        for b in range(3):
            mask[3 * b:3 * b + 3, 3 * b:3 * b + 3] = False
        mask[5, 2] = mask[6, 0] = mask[7, 1] = mask[2, 9] = mask[5, 9] = False
        assert np.all(A[mask] == 0.0)

    def test_sa2_entries(self):
        A = bloch_matrix_ode_sa2(R1, R2, GB, PHASE, B1)
        s, c = np.sin(PHASE), np.cos(PHASE)
        assert A.shape == (13, 13)
        assert np.array_equal(A[9:12, 9:12], bloch_matrix_ode(R1, R2, GB)[:3, :3])
        assert np.isclose(A[9, 2], s * B1)
        assert np.isclose(A[10, 2], c * B1)
        assert np.isclose(A[11, 0], -s * B1)
        assert np.isclose(A[11, 1], -c * B1)
        assert A[11, 2] == 0.0
        assert A[2, 12] == R1 and A[5, 12] == 1.0
        assert np.all(A[9:12, 12] == 0.0)

    def test_sa2_contains_sa(self):
        A10 = bloch_matrix_ode_sa(R1, R2, GB)
        A13 = bloch_matrix_ode_sa2(R1, R2, GB, PHASE, B1)
        assert np.array_equal(A13[:9, :9], A10[:9, :9])
        assert np.array_equal(A13[:9, 12], A10[:9, 9])
        assert np.all(A13[:9, 9:12] == 0.0)


# ===========================================================================
# Group B – structure
# ===========================================================================

class TestStructure:
    def test_last_row_zero(self):
        rng = np.random.default_rng(1)
        for _ in range(10):
            r1, r2, gb, phase, b1 = _random_params(rng)
            for A in (bloch_matrix_ode(r1, r2, gb),
                      bloch_matrix_ode_sa(r1, r2, gb),
                      bloch_matrix_ode_sa2(r1, r2, gb, phase, b1)):
                assert np.all(A[-1] == 0.0)

    def test_block_equals_state_jacobian(self):
        rng = np.random.default_rng(2)
        for _ in range(10):
            r1, r2, gb, _, _ = _random_params(rng)
            assert np.array_equal(bloch_block(r1, r2, gb), bloch_pdy(M_TEST, r1, r2, gb))
            assert np.array_equal(bloch_matrix_ode(r1, r2, gb)[:3, :3],
                                  bloch_pdy(M_TEST, r1, r2, gb))

    def test_forcing_only_in_last_column(self):
        A = bloch_matrix_ode(R1, R2, np.zeros(3))
        assert np.all(A[:3, 3] == [0., 0., R1])


class TestAssemble:
    def test_single_block(self):
        blk = np.arange(9.0).reshape(3, 3)
        A = assemble_system_matrix([blk])
        assert A.shape == (4, 4)
        assert np.array_equal(A[:3, :3], blk)
        assert np.all(A[3] == 0.0) and np.all(A[:, 3] == 0.0)

    def test_couplings_accumulate(self):
        I = np.eye(3)
        A = assemble_system_matrix([I, I], couplings=[(0, 0, I), (1, 0, 2 * I), (1, 0, I)])
        assert np.array_equal(A[0:3, 0:3], 2 * I)
        assert np.array_equal(A[3:6, 0:3], 3 * I)
        assert np.all(A[0:3, 3:6] == 0.0)

    def test_forcing(self):
        A = assemble_system_matrix([np.zeros((3, 3))] * 2, forcing=[(2, 0.5), (5, 1.5), (5, 1.0)])
        assert A[2, 6] == 0.5 and A[5, 6] == 2.5
        assert np.all(A[6] == 0.0)


# ===========================================================================
# Group C – propagators
# ===========================================================================

class TestPropagators:
    def test_matches_analytic_relaxation(self):
        gb = np.array([0., 0., GB[2]])
        for t in [0.0, 0.01, 0.3, 2.0]:
            X = bloch_matrix_int(t, R1, R2, gb) @ np.append(M_TEST, 1.0)
            assert np.allclose(X[:3], bloch_relaxation(M_TEST, t, R1, R2, gb), atol=1e-10)
            assert np.isclose(X[3], 1.0)

    def test_matches_analytic_excitation(self):
        gb = np.array([7.0, 0., 0.])
        t = 0.2
        X = bloch_matrix_int(t, 0.0, 0.0, gb) @ np.append(M_TEST, 1.0)
        assert np.allclose(X[:3], bloch_excitation(M_TEST, t, 0.0, 0.0, gb), atol=1e-10)

    def test_steady_state_is_equilibrium(self):
        X = bloch_matrix_int(60.0, R1, R2, [0., 0., GB[2]]) @ np.append(M_TEST, 1.0)
        assert np.allclose(X, [0., 0., 1., 1.], atol=1e-10)

    def test_zero_time_is_identity(self):
        assert np.allclose(bloch_matrix_int_sa2(0.0, R1, R2, GB, PHASE, B1), np.eye(13))

    def test_composition(self):
        P1 = bloch_matrix_int(0.1, R1, R2, GB)
        P2 = bloch_matrix_int(0.2, R1, R2, GB)
        assert np.allclose(P2 @ P1, bloch_matrix_int(0.3, R1, R2, GB), atol=1e-12)

    def test_sa_state_block_matches_base(self):
        t = 0.15
        idx = [0, 1, 2, 9]
        P10 = bloch_matrix_int_sa(t, R1, R2, GB)
        assert np.allclose(P10[np.ix_(idx, idx)], bloch_matrix_int(t, R1, R2, GB), atol=1e-12)

    def test_matrix_exponential_scales_time(self):
        A = bloch_matrix_ode(R1, R2, GB)
        assert np.allclose(matrix_exponential(A, 0.4), matrix_exponential(2 * A, 0.2))


# ===========================================================================
# Group D – sensitivities vs finite differences
# ===========================================================================

def _propagate(t, r1, r2, gb):
    return (bloch_matrix_int(t, r1, r2, gb) @ np.append(M_TEST, 1.0))[:3]


class TestSensitivities:
    @pytest.mark.parametrize("t", [0.05, 0.3, 1.0])
    def test_sa_against_finite_differences(self, t):
        X0 = np.concatenate([M_TEST, np.zeros(6), [1.0]])
        X = bloch_matrix_int_sa(t, R1, R2, GB) @ X0

        assert np.allclose(X[:3], _propagate(t, R1, R2, GB), atol=1e-10)

        dR1 = (_propagate(t, R1 + H, R2, GB) - _propagate(t, R1 - H, R2, GB)) / (2 * H)
        dR2 = (_propagate(t, R1, R2 + H, GB) - _propagate(t, R1, R2 - H, GB)) / (2 * H)
        assert np.allclose(X[3:6], dR1, atol=1e-6)
        assert np.allclose(X[6:9], dR2, atol=1e-6)

    @pytest.mark.parametrize("phase", [0.0, PHASE, 2.2])
    def test_sa2_b1_against_finite_differences(self, phase):
        """B1 scales an RF field along [cos(phase), -sin(phase), 0] * b1."""
        t, gz = 0.3, 4.0
        direction = np.array([np.cos(phase), -np.sin(phase), 0.0])

        def gb(B):
            return B * B1 * direction + [0., 0., gz]

        X0 = np.concatenate([M_TEST, np.zeros(9), [1.0]])
        X = bloch_matrix_int_sa2(t, R1, R2, gb(1.0), phase, B1) @ X0

        dB = (_propagate(t, R1, R2, gb(1.0 + H)) - _propagate(t, R1, R2, gb(1.0 - H))) / (2 * H)
        assert np.allclose(X[9:12], dB, atol=1e-6)
        assert np.isclose(X[12], 1.0)

    def test_sensitivities_start_at_zero_stay_zero_at_equilibrium(self):
        X0 = np.concatenate([[0., 0., 1.], np.zeros(6), [1.0]])
        X = bloch_matrix_int_sa(2.0, R1, R2, [0., 0., GB[2]]) @ X0
        assert np.allclose(X[3:9], 0.0, atol=1e-12)
