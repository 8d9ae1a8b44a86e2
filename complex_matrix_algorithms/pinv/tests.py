"""Pseudo-inverse tests.

Checks the Penrose conditions on well-conditioned and rank-deficient
matrices and the handling of negligible singular values.
"""

from __future__ import annotations

import numpy as np
import pytest

from complex_matrix_algorithms.common.datasets import (
    ComplexMatrixSpec,
    conditioned_complex_matrix,
    random_unitary,
    zero_row_matrix,
)
from complex_matrix_algorithms.common.metrics import moore_penrose_residuals
from complex_matrix_algorithms.csvd.core import DimensionViolation, InvalidDimensionError, csvd
from complex_matrix_algorithms.overall.baselines import numpy_pinv_baseline
from complex_matrix_algorithms.pinv.core import pinv, pinv_from_svd, reciprocal_singular_values

TOL = 1e-4


def _tall_matrix(m: int, singular_values, seed: int) -> np.ndarray:
    """``m x n`` matrix with prescribed singular values."""

    rng = np.random.default_rng(seed)
    sigma = np.asarray(singular_values, dtype=np.float64)
    n = sigma.shape[0]
    u = random_unitary(rng, m, n)
    v = random_unitary(rng, n, n)
    return ((u * sigma[np.newaxis, :]) @ v.conj().T).astype(np.complex64)


def test_penrose_conditions_tall() -> None:
    a = _tall_matrix(7, [2.0, 1.5, 1.0, 0.5], seed=1)
    inv = pinv(a.copy())

    assert inv.shape == (4, 7)
    assert inv.dtype == np.complex64
    residuals = moore_penrose_residuals(a, inv)
    assert residuals.worst() < TOL, f"Penrose residuals too large: {residuals}"


def test_square_nonsingular_inverse() -> None:
    """For an invertible matrix the pseudo-inverse is the inverse."""

    a = conditioned_complex_matrix(4, [3.0, 2.0, 1.5, 1.0], seed=2)
    inv = pinv(a.copy())

    a64 = a.astype(np.complex128)
    np.testing.assert_allclose(a64 @ inv, np.eye(4), atol=TOL)
    np.testing.assert_allclose(inv @ a64, np.eye(4), atol=TOL)
    np.testing.assert_allclose(inv, np.linalg.inv(a64), atol=TOL)


def test_matches_lapack_pinv() -> None:
    a = _tall_matrix(6, [4.0, 1.0, 0.25], seed=3)
    expected = numpy_pinv_baseline(a)
    np.testing.assert_allclose(pinv(a.copy()), expected, atol=TOL)


def test_zero_row_maps_to_zero_reciprocal() -> None:
    a = zero_row_matrix(ComplexMatrixSpec(m=3, n=3, seed=4), row=2)
    result = csvd(a.copy())

    assert result.s[-1] < TOL
    s_plus = reciprocal_singular_values(result.s, 3)
    assert s_plus[-1] == 0.0
    assert np.all(np.isfinite(s_plus))

    inv = pinv_from_svd(result.s, result.u, result.v)
    assert np.all(np.isfinite(inv))
    residuals = moore_penrose_residuals(a, inv)
    assert residuals.a_inv_a < TOL, f"A INV A != A: {residuals}"
    assert residuals.a_inv_herm < TOL and residuals.inv_a_herm < TOL


def test_reciprocal_padding_and_cutoff() -> None:
    s = np.array([2.0, 0.5, 1e-6], dtype=np.float32)
    s_plus = reciprocal_singular_values(s, 5)

    assert s_plus.shape == (5,)
    assert s_plus.dtype == np.float32
    np.testing.assert_allclose(s_plus, [0.5, 2.0, 0.0, 0.0, 0.0])

    # The cutoff is a strict lower bound.
    at_cutoff = reciprocal_singular_values(np.array([1e-4], dtype=np.float32), 1)
    assert at_cutoff[0] == 0.0
    custom = reciprocal_singular_values(np.array([1e-3], dtype=np.float32), 1, cutoff=1e-2)
    assert custom[0] == 0.0


def test_pinv_from_svd_fills_buffer() -> None:
    a = _tall_matrix(5, [1.0, 0.5], seed=5)
    result = csvd(a.copy())

    inv = np.empty((2, 5), dtype=np.complex64)
    out = pinv_from_svd(result.s, result.u, result.v, inv=inv)
    assert out is inv
    np.testing.assert_allclose(inv, numpy_pinv_baseline(a), atol=TOL)

    with pytest.raises(ValueError):
        pinv_from_svd(result.s, result.u, result.v, inv=np.empty((5, 2), dtype=np.complex64))


def test_zero_matrix_pinv_is_zero() -> None:
    inv = pinv(np.zeros((4, 2), dtype=np.complex64))
    np.testing.assert_array_equal(inv, np.zeros((2, 4), dtype=np.complex64))


def test_pinv_propagates_dimension_error() -> None:
    with pytest.raises(InvalidDimensionError) as info:
        pinv(np.zeros((2, 3), dtype=np.complex64))
    assert info.value.violation is DimensionViolation.M_LESS_THAN_N


if __name__ == "__main__":  # pragma: no cover - manual execution
    raise SystemExit(pytest.main([__file__]))
