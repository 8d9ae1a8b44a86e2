"""Tests for the shared helpers: metrics, datasets, baselines, timing and logging."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

import numpy as np
import pytest

from complex_matrix_algorithms.common.config import MatrixFamily
from complex_matrix_algorithms.common.datasets import (
    ComplexMatrixSpec,
    LowRankComplexSpec,
    gaussian_complex_matrix,
    generate,
    low_rank_complex_matrix,
    reference_matrix,
)
from complex_matrix_algorithms.common.logging_utils import append_jsonl, get_logger
from complex_matrix_algorithms.common.metrics import (
    matrices_close,
    moore_penrose_residuals,
    orthonormality_error,
    relative_frobenius_error,
)
from complex_matrix_algorithms.common.timing import time_function, time_repeated
from complex_matrix_algorithms.overall.baselines import (
    gemm_baseline,
    matrix_multiply,
    numpy_pinv_baseline,
    numpy_svd_baseline,
)


def test_matrix_multiply_matches_blas() -> None:
    a = gaussian_complex_matrix(ComplexMatrixSpec(m=3, n=4, seed=0))
    b = gaussian_complex_matrix(ComplexMatrixSpec(m=4, n=2, seed=1))
    np.testing.assert_allclose(matrix_multiply(a, b), gemm_baseline(a, b), atol=1e-5)


def test_matrix_multiply_rejects_incompatible_shapes() -> None:
    a = np.zeros((3, 4), dtype=np.complex64)
    b = np.zeros((3, 2), dtype=np.complex64)
    with pytest.raises(ValueError, match="not compatible"):
        matrix_multiply(a, b)


def test_matrices_close_uses_squared_distance() -> None:
    a = np.zeros((2, 2), dtype=np.complex64)
    assert matrices_close(a, a + 0.005)
    assert matrices_close(a, a + 0.005j)
    assert not matrices_close(a, a + 0.02)


def test_relative_frobenius_error() -> None:
    a = reference_matrix()
    assert relative_frobenius_error(a, a) == 0.0
    zero = np.zeros_like(a)
    assert relative_frobenius_error(zero, zero) == 0.0
    with pytest.raises(ValueError):
        relative_frobenius_error(zero, a)
    with pytest.raises(ValueError):
        relative_frobenius_error(a, a[:2])


def test_orthonormality_error() -> None:
    assert orthonormality_error(np.eye(4, 3, dtype=np.complex64)) == 0.0
    assert orthonormality_error(np.ones((3, 2), dtype=np.complex64)) > 1.0
    assert orthonormality_error(np.zeros((3, 0), dtype=np.complex64)) == 0.0


def test_numpy_baselines_are_consistent() -> None:
    a = gaussian_complex_matrix(ComplexMatrixSpec(m=5, n=3, seed=2))
    u, s, v = numpy_svd_baseline(a)
    assert u.shape == (5, 5) and v.shape == (3, 3)
    rebuilt = (u[:, :3] * s[np.newaxis, :]) @ v.conj().T
    np.testing.assert_allclose(rebuilt, a, atol=1e-5)

    residuals = moore_penrose_residuals(a, numpy_pinv_baseline(a))
    assert residuals.worst() < 1e-5


def test_low_rank_generator_rank() -> None:
    a = low_rank_complex_matrix(LowRankComplexSpec(m=8, n=6, r=2, seed=3))
    assert a.dtype == np.complex64
    s = np.linalg.svd(a.astype(np.complex128), compute_uv=False)
    assert np.all(s[2:] < 1e-5)
    with pytest.raises(ValueError):
        low_rank_complex_matrix(LowRankComplexSpec(m=4, n=3, r=4))


@pytest.mark.parametrize("family", list(MatrixFamily))
def test_generate_families(family: MatrixFamily) -> None:
    a = generate(family, 6, 4, seed=5)
    assert a.shape == (6, 4)
    assert a.dtype == np.complex64
    if family is MatrixFamily.ZERO_ROW:
        assert not np.any(a[3])


def test_time_repeated_collects_samples() -> None:
    calls = []
    value, timing = time_repeated(lambda: (lambda: calls.append(1) or len(calls)), 3)
    assert value == 3
    assert len(timing.samples) == 3
    assert 0.0 <= timing.best <= timing.mean

    value, t = time_function(lambda: 5)
    assert value == 5 and t.seconds >= 0.0

    with pytest.raises(ValueError):
        time_repeated(lambda: (lambda: None), 0)


def test_logger_and_jsonl() -> None:
    logger = get_logger("complex_matrix_algorithms.tests")
    again = get_logger("complex_matrix_algorithms.tests", level=logging.DEBUG)
    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "nested" / "records.jsonl"
        append_jsonl(path, {"n": 3, "err": 1e-6})
        append_jsonl(path, {"n": 4, "shape": (4, 4)})
        records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert records == [{"n": 3, "err": 1e-6}, {"n": 4, "shape": [4, 4]}]


if __name__ == "__main__":  # pragma: no cover - manual execution
    raise SystemExit(pytest.main([__file__]))
