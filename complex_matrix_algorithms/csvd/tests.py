"""CSVD tests.

Checks the decomposition contract (reconstruction, ordering, orthonormality),
the shape preconditions and the individual QR states on small matrices.
"""

from __future__ import annotations

import csv
import json
import tempfile
from pathlib import Path

import numpy as np
import pytest

from complex_matrix_algorithms.common.config import (
    CsvdConfig,
    ExperimentConfig,
    MatrixFamily,
    MatrixShape,
)
from complex_matrix_algorithms.common.datasets import (
    ComplexMatrixSpec,
    LowRankComplexSpec,
    gaussian_complex_matrix,
    low_rank_complex_matrix,
    reference_matrix,
    zero_row_matrix,
)
from complex_matrix_algorithms.common.metrics import (
    matrices_close,
    orthonormality_error,
    reconstruct_from_svd,
)
from complex_matrix_algorithms.csvd.core import (
    DimensionViolation,
    InvalidDimensionError,
    QrState,
    _test_split,
    csvd,
)
from complex_matrix_algorithms.csvd.experiments import run_all_experiments
from complex_matrix_algorithms.plots.plot_csvd import generate_all_plots

TOL = 1e-4


def _assert_valid_decomposition(original: np.ndarray, result) -> None:
    s = result.s
    assert np.all(s >= 0), f"negative singular value in {s}"
    assert np.all(np.diff(s) <= 0), f"singular values not sorted: {s}"
    np.testing.assert_allclose(reconstruct_from_svd(s, result.u, result.v), original, atol=TOL)
    assert orthonormality_error(result.u) < TOL
    assert orthonormality_error(result.v) < TOL


def test_reference_matrix() -> None:
    """The worked 3x3 example reconstructs to within 1e-4."""

    a = reference_matrix()
    original = a.copy()
    result = csvd(a, 0, 3, 3)

    _assert_valid_decomposition(original, result)
    assert matrices_close(original, result.as_matrix())
    expected = np.linalg.svd(original.astype(np.complex128), compute_uv=False)
    np.testing.assert_allclose(result.s, expected, atol=TOL)


def test_tall_gaussian_full_factors() -> None:
    """A tall matrix yields a full M x M unitary U and N x N unitary V."""

    a = gaussian_complex_matrix(ComplexMatrixSpec(m=9, n=5, seed=3))
    original = a.copy()
    result = csvd(a)

    assert result.u.shape == (9, 9)
    assert result.v.shape == (5, 5)
    assert result.s.dtype == np.float32
    _assert_valid_decomposition(original, result)


def test_singular_values_match_lapack() -> None:
    a = gaussian_complex_matrix(ComplexMatrixSpec(m=12, n=7, seed=11))
    expected = np.linalg.svd(a.astype(np.complex128), compute_uv=False)
    result = csvd(a.copy(), nu=0, nv=0)
    np.testing.assert_allclose(result.s, expected, rtol=TOL, atol=TOL)


def test_input_is_consumed_only_when_complex64() -> None:
    a = reference_matrix()
    original = a.copy()
    csvd(a)
    assert not np.array_equal(a, original), "complex64 input should be overwritten"

    b = original.astype(np.complex128)
    kept = b.copy()
    result = csvd(b)
    np.testing.assert_array_equal(b, kept)
    _assert_valid_decomposition(original, result)


@pytest.mark.parametrize(
    "shape, max_n, violation",
    [
        ((3, 0), 150, DimensionViolation.N_LESS_THAN_ONE),
        ((6, 5), 4, DimensionViolation.N_OVER_CAPACITY),
        ((0, 1), 150, DimensionViolation.M_LESS_THAN_ONE),
        ((2, 3), 150, DimensionViolation.M_LESS_THAN_N),
    ],
)
def test_dimension_errors_leave_buffers_untouched(shape, max_n, violation) -> None:
    m, n = shape
    a = np.full(shape, 1 + 2j, dtype=np.complex64)
    s = np.full(max(n, 0), -7.0, dtype=np.float32)
    u = np.full((m, m), 5 + 5j, dtype=np.complex64)
    v = np.full((n, n), 5 + 5j, dtype=np.complex64)
    a_before, s_before, u_before, v_before = a.copy(), s.copy(), u.copy(), v.copy()

    with pytest.raises(InvalidDimensionError) as info:
        csvd(a, s=s, u=u, v=v, config=CsvdConfig(max_n=max_n))

    assert info.value.violation is violation
    assert isinstance(info.value, ValueError)
    np.testing.assert_array_equal(a, a_before)
    np.testing.assert_array_equal(s, s_before)
    np.testing.assert_array_equal(u, u_before)
    np.testing.assert_array_equal(v, v_before)


def test_default_capacity_is_150() -> None:
    a = np.zeros((151, 151), dtype=np.complex64)
    with pytest.raises(InvalidDimensionError) as info:
        csvd(a)
    assert info.value.violation is DimensionViolation.N_OVER_CAPACITY


@pytest.mark.parametrize(
    "kwargs",
    [
        {"p": -1},
        {"nu": 5},
        {"nv": 4},
        {"s": np.zeros(3, dtype=np.float64)},
        {"u": np.zeros((4, 3), dtype=np.complex64)},
    ],
)
def test_malformed_arguments(kwargs) -> None:
    a = gaussian_complex_matrix(ComplexMatrixSpec(m=4, n=3, seed=0))
    before = a.copy()
    with pytest.raises(ValueError):
        csvd(a, **kwargs)
    np.testing.assert_array_equal(a, before)


def test_non_finite_input_rejected() -> None:
    a = reference_matrix()
    a[1, 1] = np.nan
    with pytest.raises(ValueError, match="non-finite"):
        csvd(a)


def test_caller_buffers_are_filled() -> None:
    a = gaussian_complex_matrix(ComplexMatrixSpec(m=5, n=4, seed=8))
    original = a.copy()
    s = np.empty(4, dtype=np.float32)
    u = np.empty((5, 5), dtype=np.complex64)
    v = np.empty((4, 4), dtype=np.complex64)

    result = csvd(a, s=s, u=u, v=v)

    assert result.s is s and result.u is u and result.v is v
    _assert_valid_decomposition(original, result)


def test_truncated_factors_are_leading_columns() -> None:
    """``nu``/``nv`` select the leading columns of the full factors."""

    a = gaussian_complex_matrix(ComplexMatrixSpec(m=7, n=4, seed=21))
    full = csvd(a.copy())
    part = csvd(a.copy(), nu=2, nv=3)
    none = csvd(a.copy(), nu=0, nv=0)

    assert part.u.shape == (7, 2) and part.v.shape == (4, 3)
    assert none.u.shape == (7, 0) and none.v.shape == (4, 0)
    np.testing.assert_allclose(part.u, full.u[:, :2], atol=1e-5)
    np.testing.assert_allclose(part.v, full.v[:, :3], atol=1e-5)
    np.testing.assert_allclose(none.s, full.s, atol=1e-6)


def test_auxiliary_columns_receive_u_star() -> None:
    """Columns after N come back premultiplied by U*."""

    a = gaussian_complex_matrix(ComplexMatrixSpec(m=6, n=4, seed=5))
    extra = gaussian_complex_matrix(ComplexMatrixSpec(m=6, n=2, seed=6))
    augmented = np.hstack([a, extra])

    result = csvd(augmented, p=2)

    assert result.s.shape == (4,)
    _assert_valid_decomposition(a, result)
    expected = result.u.conj().T.astype(np.complex128) @ extra
    np.testing.assert_allclose(augmented[:, 4:], expected, atol=TOL)
    np.testing.assert_allclose(result.s, csvd(a.copy(), nu=0, nv=0).s, atol=1e-5)


def test_zero_matrix() -> None:
    a = np.zeros((4, 3), dtype=np.complex64)
    result = csvd(a)

    np.testing.assert_array_equal(result.s, np.zeros(3, dtype=np.float32))
    np.testing.assert_allclose(result.u, np.eye(4), atol=0)
    np.testing.assert_allclose(result.v, np.eye(3), atol=0)
    assert result.sweeps == 0


def test_single_column() -> None:
    a = gaussian_complex_matrix(ComplexMatrixSpec(m=5, n=1, seed=2))
    original = a.copy()
    result = csvd(a)

    np.testing.assert_allclose(result.s[0], np.linalg.norm(original.astype(np.complex128)), rtol=TOL)
    _assert_valid_decomposition(original, result)


def test_zero_row_gives_zero_singular_value() -> None:
    a = zero_row_matrix(ComplexMatrixSpec(m=3, n=3, seed=4), row=1)
    original = a.copy()
    result = csvd(a)

    assert result.s[-1] < TOL, f"expected a zero singular value, got {result.s}"
    assert result.s[0] > TOL
    _assert_valid_decomposition(original, result)


@pytest.mark.parametrize(
    "m, n, seed",
    [(3, 3, 4), (4, 4, 1), (6, 6, 7), (5, 3, 2), (30, 30, 18)],
)
def test_zero_last_row_stays_finite(m: int, n: int, seed: int) -> None:
    """A zero bottom diagonal entry must not turn the QR sweep into 0/0."""

    a = zero_row_matrix(ComplexMatrixSpec(m=m, n=n, seed=seed), row=m - 1)
    original = a.copy()
    result = csvd(a)

    assert np.all(np.isfinite(result.s)), f"non-finite singular values: {result.s}"
    assert np.all(np.isfinite(result.u)) and np.all(np.isfinite(result.v))
    if m == n:
        assert result.s[-1] < TOL
    _assert_valid_decomposition(original, result)


def test_overflowing_input_rejected() -> None:
    a = (reference_matrix() * np.float32(1e19)).astype(np.complex64)
    assert np.all(np.isfinite(a))
    before = a.copy()
    with pytest.raises(ValueError, match="too large"):
        csvd(a)
    np.testing.assert_array_equal(a, before)


def test_low_rank_spectrum() -> None:
    a = low_rank_complex_matrix(LowRankComplexSpec(m=10, n=6, r=3, seed=9))
    original = a.copy()
    result = csvd(a)

    np.testing.assert_allclose(result.s[:3], [1.0, 0.5, 1.0 / 3.0], atol=TOL)
    assert np.all(result.s[3:] < TOL)
    _assert_valid_decomposition(original, result)


def test_scale_invariance() -> None:
    a = gaussian_complex_matrix(ComplexMatrixSpec(m=6, n=6, seed=13))
    small = csvd(a.copy(), nu=0, nv=0).s
    large = csvd((a * np.float32(1e3)).astype(np.complex64), nu=0, nv=0).s
    np.testing.assert_allclose(large / 1e3, small, atol=TOL * small[0])


def test_split_states() -> None:
    """The split test reports the right state for each negligibility pattern."""

    eps = np.float32(1e-6)
    s = np.array([3.0, 2.0, 1.0], dtype=np.float32)

    t = np.array([0.0, 0.5, 0.5], dtype=np.float32)
    assert _test_split(s, t, 2, eps) == (0, QrState.SHIFT_STEP)

    t = np.array([0.0, 0.0, 0.5], dtype=np.float32)
    assert _test_split(s, t, 2, eps) == (1, QrState.SHIFT_STEP)

    t = np.array([0.0, 0.5, 0.0], dtype=np.float32)
    assert _test_split(s, t, 2, eps) == (2, QrState.CONVERGED)

    t = np.array([0.0, 0.5, 0.5], dtype=np.float32)
    s_cancel = np.array([3.0, 0.0, 1.0], dtype=np.float32)
    assert _test_split(s_cancel, t, 2, eps) == (2, QrState.CANCELLING)

    assert _test_split(s, t, 0, eps) == (0, QrState.CONVERGED)


def test_experiment_outputs_and_plots() -> None:
    """A tiny sweep writes CSVs, a JSONL summary and figures."""

    cfg = ExperimentConfig(
        shapes=[MatrixShape(m=4, n=3), MatrixShape(m=6, n=6)],
        families=list(MatrixFamily),
        num_trials=1,
        seed=7,
    )
    with tempfile.TemporaryDirectory() as tmp:
        out = Path(tmp)
        run_all_experiments(out, cfg)

        with (out / "csvd_accuracy.csv").open(newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == len(cfg.families) * len(cfg.shapes)
        assert max(float(r["rel_error"]) for r in rows) < TOL

        summary = [json.loads(line) for line in (out / "summary.jsonl").read_text().splitlines()]
        assert len(summary) == 1
        assert summary[0]["max_penrose_residual"] < 1e-3

        generate_all_plots(out, out / "figures")
        assert (out / "figures" / "csvd_fig1_error_vs_size.png").exists()
        assert (out / "figures" / "csvd_fig3_pinv_residuals.png").exists()


if __name__ == "__main__":  # pragma: no cover - manual execution
    raise SystemExit(pytest.main([__file__]))
