"""Baseline routines used to check and benchmark the complex SVD.

Provides a from-scratch dense complex product together with LAPACK-backed
NumPy references for the SVD and the pseudo-inverse.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from numpy.typing import NDArray

FloatArray = NDArray[np.floating]
ComplexArray = NDArray[np.complexfloating]


def _check_compatible(a: ComplexArray, b: ComplexArray) -> None:
    if a.ndim != 2 or b.ndim != 2:
        raise ValueError("a and b must be 2D arrays")
    if a.shape[1] != b.shape[0]:
        raise ValueError(f"matrix dimensions not compatible: a is {a.shape}, b is {b.shape}")


def matrix_multiply(a: ComplexArray, b: ComplexArray) -> ComplexArray:
    """Compute ``C = A @ B`` with an explicit triple loop.

    Parameters
    ----------
    a, b:
        Complex arrays with shapes ``(rows_a, cols_a)`` and ``(rows_b, cols_b)``.

    Returns
    -------
    ndarray
        Product of shape ``(rows_a, cols_b)`` in ``complex64``.

    Raises
    ------
    ValueError
        If ``cols_a != rows_b``.
    """

    _check_compatible(a, b)
    rows_a, cols_a = a.shape
    cols_b = b.shape[1]

    c = np.zeros((rows_a, cols_b), dtype=np.complex64)
    for i in range(rows_a):
        for j in range(cols_b):
            acc = np.complex64(0)
            for k in range(cols_a):
                acc += a[i, k] * b[k, j]
            c[i, j] = acc
    return c


def gemm_baseline(a: ComplexArray, b: ComplexArray) -> ComplexArray:
    """Exact product ``A @ B`` in double precision using NumPy's BLAS."""

    _check_compatible(a, b)
    return np.asarray(a, dtype=np.complex128) @ np.asarray(b, dtype=np.complex128)


def numpy_svd_baseline(a: ComplexArray) -> Tuple[ComplexArray, FloatArray, ComplexArray]:
    """LAPACK SVD in double precision, returned as ``(U, S, V)`` (not ``V*``)."""

    u, s, vh = np.linalg.svd(np.asarray(a, dtype=np.complex128), full_matrices=True)
    return u, s, vh.conj().T


def numpy_pinv_baseline(a: ComplexArray, cutoff: float = 1e-4) -> ComplexArray:
    """LAPACK pseudo-inverse with the same absolute singular value cutoff."""

    u, s, vh = np.linalg.svd(np.asarray(a, dtype=np.complex128), full_matrices=False)
    s_plus = np.zeros_like(s)
    keep = s > cutoff
    s_plus[keep] = 1.0 / s[keep]
    return (vh.conj().T * s_plus[np.newaxis, :]) @ u.conj().T
