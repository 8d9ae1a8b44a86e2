"""Metric utilities for checking complex decompositions and pseudo-inverses.

All functions here work purely on NumPy arrays and are side-effect free.
Residuals are accumulated in double precision so that they measure the
single-precision factors rather than the metric itself.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

FloatArray = NDArray[np.floating]
ComplexArray = NDArray[np.complexfloating]

EQUALITY_EPS = 1e-4


def relative_frobenius_error(true: ComplexArray, approx: ComplexArray) -> float:
    """Compute relative Frobenius norm error ``||true - approx||_F / ||true||_F``.

    Raises ``ValueError`` when the shapes differ or when ``true`` is zero but
    ``approx`` is not.
    """

    if true.shape != approx.shape:
        raise ValueError("shapes of true and approx must match")

    num = np.linalg.norm(np.asarray(true, dtype=np.complex128) - approx, ord="fro")
    denom = np.linalg.norm(np.asarray(true, dtype=np.complex128), ord="fro")
    if denom == 0.0:
        if num == 0.0:
            return 0.0
        raise ValueError("cannot compute relative error: true has zero Frobenius norm")
    return float(num / denom)


def reconstruct_from_svd(s: FloatArray, u: ComplexArray, v: ComplexArray) -> ComplexArray:
    """Rebuild ``U diag(S) V*`` from the first ``min(m, n)`` singular triplets."""

    k = min(u.shape[0], v.shape[0], s.shape[0])
    u_k = np.asarray(u[:, :k], dtype=np.complex128)
    v_k = np.asarray(v[:, :k], dtype=np.complex128)
    return (u_k * np.asarray(s[:k], dtype=np.float64)[np.newaxis, :]) @ v_k.conj().T


def max_abs_error(true: ComplexArray, approx: ComplexArray) -> float:
    """Largest element-wise modulus of ``true - approx``."""

    if true.shape != approx.shape:
        raise ValueError("shapes of true and approx must match")
    if true.size == 0:
        return 0.0
    return float(np.max(np.abs(np.asarray(true, dtype=np.complex128) - approx)))


def matrices_close(a: ComplexArray, b: ComplexArray, eps: float = EQUALITY_EPS) -> bool:
    """Element-wise equality test on the squared distance ``|a_ij - b_ij|^2 <= eps``."""

    if a.shape != b.shape:
        raise ValueError("shapes of a and b must match")
    diff = np.asarray(a, dtype=np.complex128) - b
    return bool(np.all(diff.real ** 2 + diff.imag ** 2 <= eps))


def orthonormality_error(q: ComplexArray) -> float:
    """Return ``max |Q* Q - I|`` over the columns of ``q``."""

    q = np.asarray(q, dtype=np.complex128)
    k = q.shape[1]
    if k == 0:
        return 0.0
    gram = q.conj().T @ q
    return float(np.max(np.abs(gram - np.eye(k))))


@dataclass
class PenroseResiduals:
    """Maximum residuals of the four Moore-Penrose conditions."""

    a_inv_a: float      # |A X A - A|
    inv_a_inv: float    # |X A X - X|
    a_inv_herm: float   # |(A X)* - A X|
    inv_a_herm: float   # |(X A)* - X A|

    def worst(self) -> float:
        return max(self.a_inv_a, self.inv_a_inv, self.a_inv_herm, self.inv_a_herm)


def moore_penrose_residuals(a: ComplexArray, inv: ComplexArray) -> PenroseResiduals:
    """Evaluate how well ``inv`` satisfies the Penrose conditions for ``a``."""

    if a.shape[::-1] != inv.shape:
        raise ValueError(f"inv must have shape {a.shape[::-1]}, got {inv.shape}")

    a64 = np.asarray(a, dtype=np.complex128)
    x64 = np.asarray(inv, dtype=np.complex128)
    ax = a64 @ x64
    xa = x64 @ a64
    return PenroseResiduals(
        a_inv_a=max_abs_error(a64, ax @ a64),
        inv_a_inv=max_abs_error(x64, xa @ x64),
        a_inv_herm=max_abs_error(ax, ax.conj().T),
        inv_a_herm=max_abs_error(xa, xa.conj().T),
    )
