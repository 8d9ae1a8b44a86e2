"""Singular value decomposition of a complex matrix (Businger & Golub).

Implements ACM Algorithm 358 in single precision:
- Householder reduction of ``A`` to a real bidiagonal matrix
- Implicit-shift QR diagonalization of the bidiagonal form
- Sorting of the singular values
- Back transformation of the accumulated rotations into ``U`` and ``V``

Reference: P. Businger, G. H. Golub, "Algorithm 358: Singular Value
Decomposition of a Complex Matrix", Communications of the ACM 12(10),
October 1969, pp. 564-565.

The input matrix is consumed: on return it holds the Householder vectors of
the reduction, and any auxiliary columns appended after column ``N`` have been
premultiplied by ``U*``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from complex_matrix_algorithms.common.config import CsvdConfig
from complex_matrix_algorithms.common.logging_utils import get_logger

FloatArray = NDArray[np.floating]
ComplexArray = NDArray[np.complexfloating]

logger = get_logger(__name__)


class DimensionViolation(str, Enum):
    """Shape preconditions checked before any work starts."""

    N_LESS_THAN_ONE = "input N < 1"
    N_OVER_CAPACITY = "N exceeds the maximum supported size"
    M_LESS_THAN_ONE = "input M < 1"
    M_LESS_THAN_N = "M < N"


class InvalidDimensionError(ValueError):
    """Raised when the matrix shape violates ``1 <= N <= M`` or the capacity."""

    def __init__(self, violation: DimensionViolation, m: int, n: int, max_n: int) -> None:
        self.violation = violation
        self.m = m
        self.n = n
        self.max_n = max_n
        super().__init__(f"{violation.value} (M={m}, N={n}, max N={max_n})")


class QrState(Enum):
    """States of the QR diagonalization of one singular value."""

    SPLITTING = auto()
    CANCELLING = auto()
    SHIFT_STEP = auto()
    CONVERGED = auto()


@dataclass
class CsvdResult:
    """Container for CSVD outputs."""

    s: FloatArray      # (n,)
    u: ComplexArray    # (m, nu)
    v: ComplexArray    # (n, nv)
    sweeps: int = 0    # number of implicit QR steps performed

    def as_matrix(self) -> ComplexArray:
        """Reconstruct ``U diag(S) V*`` from the leading ``N`` singular triplets."""

        n = self.s.shape[0]
        if self.u.shape[1] < n or self.v.shape[1] < n:
            raise ValueError("reconstruction needs at least N columns of U and V")
        return (self.u[:, :n] * self.s[np.newaxis, :]) @ self.v[:, :n].conj().T


def _validate_shape(m: int, n: int, max_n: int) -> None:
    """Check ``1 <= N <= max_n`` and ``N <= M`` in the documented order."""

    if n < 1:
        raise InvalidDimensionError(DimensionViolation.N_LESS_THAN_ONE, m, n, max_n)
    if n > max_n:
        raise InvalidDimensionError(DimensionViolation.N_OVER_CAPACITY, m, n, max_n)
    if m < 1:
        raise InvalidDimensionError(DimensionViolation.M_LESS_THAN_ONE, m, n, max_n)
    if m < n:
        raise InvalidDimensionError(DimensionViolation.M_LESS_THAN_N, m, n, max_n)


def _output_buffer(buf: Optional[np.ndarray], shape: Tuple[int, int] | Tuple[int], dtype, name: str) -> np.ndarray:
    """Return a caller buffer after checking it, or a fresh zeroed one."""

    if buf is None:
        return np.zeros(shape, dtype=dtype)
    if not isinstance(buf, np.ndarray):
        raise ValueError(f"{name} must be a NumPy array")
    if buf.shape != shape:
        raise ValueError(f"{name} has shape {buf.shape}, expected {shape}")
    if buf.dtype != np.dtype(dtype):
        raise ValueError(f"{name} has dtype {buf.dtype}, expected {np.dtype(dtype)}")
    return buf


def _rotate(mat: np.ndarray, i: int, j: int, cs, sn) -> None:
    """Apply a plane rotation to columns ``i`` and ``j`` of ``mat`` in place."""

    x = mat[:, i].copy()
    y = mat[:, j]
    mat[:, i] = x * cs + y * sn
    mat[:, j] = y * cs - x * sn


def _bidiagonalize(a: ComplexArray, n: int, p: int, tol: np.float32) -> Tuple[FloatArray, FloatArray]:
    """Reduce the leading ``N`` columns of ``a`` to real bidiagonal form in place.

    Returns ``(b, c)``: the diagonal and super-diagonal magnitudes, with
    ``c[0] == 0``. Column reflectors are also applied to the ``p`` auxiliary
    columns; row reflectors only touch the active ``n`` columns.
    """

    m = a.shape[0]
    b = np.zeros(n, dtype=np.float32)
    c = np.zeros(n, dtype=np.float32)

    for k in range(n):
        k1 = k + 1

        # Elimination of a[k+1:, k].
        col = a[k:, k]
        z = np.float32(np.sum(col.real * col.real + col.imag * col.imag))
        if z > tol:
            z = np.sqrt(z)
            b[k] = z
            w = np.abs(a[k, k])
            q = a[k, k] / w if w != 0 else np.complex64(1)
            a[k, k] = q * (z + w)
            if k1 < n + p:
                h = a[k:, k]
                q = (h.conj() @ a[k:, k1:]) / (z * (z + w))
                a[k:, k1:] -= np.outer(h, q)
                # Phase transformation.
                q = -np.conj(a[k, k]) / np.abs(a[k, k])
                a[k, k1:] *= q

        # Elimination of a[k, k+2:n].
        if k1 == n:
            break
        row = a[k, k1:n]
        z = np.float32(np.sum(row.real * row.real + row.imag * row.imag))
        if z > tol:
            z = np.sqrt(z)
            c[k1] = z
            w = np.abs(a[k, k1])
            q = a[k, k1] / w if w != 0 else np.complex64(1)
            a[k, k1] = q * (z + w)
            h = a[k, k1:n]
            q = (a[k1:, k1:n] @ h.conj()) / (z * (z + w))
            a[k1:, k1:n] -= np.outer(q, h)
            # Phase transformation.
            q = -np.conj(a[k, k1]) / np.abs(a[k, k1])
            a[k1:, k1] *= q

    return b, c


def _test_split(s: FloatArray, t: FloatArray, k: int, eps: np.float32) -> Tuple[int, QrState]:
    """Find the top ``l`` of the unreduced block ending at ``k``."""

    for l in range(k, 0, -1):
        if abs(t[l]) <= eps:
            return l, QrState.CONVERGED if l == k else QrState.SHIFT_STEP
        if abs(s[l - 1]) <= eps:
            return l, QrState.CANCELLING
    # t[0] is zero by construction.
    return 0, QrState.CONVERGED if k == 0 else QrState.SHIFT_STEP


def _cancel(
    s: FloatArray,
    t: FloatArray,
    l: int,
    k: int,
    eps: np.float32,
    rot_u: Optional[FloatArray],
    aux: Optional[ComplexArray],
) -> None:
    """Chase t[l] out of the block after s[l-1] became negligible."""

    cs = np.float32(0)
    sn = np.float32(1)
    l1 = l - 1
    for i in range(l, k + 1):
        f = sn * t[i]
        t[i] = cs * t[i]
        if abs(f) <= eps:
            break
        h = s[i]
        w = np.sqrt(f * f + h * h)
        s[i] = w
        cs = h / w
        sn = -f / w
        if rot_u is not None:
            _rotate(rot_u, l1, i, cs, sn)
        if aux is not None:
            _rotate(aux.T, l1, i, cs, sn)


def _givens(f, h, w):
    """Rotation ``(cs, sn)`` taking ``(f, h)`` to ``(w, 0)``; identity when both vanish."""

    if w == 0:
        return np.float32(1), np.float32(0)
    return f / w, h / w


def _qr_step(
    s: FloatArray,
    t: FloatArray,
    l: int,
    k: int,
    rot_u: Optional[FloatArray],
    rot_v: Optional[FloatArray],
    aux: Optional[ComplexArray],
) -> None:
    """One implicit-shift QR sweep over the block ``l..k``."""

    # Origin shift.
    w = s[k]
    x = s[l]
    y = s[k - 1]
    g = t[k - 1]
    h = t[k]
    f = ((y - w) * (y + w) + (g - h) * (g + h)) / (2 * h * y)
    g = np.sqrt(f * f + 1)
    if f < 0:
        g = -g
    f = ((x - w) * (x + w) + (y / (f + g) - h) * h) / x

    # QR step by Givens rotations.
    cs = np.float32(1)
    sn = np.float32(1)
    for i in range(l + 1, k + 1):
        g = t[i]
        y = s[i]
        h = sn * g
        g = cs * g
        w = np.sqrt(h * h + f * f)
        t[i - 1] = w
        cs, sn = _givens(f, h, w)
        f = x * cs + g * sn
        g = g * cs - x * sn
        h = y * sn
        y = y * cs
        if rot_v is not None:
            _rotate(rot_v, i - 1, i, cs, sn)

        w = np.sqrt(h * h + f * f)
        s[i - 1] = w
        cs, sn = _givens(f, h, w)
        f = cs * g + sn * y
        x = cs * y - sn * g
        if rot_u is not None:
            _rotate(rot_u, i - 1, i, cs, sn)
        if aux is not None:
            _rotate(aux.T, i - 1, i, cs, sn)

    t[l] = 0
    t[k] = f
    s[k] = x


def _diagonalize(
    b: FloatArray,
    c: FloatArray,
    eta: np.float32,
    rot_u: Optional[FloatArray],
    rot_v: Optional[FloatArray],
    aux: Optional[ComplexArray],
) -> Tuple[FloatArray, int]:
    """QR diagonalization of the bidiagonal ``(b, c)``; returns ``(s, sweeps)``."""

    n = b.shape[0]
    s = b.copy()
    t = c.copy()
    # Tolerance for negligible elements.
    eps = np.float32(np.max(s + t) * eta)

    sweeps = 0
    for k in range(n - 1, -1, -1):
        state = QrState.SPLITTING
        while state is not QrState.CONVERGED:
            l, state = _test_split(s, t, k, eps)
            if state is QrState.CANCELLING:
                _cancel(s, t, l, k, eps, rot_u, aux)
                state = QrState.CONVERGED if l == k else QrState.SHIFT_STEP
            if state is QrState.SHIFT_STEP:
                _qr_step(s, t, l, k, rot_u, rot_v, aux)
                sweeps += 1
                state = QrState.SPLITTING

        w = s[k]
        if w < 0:
            s[k] = -w
            if rot_v is not None:
                rot_v[:, k] = -rot_v[:, k]

    return s, sweeps


def _sort_descending(
    s: FloatArray,
    rot_u: Optional[FloatArray],
    rot_v: Optional[FloatArray],
    aux: Optional[ComplexArray],
) -> None:
    """Selection sort of ``s`` with the matching columns/rows swapped along."""

    n = s.shape[0]
    for k in range(n):
        j = k + int(np.argmax(s[k:]))
        if j == k:
            continue
        s[[k, j]] = s[[j, k]]
        if rot_v is not None:
            rot_v[:, [k, j]] = rot_v[:, [j, k]]
        if rot_u is not None:
            rot_u[:, [k, j]] = rot_u[:, [j, k]]
        if aux is not None:
            aux[[k, j], :] = aux[[j, k], :]


def _back_transform_u(u: ComplexArray, a: ComplexArray, b: FloatArray) -> None:
    """Apply the column reflectors stored in ``a`` to ``u`` in place."""

    n = b.shape[0]
    for k in range(n - 1, -1, -1):
        if b[k] == 0:
            continue
        r = np.abs(a[k, k])
        u[k, :] *= -a[k, k] / r
        h = a[k:, k]
        q = (h.conj() @ u[k:, :]) / (r * b[k])
        u[k:, :] -= np.outer(h, q)


def _back_transform_v(v: ComplexArray, a: ComplexArray, c: FloatArray) -> None:
    """Apply the row reflectors stored in ``a`` to ``v`` in place."""

    n = c.shape[0]
    for k in range(n - 2, -1, -1):
        k1 = k + 1
        if c[k1] == 0:
            continue
        r = np.abs(a[k, k1])
        v[k1, :] *= -np.conj(a[k, k1]) / r
        h = a[k, k1:n]
        q = (h @ v[k1:, :]) / (r * c[k1])
        v[k1:, :] -= np.outer(h.conj(), q)


def csvd(
    a: ComplexArray,
    p: int = 0,
    nu: Optional[int] = None,
    nv: Optional[int] = None,
    *,
    s: Optional[FloatArray] = None,
    u: Optional[ComplexArray] = None,
    v: Optional[ComplexArray] = None,
    config: Optional[CsvdConfig] = None,
) -> CsvdResult:
    """Compute the singular value decomposition ``A = U S V*`` of a complex matrix.

    Parameters
    ----------
    a:
        Matrix of shape ``(M, N + P)``. A ``complex64`` array is overwritten in
        place; anything else is first converted to a ``complex64`` working
        copy. Columns ``N..N+P-1`` are auxiliary and come back premultiplied
        by ``U*``.
    p:
        Number of auxiliary columns stored after the ``N`` columns of ``A``.
    nu:
        Number of columns of ``U`` to compute (``0 <= nu <= M``, default ``M``).
    nv:
        Number of columns of ``V`` to compute (``0 <= nv <= N``, default ``N``).
    s, u, v:
        Optional caller-owned output buffers of shapes ``(N,)``, ``(M, nu)``
        and ``(N, nv)`` with dtypes ``float32``, ``complex64``, ``complex64``.
    config:
        Numerical constants and capacity; defaults to ``CsvdConfig()``.

    Returns
    -------
    CsvdResult
        Singular values sorted in non-increasing order and the requested
        leading columns of ``U`` and ``V``.

    Raises
    ------
    InvalidDimensionError
        If ``N < 1``, ``N > config.max_n``, ``M < 1`` or ``M < N``.
    ValueError
        For any other malformed argument. Nothing is mutated in either case.
    """

    cfg = config or CsvdConfig()

    if isinstance(a, np.ndarray) and a.dtype == np.complex64:
        work = a
    else:
        work = np.array(a, dtype=np.complex64)
    if work.ndim != 2:
        raise ValueError("CSVD expects a 2D array")
    if p < 0:
        raise ValueError("number of auxiliary columns p must be non-negative")

    m = work.shape[0]
    n = work.shape[1] - p
    _validate_shape(m, n, cfg.max_n)

    nu = m if nu is None else nu
    nv = n if nv is None else nv
    if not 0 <= nu <= m:
        raise ValueError(f"nu must be in [0, {m}], got {nu}")
    if not 0 <= nv <= n:
        raise ValueError(f"nv must be in [0, {n}], got {nv}")
    if not np.all(np.isfinite(work)):
        raise ValueError("input matrix contains non-finite entries")
    # Every column and row norm is bounded by the Frobenius norm.
    frob_sq = np.sum(np.abs(work.astype(np.complex128)) ** 2)
    if frob_sq > np.finfo(np.float32).max:
        raise ValueError("input matrix is too large: squared norms overflow float32")

    s_out = _output_buffer(s, (n,), np.float32, "s")
    u_out = _output_buffer(u, (m, nu), np.complex64, "u")
    v_out = _output_buffer(v, (n, nv), np.complex64, "v")

    b, c = _bidiagonalize(work, n, p, np.float32(cfg.tol))

    rot_u = np.eye(n, dtype=np.float32) if nu > 0 else None
    rot_v = np.eye(n, dtype=np.float32) if nv > 0 else None
    aux = work[:n, n:] if p > 0 else None

    s_vals, sweeps = _diagonalize(b, c, np.float32(cfg.eta), rot_u, rot_v, aux)
    _sort_descending(s_vals, rot_u, rot_v, aux)
    s_out[:] = s_vals

    if nu > 0:
        # Identity outside the rotated N x N block.
        u_out[:] = 0
        u_out[np.arange(nu), np.arange(nu)] = 1
        cols = min(nu, n)
        u_out[:n, :cols] = rot_u[:, :cols]
        _back_transform_u(u_out, work, b)

    if nv > 0:
        v_out[:] = rot_v[:, :nv]
        _back_transform_v(v_out, work, c)

    logger.debug("csvd: M=%d N=%d P=%d NU=%d NV=%d, %d QR sweeps", m, n, p, nu, nv, sweeps)
    return CsvdResult(s=s_out, u=u_out, v=v_out, sweeps=sweeps)
