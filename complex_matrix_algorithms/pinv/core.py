"""Moore-Penrose pseudo-inverse from a complex SVD.

Given ``A = U S V*`` (``A`` of shape ``(m, n)``, ``m >= n``) the pseudo-inverse
is ``INV = V S+ U*`` where ``S+`` holds the reciprocals of the singular values
above an absolute cutoff and zero elsewhere, padded from length ``n`` to ``m``.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from complex_matrix_algorithms.common.config import CsvdConfig, PinvConfig
from complex_matrix_algorithms.csvd.core import csvd

FloatArray = NDArray[np.floating]
ComplexArray = NDArray[np.complexfloating]

PINV_CUTOFF = PinvConfig().cutoff


def reciprocal_singular_values(s: FloatArray, m: int, cutoff: float = PINV_CUTOFF) -> FloatArray:
    """Return ``S+`` as a length-``m`` vector.

    Entries of ``s`` greater than ``cutoff`` are inverted; the rest, and the
    ``m - n`` padding entries, are zero.
    """

    s = np.asarray(s, dtype=np.float32)
    s_plus = np.zeros(max(m, s.shape[0]), dtype=np.float32)
    keep = s > np.float32(cutoff)
    s_plus[: s.shape[0]][keep] = np.float32(1) / s[keep]
    return s_plus


def pinv_from_svd(
    s: FloatArray,
    u: ComplexArray,
    v: ComplexArray,
    inv: Optional[ComplexArray] = None,
    cutoff: float = PINV_CUTOFF,
) -> ComplexArray:
    """Compute ``INV = V S+ U*`` from an existing decomposition.

    Parameters
    ----------
    s:
        Singular values, length ``n``.
    u:
        Left factor with ``m`` rows (all ``m`` columns, as produced with
        ``nu = m``).
    v:
        Right factor, ``(n, n)``.
    inv:
        Optional ``complex64`` output buffer of shape ``(n, m)``.
    cutoff:
        Singular values at or below this absolute value are treated as zero.

    Returns
    -------
    ndarray
        Pseudo-inverse of shape ``(n, m)``.
    """

    m = u.shape[0]
    n = v.shape[0]
    s_plus = reciprocal_singular_values(s, m, cutoff)

    product = ((v[:, :n] * s_plus[np.newaxis, :n]) @ u[:, :n].conj().T).astype(np.complex64, copy=False)
    if inv is None:
        return product
    if inv.shape != (n, m):
        raise ValueError(f"inv has shape {inv.shape}, expected {(n, m)}")
    inv[:] = product
    return inv


def pinv(
    a: ComplexArray,
    inv: Optional[ComplexArray] = None,
    config: Optional[PinvConfig] = None,
    csvd_config: Optional[CsvdConfig] = None,
) -> ComplexArray:
    """Pseudo-inverse of ``a`` (``m >= n``) via ``csvd``.

    ``a`` is consumed exactly as by ``csvd``; pass a copy to keep the original.
    Raises ``InvalidDimensionError`` for unsupported shapes.
    """

    cfg = config or PinvConfig()
    m, n = np.shape(a)
    result = csvd(a, nu=m, nv=n, config=csvd_config)
    return pinv_from_svd(result.s, result.u, result.v, inv=inv, cutoff=cfg.cutoff)
