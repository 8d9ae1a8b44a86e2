"""Complex test-matrix generators.

Every generator returns a fresh ``complex64`` array so callers can hand it to
the destructive ``csvd`` directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from complex_matrix_algorithms.common.config import MatrixFamily

ComplexArray = NDArray[np.complexfloating]


@dataclass
class ComplexMatrixSpec:
    """Shape and seed of a dense complex Gaussian matrix."""

    m: int
    n: int
    seed: Optional[int] = None


@dataclass
class LowRankComplexSpec:
    """Shape, rank and spectrum of a synthetic low-rank complex matrix."""

    m: int
    n: int
    r: int
    decay_exponent: float = 1.0
    noise_std: float = 0.0
    seed: Optional[int] = None


def _complex_normal(rng: np.random.Generator, shape) -> NDArray[np.complex128]:
    return (rng.normal(size=shape) + 1j * rng.normal(size=shape)) / np.sqrt(2.0)


def random_unitary(rng: np.random.Generator, m: int, k: int) -> NDArray[np.complex128]:
    """Return ``k`` orthonormal complex columns of length ``m``."""

    q, r = np.linalg.qr(_complex_normal(rng, (m, k)))
    # Fix the phases so the draw is Haar distributed.
    d = np.diagonal(r)
    return q * (d / np.abs(d))[np.newaxis, :]


def gaussian_complex_matrix(spec: ComplexMatrixSpec) -> ComplexArray:
    """Dense matrix with i.i.d. standard complex normal entries."""

    rng = np.random.default_rng(spec.seed)
    return _complex_normal(rng, (spec.m, spec.n)).astype(np.complex64)


def low_rank_complex_matrix(spec: LowRankComplexSpec) -> ComplexArray:
    """``U_r diag(sigma) V_r*`` with ``sigma_i = i^-decay`` plus optional noise."""

    if not 1 <= spec.r <= min(spec.m, spec.n):
        raise ValueError("rank r must be in [1, min(m, n)]")

    rng = np.random.default_rng(spec.seed)
    u = random_unitary(rng, spec.m, spec.r)
    v = random_unitary(rng, spec.n, spec.r)
    sigma = np.arange(1, spec.r + 1, dtype=np.float64) ** (-spec.decay_exponent)
    a = (u * sigma[np.newaxis, :]) @ v.conj().T
    if spec.noise_std > 0.0:
        a = a + spec.noise_std * _complex_normal(rng, a.shape)
    return a.astype(np.complex64)


def conditioned_complex_matrix(n: int, singular_values, seed: Optional[int] = None) -> ComplexArray:
    """Square matrix with the prescribed singular values and random unitary factors."""

    sigma = np.asarray(singular_values, dtype=np.float64)
    if sigma.shape != (n,):
        raise ValueError("need exactly n singular values")
    rng = np.random.default_rng(seed)
    u = random_unitary(rng, n, n)
    v = random_unitary(rng, n, n)
    return ((u * sigma[np.newaxis, :]) @ v.conj().T).astype(np.complex64)


def zero_row_matrix(spec: ComplexMatrixSpec, row: int = 0) -> ComplexArray:
    """Gaussian matrix with one row set to zero (rank at most ``m - 1``)."""

    a = gaussian_complex_matrix(spec)
    a[row, :] = 0
    return a


def reference_matrix() -> ComplexArray:
    """The 3x3 complex matrix used as the worked decomposition example."""

    return np.array(
        [
            [0.4032 + 0.0876j, 0.1678 + 0.0390j, 0.5425 + 0.5118j],
            [0.3174 + 0.3352j, 0.9784 + 0.4514j, -0.4416 - 1.3188j],
            [0.4008 - 0.0504j, 0.0979 - 0.2558j, 0.2983 + 0.7800j],
        ],
        dtype=np.complex64,
    )


def generate(family: MatrixFamily, m: int, n: int, seed: Optional[int] = None) -> ComplexArray:
    """Dispatch on ``family``; low-rank matrices use ``r = max(1, n // 2)``."""

    if family is MatrixFamily.GAUSSIAN:
        return gaussian_complex_matrix(ComplexMatrixSpec(m=m, n=n, seed=seed))
    if family is MatrixFamily.LOW_RANK:
        return low_rank_complex_matrix(
            LowRankComplexSpec(m=m, n=n, r=max(1, n // 2), decay_exponent=1.0, seed=seed)
        )
    if family is MatrixFamily.ZERO_ROW:
        return zero_row_matrix(ComplexMatrixSpec(m=m, n=n, seed=seed), row=m // 2)
    raise ValueError(f"unsupported matrix family: {family}")
