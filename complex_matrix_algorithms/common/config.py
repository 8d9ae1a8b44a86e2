"""Configuration dataclasses for the SVD engine, pseudo-inverse and experiments.

These provide typed containers for numerical constants and experiment
parameters so that the engine, runners and plotting scripts share a common
schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class MatrixFamily(str, Enum):
    """Supported synthetic complex matrix families."""

    GAUSSIAN = "gaussian"
    LOW_RANK = "low_rank"
    ZERO_ROW = "zero_row"


@dataclass(frozen=True)
class CsvdConfig:
    """Numerical constants of the Businger-Golub SVD engine.

    Attributes
    ----------
    max_n:
        Capacity of the per-call scratch vectors; the largest supported
        column count ``N``.
    eta:
        Relative machine precision of the working arithmetic (float32).
    tol:
        Smallest normalized positive number divided by ``eta``; column and
        row norms at or below it are treated as already eliminated.
    """

    max_n: int = 150
    eta: float = 1.1920929e-7
    tol: float = 1.5e-31


@dataclass(frozen=True)
class PinvConfig:
    """Parameters of the pseudo-inverse builder."""

    # Absolute, not scaled by the matrix norm.
    cutoff: float = 1e-4


@dataclass
class MatrixShape:
    """Matrix shape pair (m, n) with ``m >= n``."""

    m: int
    n: int


def _default_shapes() -> List[MatrixShape]:
    return [MatrixShape(m=n, n=n) for n in (4, 8, 16, 32, 64)] + [
        MatrixShape(m=2 * n, n=n) for n in (4, 8, 16, 32)
    ]


@dataclass
class ExperimentConfig:
    """Top-level configuration for an accuracy / runtime sweep."""

    shapes: List[MatrixShape] = field(default_factory=_default_shapes)
    families: List[MatrixFamily] = field(
        default_factory=lambda: [MatrixFamily.GAUSSIAN, MatrixFamily.LOW_RANK, MatrixFamily.ZERO_ROW]
    )
    num_trials: int = 3
    seed: int = 42
    csvd: CsvdConfig = field(default_factory=CsvdConfig)
    pinv: PinvConfig = field(default_factory=PinvConfig)
