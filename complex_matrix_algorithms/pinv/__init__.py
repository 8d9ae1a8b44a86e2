"""Moore-Penrose pseudo-inverse package exports."""

from .core import pinv, pinv_from_svd, reciprocal_singular_values

__all__ = ["pinv", "pinv_from_svd", "reciprocal_singular_values"]
