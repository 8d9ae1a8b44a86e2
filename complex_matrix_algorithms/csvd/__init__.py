"""Complex singular value decomposition package exports."""

from .core import CsvdResult, DimensionViolation, InvalidDimensionError, QrState, csvd

__all__ = ["CsvdResult", "DimensionViolation", "InvalidDimensionError", "QrState", "csvd"]
