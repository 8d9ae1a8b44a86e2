"""Single-precision complex SVD (Businger-Golub) and pseudo-inverse."""

__version__ = "0.1.0"
