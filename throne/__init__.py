"""Throne: king of the hill bidding ledger with idempotent payment settlement."""

__version__ = "0.1.0"
__author__ = "Throne Team"

__all__ = ["__version__", "__author__"]
