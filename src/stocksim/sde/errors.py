# src/stocksim/sde/errors.py
from __future__ import annotations


class StocksimError(Exception):
    """Base class for errors raised by the path generator."""

    pass


class InvalidParameter(StocksimError, ValueError):
    """Raised when a numeric parameter violates its constraint (e.g. alpha <= 0)."""

    pass


class UnsupportedScheme(StocksimError, ValueError):
    """Raised when a scheme token is not registered."""

    pass
