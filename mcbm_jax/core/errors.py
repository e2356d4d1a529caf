# mcbm_jax/core/errors.py
"""
Exceptions raised by the model.

All errors are detected locally and raised immediately. Training that does
not converge is not an error; it is reported through the return value.
"""
from __future__ import annotations


class MCBMError(Exception):
    """Base class for all model errors."""


class ShapeMismatch(MCBMError, ValueError):
    """A tensor or data array does not have the expected shape."""


class InvalidConfiguration(MCBMError, ValueError):
    """An option is unknown, has the wrong type or is out of range."""


class NumericalDegeneracy(MCBMError, ArithmeticError):
    """A computation hit a degenerate input (e.g. a non positive definite matrix)."""


__all__ = [
    "MCBMError",
    "ShapeMismatch",
    "InvalidConfiguration",
    "NumericalDegeneracy",
]
