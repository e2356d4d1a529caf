# mcbm_jax/numerics/utils.py
"""
Numerical utilities.

Thin, column-oriented wrappers around jax.numpy / jax.scipy. Arrays follow
the model's convention of one data point per column, so reductions run over
axis 0 and return row vectors.
"""
from __future__ import annotations

from typing import Optional, Sequence

import jax
import jax.numpy as jnp
import jax.scipy as jsp
import numpy as np

from ..core.errors import InvalidConfiguration, NumericalDegeneracy, ShapeMismatch


def log_sum_exp(a: jnp.ndarray) -> jnp.ndarray:
    """
    Stable log(sum(exp(a))) over columns.

    Args:
        a: (K, T)

    Returns:
        (1, T)
    """
    return jsp.special.logsumexp(a, axis=0, keepdims=True)


def log_mean_exp(a: jnp.ndarray) -> jnp.ndarray:
    """Stable log(mean(exp(a))) over columns, returned as (1, T)."""
    return log_sum_exp(a) - jnp.log(a.shape[0])


def sample_normal(key, m: int = 1, n: int = 1) -> jnp.ndarray:
    return jax.random.normal(key, (m, n), dtype=jnp.float64)


def sample_gamma(key, m: int = 1, n: int = 1, k: int = 1) -> jnp.ndarray:
    """Gamma samples with integer shape k and unit scale."""
    return jax.random.gamma(key, float(k), (m, n), dtype=jnp.float64)


def covariance(data: jnp.ndarray, other: Optional[jnp.ndarray] = None) -> jnp.ndarray:
    """
    Sample covariance of column data.

    With a second argument, returns the cross-covariance between the rows of
    data and the rows of other.
    """
    if other is None:
        return jnp.atleast_2d(jnp.cov(data))
    if data.shape[1] != other.shape[1]:
        raise ShapeMismatch("Both arrays should contain the same number of data points.")
    data = data - data.mean(axis=1, keepdims=True)
    other = other - other.mean(axis=1, keepdims=True)
    return data @ other.T / (data.shape[1] - 1)


def p_inverse(matrix: jnp.ndarray) -> jnp.ndarray:
    """Moore-Penrose pseudo-inverse."""
    return jnp.linalg.pinv(matrix)


def log_det_pd(matrix: jnp.ndarray) -> float:
    """
    Log-determinant of a symmetric positive definite matrix via Cholesky.

    Raises:
        NumericalDegeneracy: if the matrix is not positive definite
    """
    matrix = jnp.asarray(matrix)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ShapeMismatch("Log-determinant requires a square matrix.")
    L = jnp.linalg.cholesky(matrix)
    if not bool(jnp.all(jnp.isfinite(L))):
        raise NumericalDegeneracy("Matrix is not positive definite.")
    return float(2.0 * jnp.sum(jnp.log(jnp.diag(L))))


def concatenate(arrays: Sequence[jnp.ndarray], axis: int = 1) -> jnp.ndarray:
    """
    Concatenate 2-D arrays vertically (axis=0) or horizontally (axis=1).

    Raises:
        InvalidConfiguration: if axis is not 0 or 1
        ShapeMismatch: if the orthogonal dimensions differ
    """
    if axis not in (0, 1):
        raise InvalidConfiguration("Axis should be 0 or 1.")
    if len(arrays) == 0:
        return jnp.zeros((0, 0), dtype=jnp.float64)

    other = 1 - axis
    size = arrays[0].shape[other]
    for a in arrays:
        if a.shape[other] != size:
            if axis == 1:
                raise ShapeMismatch("Arrays must have the same number of rows for concatenation.")
            raise ShapeMismatch("Arrays must have the same number of columns for concatenation.")
    return jnp.concatenate(arrays, axis=axis)


def readonly(a) -> np.ndarray:
    """Copy an array into a NumPy array that cannot be written to."""
    out = np.array(a)
    out.flags.writeable = False
    return out


__all__ = [
    "log_sum_exp",
    "log_mean_exp",
    "sample_normal",
    "sample_gamma",
    "covariance",
    "p_inverse",
    "log_det_pd",
    "concatenate",
    "readonly",
]
