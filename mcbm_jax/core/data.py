# mcbm_jax/core/data.py
"""
Data view layer.

Inputs and outputs are stored column-wise: every column is one data point.
These containers only validate and slice; they make no probabilistic
assumptions.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import jax.numpy as jnp
import numpy as np

from .errors import ShapeMismatch


@dataclass(frozen=True)
class ConditionalData:
    """
    Supervised data view for a conditional model.

    - X: inputs (N, T)
    - Y: outputs (1, T)
    """
    X: jnp.ndarray  # (N, T)
    Y: jnp.ndarray  # (1, T)

    def __post_init__(self):
        if self.X.ndim != 2:
            raise ShapeMismatch("Inputs should be stored in a 2-D array (dim_in, T).")
        if self.Y.ndim != 2 or self.Y.shape[0] != 1:
            raise ShapeMismatch("Outputs should be stored in a 1 x T array.")
        if self.X.shape[1] != self.Y.shape[1]:
            raise ShapeMismatch(
                f"Number of inputs ({self.X.shape[1]}) and outputs "
                f"({self.Y.shape[1]}) should be the same."
            )
        if self.X.shape[1] == 0:
            raise ShapeMismatch("Data should contain at least one data point.")

    @classmethod
    def from_arrays(cls, input, output, dim_in: Optional[int] = None) -> ConditionalData:
        """
        Convert array-likes to a float64 data view.

        Args:
            input: Inputs stored in columns, shape (N, T)
            output: Outputs stored in columns, shape (1, T) or (T,)
            dim_in: If given, the required number of input rows

        Returns:
            ConditionalData
        """
        X = as_inputs(input, dim_in)
        output = np.asarray(output)
        if not np.all((output == 0) | (output == 1)):
            raise ShapeMismatch("Outputs should be binary (0 or 1).")
        Y = jnp.asarray(output, dtype=jnp.float64)
        if Y.ndim == 1:
            Y = Y[None, :]
        return cls(X, Y)

    def chunks(self, batch_size: int) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
        """
        Split the columns into contiguous chunks stacked on a leading axis.

        The last chunk is padded with zero columns whose weight is zero, so
        every chunk has the same shape and can be consumed by `lax.scan`.

        Args:
            batch_size: Maximum number of columns per chunk

        Returns:
            (X, Y, W) with shapes (K, N, B), (K, 1, B) and (K, 1, B)
        """
        T = len(self)
        B = min(batch_size, T)
        K = -(-T // B)
        pad = ((0, 0), (0, K * B - T))

        def stack(a):
            return jnp.pad(a, pad).reshape(a.shape[0], K, B).transpose(1, 0, 2)

        W = jnp.ones((1, T), dtype=jnp.float64)
        return stack(self.X), stack(self.Y), stack(W)

    def __len__(self) -> int:
        """Return number of data points."""
        return self.X.shape[1]


def as_inputs(input, dim_in: Optional[int] = None) -> jnp.ndarray:
    """Convert an array-like of column inputs to a float64 (N, T) array."""
    X = jnp.asarray(np.asarray(input), dtype=jnp.float64)
    if X.ndim == 1:
        X = X[:, None]
    if X.ndim != 2:
        raise ShapeMismatch("Inputs should be stored in a 2-D array (dim_in, T).")
    if dim_in is not None and X.shape[0] != dim_in:
        raise ShapeMismatch(f"Inputs should have {dim_in} rows, got {X.shape[0]}.")
    return X


__all__ = ["ConditionalData", "as_inputs"]
