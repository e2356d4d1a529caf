# mcbm_jax/inference/sampling/conditional.py
"""
Exact sampling from the conditional distribution p(y | x).

The output is binary, so each column only needs log p(y = 1 | x) and a single
uniform draw. Columns are sampled independently.
"""
from __future__ import annotations

import jax
import jax.numpy as jnp

from ...core.params import MCBMParams
from ...energy.likelihood import log_prob_one


def sample(params: MCBMParams, X: jnp.ndarray, key) -> jnp.ndarray:
    """
    Draw one output per input column.

    Args:
        params: Model parameters
        X: Inputs (N, T)
        key: PRNG key

    Returns:
        (1, T) integer array of sampled outputs in {0, 1}
    """
    log_p1 = log_prob_one(params, X)
    u = jax.random.uniform(key, log_p1.shape, dtype=jnp.float64)
    return (jnp.log(u) < log_p1).astype(jnp.int64)


__all__ = ["sample"]
