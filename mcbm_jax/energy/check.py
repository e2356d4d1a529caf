# mcbm_jax/energy/check.py
"""
Finite-difference verification of the analytic gradient.
"""
from __future__ import annotations

import jax
import jax.numpy as jnp

from ..core.config import TrainCFG
from ..core.data import ConditionalData
from ..core.params import MCBMParams
from .gradient import objective_value, value_and_gradient


def numerical_gradient(
    params: MCBMParams,
    data: ConditionalData,
    epsilon: float = 1e-5,
    cfg: TrainCFG = TrainCFG(),
) -> jnp.ndarray:
    """
    Central-difference estimate of the objective's gradient.

    Each trained scalar theta_k is perturbed to theta_k +/- epsilon on a copy
    of the parameter vector; params itself is never modified.
    """
    x = params.to_vector(cfg.trainable)
    f = jax.jit(lambda x_: objective_value(x_, params, data, cfg))

    estimate = []
    for k in range(x.shape[0]):
        f_plus = f(x.at[k].add(epsilon))
        f_minus = f(x.at[k].add(-epsilon))
        estimate.append((f_plus - f_minus) / (2.0 * epsilon))
    return jnp.asarray(estimate, dtype=jnp.float64)


def check_gradient(
    params: MCBMParams,
    data: ConditionalData,
    epsilon: float = 1e-5,
    cfg: TrainCFG = TrainCFG(),
) -> float:
    """
    Compare the analytic gradient with central finite differences.

    Returns:
        Maximum absolute difference over all trained parameters
        (0.0 if nothing is trained)
    """
    x = params.to_vector(cfg.trainable)
    if x.shape[0] == 0:
        return 0.0
    _, analytic = value_and_gradient(x, params, data, cfg)
    estimate = numerical_gradient(params, data, epsilon, cfg)
    return float(jnp.max(jnp.abs(analytic - estimate)))


__all__ = ["numerical_gradient", "check_gradient"]
