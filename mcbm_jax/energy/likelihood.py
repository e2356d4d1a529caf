# mcbm_jax/energy/likelihood.py
"""
Conditional likelihood of the mixture of conditional Boltzmann machines.

For an input column x and binary output y, component c has the score

    s_c(x, y) = eta_c + sum_i beta_ci (b_i^T x)^2 + w_c^T x + y A_c x + v_c y

and the conditional log-likelihood is

    log p(y | x) = lse_c s_c(x, y) - lse_{c, y'} s_c(x, y').

All functions below operate on whole batches (one data point per column)
and are pure functions of the parameters and the data.
"""
from __future__ import annotations

from typing import NamedTuple

import jax.numpy as jnp

from ..core.params import MCBMParams
from ..numerics import concatenate, log_sum_exp

DIM_OUT = 1


class Responses(NamedTuple):
    """Intermediate quantities shared by the likelihood and its gradient."""
    projections: jnp.ndarray  # (F, T) feature responses b_i^T x
    base: jnp.ndarray  # (C, T) scores for y = 0
    coupling: jnp.ndarray  # (C, T) A_c x + v_c, added to the scores when y = 1


def responses(params: MCBMParams, X: jnp.ndarray) -> Responses:
    projections = params.features.T @ X
    base = (
        params.priors.T
        + params.weights @ jnp.square(projections)
        + params.input_bias @ X
    )
    coupling = params.predictors @ X + params.output_bias
    return Responses(projections, base, coupling)


def scores(r: Responses, Y: jnp.ndarray) -> jnp.ndarray:
    """Component scores s_c(x_t, y_t) for the observed outputs, shape (C, T)."""
    return r.base + Y * r.coupling


def joint_scores(r: Responses) -> jnp.ndarray:
    """
    Scores for every output value stacked vertically.

    Rows 0..C-1 hold y' = 0 and rows C..2C-1 hold y' = 1.

    Returns:
        (2C, T)
    """
    return concatenate([r.base, r.base + r.coupling], axis=0)


def log_likelihood(params: MCBMParams, X: jnp.ndarray, Y: jnp.ndarray) -> jnp.ndarray:
    """
    Conditional log-likelihood in nats.

    Args:
        params: Model parameters
        X: Inputs (N, T)
        Y: Outputs (1, T)

    Returns:
        (1, T) log p(y_t | x_t)
    """
    r = responses(params, X)
    return log_sum_exp(scores(r, Y)) - log_sum_exp(joint_scores(r))


def log_prob_one(params: MCBMParams, X: jnp.ndarray) -> jnp.ndarray:
    """log p(y = 1 | x) for every column, shape (1, T)."""
    r = responses(params, X)
    joint = joint_scores(r)
    return log_sum_exp(joint[params.num_components:]) - log_sum_exp(joint)


def evaluate(params: MCBMParams, X: jnp.ndarray, Y: jnp.ndarray) -> float:
    """Average negative log-likelihood in bits per output component."""
    loglik = log_likelihood(params, X, Y)
    return float(-jnp.mean(loglik) / jnp.log(2.0) / DIM_OUT)


__all__ = [
    "DIM_OUT",
    "Responses",
    "responses",
    "scores",
    "joint_scores",
    "log_likelihood",
    "log_prob_one",
    "evaluate",
]
