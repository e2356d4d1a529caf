# mcbm_jax/energy/__init__.py
from __future__ import annotations

from .likelihood import (
    DIM_OUT,
    responses,
    scores,
    joint_scores,
    log_likelihood,
    log_prob_one,
    evaluate,
)
from .gradient import value_and_gradient, objective_value, make_objective
from .check import numerical_gradient, check_gradient

__all__ = [
    "DIM_OUT",
    "responses",
    "scores",
    "joint_scores",
    "log_likelihood",
    "log_prob_one",
    "evaluate",
    "value_and_gradient",
    "objective_value",
    "make_objective",
    "numerical_gradient",
    "check_gradient",
]
