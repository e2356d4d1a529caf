# mcbm_jax/inference/__init__.py
"""
Inference layer.

Fitting procedures (optimisation) and samplers that act on a model's
parameters. They consume the energy layer (likelihood and gradient) and never
re-implement it.
"""
from __future__ import annotations

from .base import InferenceMethod, ParameterOwner
from .optimisation import LBFGS, LBFGSRun, TrainState
from .sampling import sample

__all__ = [
    "InferenceMethod",
    "ParameterOwner",
    "LBFGS",
    "LBFGSRun",
    "TrainState",
    "sample",
]
