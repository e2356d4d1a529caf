# mcbm_jax/core/__init__.py
from .config import PARAM_NAMES, TrainCFG
from .data import ConditionalData
from .errors import InvalidConfiguration, MCBMError, NumericalDegeneracy, ShapeMismatch
from .params import MCBMParams

__all__ = [
    "PARAM_NAMES",
    "TrainCFG",
    "ConditionalData",
    "MCBMParams",
    "MCBMError",
    "ShapeMismatch",
    "InvalidConfiguration",
    "NumericalDegeneracy",
]
