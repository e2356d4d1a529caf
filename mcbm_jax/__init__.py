# mcbm_jax/__init__.py
"""
Mixtures of conditional Boltzmann machines in JAX.

Parameters, data and gradients are kept in double precision; importing the
package enables `jax_enable_x64`.
"""
import jax

jax.config.update("jax_enable_x64", True)

from .core import (  # noqa: E402
    PARAM_NAMES,
    TrainCFG,
    ConditionalData,
    MCBMParams,
    MCBMError,
    ShapeMismatch,
    InvalidConfiguration,
    NumericalDegeneracy,
)
from .inference import LBFGS, LBFGSRun, TrainState  # noqa: E402
from .model import MCBM  # noqa: E402

__version__ = "0.1.0"

__all__ = [
    "MCBM",
    "MCBMParams",
    "TrainCFG",
    "ConditionalData",
    "PARAM_NAMES",
    "LBFGS",
    "LBFGSRun",
    "TrainState",
    "MCBMError",
    "ShapeMismatch",
    "InvalidConfiguration",
    "NumericalDegeneracy",
]
