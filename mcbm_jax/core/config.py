# mcbm_jax/core/config.py
"""
Training configuration.

`TrainCFG` is the typed replacement of the dictionary of hyperparameters
accepted by `MCBM.train`. Every recognised option, its default and its
effect:

    verbosity              0      log one line per iteration if > 0
    max_iter               1000   maximum number of L-BFGS iterations
    threshold              1e-5   stop once ||g|| / max(1, ||x||) < threshold
    num_grad               20     number of gradients kept by L-BFGS
    batch_size             2000   column chunk size used for accumulation
    callback               None   called as callback(i, model_copy)
    cb_iter                25     callback period in iterations
    train_priors           True   optimise priors
    train_weights          True   optimise weights
    train_features         True   optimise features
    train_predictors       True   optimise predictors
    train_input_bias       True   optimise input bias
    train_output_bias      True   optimise output bias
    regularize_features    0.0    L2 penalty on features
    regularize_predictors  0.0    L2 penalty on predictors
"""
from __future__ import annotations

import numbers
from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping, Optional, Tuple

from .errors import InvalidConfiguration

PARAM_NAMES: Tuple[str, ...] = (
    "priors",
    "weights",
    "features",
    "predictors",
    "input_bias",
    "output_bias",
)

_INT_OPTIONS = ("verbosity", "max_iter", "num_grad", "batch_size", "cb_iter")
_FLOAT_OPTIONS = ("threshold", "regularize_features", "regularize_predictors")
_BOOL_OPTIONS = tuple(f"train_{name}" for name in PARAM_NAMES)


@dataclass(frozen=True)
class TrainCFG:
    """Configuration for training and for parameter vectorisation."""
    verbosity: int = 0
    max_iter: int = 1000
    threshold: float = 1e-5
    num_grad: int = 20
    batch_size: int = 2000
    callback: Optional[Callable[[int, Any], Any]] = None
    cb_iter: int = 25
    # Train-mask
    train_priors: bool = True
    train_weights: bool = True
    train_features: bool = True
    train_predictors: bool = True
    train_input_bias: bool = True
    train_output_bias: bool = True
    # L2 regularisation
    regularize_features: float = 0.0
    regularize_predictors: float = 0.0

    def __post_init__(self):
        for name in ("max_iter", "num_grad", "batch_size", "cb_iter"):
            if getattr(self, name) < 1:
                raise InvalidConfiguration(f"{name} should be positive.")
        for name in _FLOAT_OPTIONS:
            if getattr(self, name) < 0.0:
                raise InvalidConfiguration(f"{name} should be non-negative.")
        if self.callback is not None and not callable(self.callback):
            raise InvalidConfiguration("callback should be a function or callable object.")

    @property
    def trainable(self) -> Tuple[str, ...]:
        """Names of the tensors selected by the train-mask, in storage order."""
        return tuple(name for name in PARAM_NAMES if getattr(self, f"train_{name}"))

    @classmethod
    def from_dict(cls, parameters: Optional[Mapping[str, Any]]) -> TrainCFG:
        """
        Build a configuration from its dictionary form.

        Integer options also accept floats (truncated), float options also
        accept integers, and train flags accept only booleans.

        Args:
            parameters: Mapping of option names to values, None for defaults,
                or an existing TrainCFG which is returned unchanged.

        Returns:
            TrainCFG
        """
        if parameters is None:
            return cls()
        if isinstance(parameters, cls):
            return parameters
        if not isinstance(parameters, Mapping):
            raise InvalidConfiguration("Parameters should be stored in a dictionary.")

        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in parameters.items():
            if key not in known:
                raise InvalidConfiguration(f"Unknown parameter '{key}'.")
            kwargs[key] = _coerce(key, value)
        return cls(**kwargs)


def _coerce(key: str, value: Any) -> Any:
    if key in _BOOL_OPTIONS:
        if not isinstance(value, bool):
            raise InvalidConfiguration(f"{key} should be of type `bool`.")
        return value
    if key in _INT_OPTIONS:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise InvalidConfiguration(f"{key} should be of type `int`.")
        return int(value)
    if key in _FLOAT_OPTIONS:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise InvalidConfiguration(f"{key} should be of type `float`.")
        return float(value)
    # callback
    if value is not None and not callable(value):
        raise InvalidConfiguration(f"{key} should be a function or callable object.")
    return value


__all__ = ["PARAM_NAMES", "TrainCFG"]
