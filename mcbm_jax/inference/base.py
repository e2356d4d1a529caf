# mcbm_jax/inference/base.py
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..core.data import ConditionalData
from ..core.params import MCBMParams


@runtime_checkable
class ParameterOwner(Protocol):
    """
    Anything that owns a set of model parameters.

    Inference methods read `params`, assign updated parameters back to it, and
    use `copy()` to hand out snapshots that do not alias the live state.
    """
    params: MCBMParams

    def copy(self) -> Any:
        ...


@runtime_checkable
class InferenceMethod(Protocol):
    """
    Protocol for fitting procedures.

    A method is configured at construction time and applied with
    `run(model, data)`. It updates `model.params` in place (by assignment)
    and returns a method-specific result object.
    """

    def run(self, model: ParameterOwner, data: ConditionalData) -> Any:
        ...
