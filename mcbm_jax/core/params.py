# mcbm_jax/core/params.py
from __future__ import annotations

from dataclasses import dataclass, replace as dc_replace
from typing import List, Sequence, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jax.tree_util import register_pytree_node_class

from .config import PARAM_NAMES
from .errors import InvalidConfiguration, ShapeMismatch


@register_pytree_node_class
@dataclass(frozen=True)
class MCBMParams:
    """
    All trainable tensors of a mixture of conditional Boltzmann machines.

    priors: (1, C) unconstrained log-mixing weights eta
    weights: (C, F) scales beta of the squared feature responses
    features: (N, F) feature directions b, shared across components
    predictors: (C, N) output coupling A
    input_bias: (C, N) linear input terms w
    output_bias: (C, 1) linear output terms v

    The order of the fields is the order used for vectorisation.
    """
    priors: jnp.ndarray
    weights: jnp.ndarray
    features: jnp.ndarray
    predictors: jnp.ndarray
    input_bias: jnp.ndarray
    output_bias: jnp.ndarray

    # ---- pytree protocol ----
    def tree_flatten(self):
        children = tuple(getattr(self, name) for name in PARAM_NAMES)
        return children, None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)

    # ---- construction ----
    @classmethod
    def init(cls, key, dim_in: int, num_components: int, num_features: int) -> MCBMParams:
        """
        Draw initial parameters.

        Priors start at zero, weights are positive and all other tensors are
        small Gaussian perturbations around zero.
        """
        k_w, k_b, k_a, k_in, k_out = jax.random.split(key, 5)
        N, C, F = dim_in, num_components, num_features
        normal = lambda k, shape: jax.random.normal(k, shape, dtype=jnp.float64) / 100.0
        return cls(
            priors=jnp.zeros((1, C), dtype=jnp.float64),
            weights=jnp.abs(normal(k_w, (C, F))),
            features=normal(k_b, (N, F)),
            predictors=normal(k_a, (C, N)),
            input_bias=normal(k_in, (C, N)),
            output_bias=normal(k_out, (C, 1)),
        )

    @staticmethod
    def shapes(dim_in: int, num_components: int, num_features: int) -> List[Tuple[str, Tuple[int, int]]]:
        """Ordered (name, shape) pairs for the given model dimensions."""
        N, C, F = dim_in, num_components, num_features
        return [
            ("priors", (1, C)),
            ("weights", (C, F)),
            ("features", (N, F)),
            ("predictors", (C, N)),
            ("input_bias", (C, N)),
            ("output_bias", (C, 1)),
        ]

    # ---- dimensions ----
    @property
    def dim_in(self) -> int:
        return self.features.shape[0]

    @property
    def num_components(self) -> int:
        return self.weights.shape[0]

    @property
    def num_features(self) -> int:
        return self.features.shape[1]

    def layout(self, mask: Sequence[str] = PARAM_NAMES) -> List[Tuple[str, Tuple[int, int]]]:
        """(name, shape) pairs of the tensors selected by mask, in storage order."""
        _check_names(mask)
        return [
            (name, shape)
            for name, shape in self.shapes(self.dim_in, self.num_components, self.num_features)
            if name in mask
        ]

    # ---- get / set ----
    def get(self, name: str) -> jnp.ndarray:
        _check_names((name,))
        return getattr(self, name)

    def replace(self, name: str, value) -> MCBMParams:
        """
        Return a copy with one tensor replaced.

        Raises:
            ShapeMismatch: if value does not have the shape of the current tensor
        """
        _check_names((name,))
        value = jnp.asarray(np.asarray(value), dtype=jnp.float64)
        expected = getattr(self, name).shape
        if value.shape != expected:
            raise ShapeMismatch(
                f"{name} should have shape {expected}, got {value.shape}."
            )
        return dc_replace(self, **{name: value})

    # ---- vectorisation ----
    def num_parameters(self, mask: Sequence[str] = PARAM_NAMES) -> int:
        return sum(int(np.prod(shape)) for _, shape in self.layout(mask))

    def to_vector(self, mask: Sequence[str] = PARAM_NAMES) -> jnp.ndarray:
        """Concatenate the selected tensors (row-major) into one flat vector."""
        parts = [getattr(self, name).ravel() for name, _ in self.layout(mask)]
        if not parts:
            return jnp.zeros((0,), dtype=jnp.float64)
        return jnp.concatenate(parts)

    def from_vector(self, x, mask: Sequence[str] = PARAM_NAMES) -> MCBMParams:
        """
        Inverse of `to_vector`. Tensors not selected by mask are kept.

        Works on traced arrays so it can be used inside jitted objectives.
        """
        x = jnp.asarray(x)
        layout = self.layout(mask)
        expected = sum(int(np.prod(shape)) for _, shape in layout)
        if x.ndim != 1 or x.shape[0] != expected:
            raise ShapeMismatch(
                f"Parameter vector should have {expected} entries, got shape {x.shape}."
            )
        updates = {}
        offset = 0
        for name, shape in layout:
            size = int(np.prod(shape))
            updates[name] = x[offset:offset + size].reshape(shape)
            offset += size
        return dc_replace(self, **updates)


def _check_names(names: Sequence[str]) -> None:
    for name in names:
        if name not in PARAM_NAMES:
            raise InvalidConfiguration(
                f"Unknown parameter '{name}'. Available: {list(PARAM_NAMES)}"
            )


__all__ = ["MCBMParams"]
