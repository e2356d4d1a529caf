# mcbm_jax/model.py
"""
Mixture of conditional Boltzmann machines.

The distribution defined by the model is

    p(y | x) ∝ sum_c exp(eta_c + sum_i beta_ci (b_i^T x)^2 + w_c^T x + y A_c x + v_c y)

where x ∈ {0, 1}^N and y ∈ {0, 1}.

To create an MCBM with N-dimensional inputs, 8 components and 100 features:

    >>> mcbm = MCBM(N, 8, 100)

The parameters eta, beta, b, A, w and v are available as `mcbm.priors`,
`mcbm.weights`, `mcbm.features`, `mcbm.predictors`, `mcbm.input_bias` and
`mcbm.output_bias`.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Union

import jax
import jax.numpy as jnp
import numpy as np

from .core.config import PARAM_NAMES, TrainCFG
from .core.data import ConditionalData, as_inputs
from .core.errors import InvalidConfiguration
from .core.params import MCBMParams
from .energy import likelihood
from .energy.check import check_gradient
from .energy.gradient import value_and_gradient
from .inference.optimisation import LBFGS
from .inference.sampling import sample as sample_outputs
from .numerics import readonly

Parameters = Optional[Union[Mapping[str, Any], TrainCFG]]


def _default_key():
    return jax.random.PRNGKey(np.random.randint(2 ** 31 - 1))


class MCBM:
    """
    Mixture of conditional Boltzmann machines with binary output.

    Args:
        dim_in: Dimensionality of the input
        num_components: Number of components
        num_features: Number of features b_i; defaults to dim_in
        key: PRNG key for the initial parameters; drawn from NumPy's global
            random state if omitted
    """

    def __init__(
        self,
        dim_in: int,
        num_components: int = 8,
        num_features: Optional[int] = None,
        *,
        key=None,
    ):
        if not num_features:
            num_features = dim_in
        for name, value in (
            ("dim_in", dim_in),
            ("num_components", num_components),
            ("num_features", num_features),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
                raise InvalidConfiguration(f"{name} should be a positive integer.")
        if key is None:
            key = _default_key()
        self.params = MCBMParams.init(key, int(dim_in), int(num_components), int(num_features))

    # ---- dimensions ----
    @property
    def dim_in(self) -> int:
        return self.params.dim_in

    @property
    def dim_out(self) -> int:
        return likelihood.DIM_OUT

    @property
    def num_components(self) -> int:
        return self.params.num_components

    @property
    def num_features(self) -> int:
        return self.params.num_features

    # ---- parameters ----
    def _get(self, name: str) -> np.ndarray:
        return readonly(self.params.get(name))

    def _set(self, name: str, value) -> None:
        self.params = self.params.replace(name, value)

    priors = property(lambda self: self._get("priors"), lambda self, v: self._set("priors", v))
    weights = property(lambda self: self._get("weights"), lambda self, v: self._set("weights", v))
    features = property(lambda self: self._get("features"), lambda self, v: self._set("features", v))
    predictors = property(lambda self: self._get("predictors"), lambda self, v: self._set("predictors", v))
    input_bias = property(lambda self: self._get("input_bias"), lambda self, v: self._set("input_bias", v))
    output_bias = property(lambda self: self._get("output_bias"), lambda self, v: self._set("output_bias", v))

    def copy(self) -> MCBM:
        """Independent snapshot of the model."""
        model = MCBM.__new__(MCBM)
        # Parameters are immutable arrays; later updates rebind self.params.
        model.params = self.params
        return model

    # ---- evaluation ----
    def _data(self, input, output) -> ConditionalData:
        return ConditionalData.from_arrays(input, output, dim_in=self.dim_in)

    def loglikelihood(self, input, output) -> np.ndarray:
        """
        Conditional log-likelihood of every data point in nats.

        Args:
            input: Inputs stored in columns
            output: Outputs stored in columns

        Returns:
            (1, T) array
        """
        data = self._data(input, output)
        return np.asarray(likelihood.log_likelihood(self.params, data.X, data.Y))

    def evaluate(self, input, output) -> float:
        """Average negative log-likelihood in bits per output component (smaller is better)."""
        data = self._data(input, output)
        return likelihood.evaluate(self.params, data.X, data.Y)

    def sample(self, input, key=None) -> np.ndarray:
        """Generate one output for every input column, returned as a (1, T) array."""
        X = as_inputs(input, self.dim_in)
        if key is None:
            key = _default_key()
        return np.asarray(sample_outputs(self.params, X, key))

    # ---- training ----
    def train(self, input, output, parameters: Parameters = None) -> bool:
        """
        Fit the parameters with L-BFGS.

        Parameters may be a TrainCFG or its dictionary form, e.g.

            >>> model.train(input, output, parameters={
            >>>     'max_iter': 1000,
            >>>     'threshold': 1e-5,
            >>>     'train_priors': False,
            >>>     'regularize_features': 1e-3,
            >>> })

        If a callback is given, it is called every `cb_iter` iterations with the
        current iteration and a copy of the model. Returning False stops
        training.

        Returns:
            True if training converged, otherwise False
        """
        cfg = TrainCFG.from_dict(parameters)
        data = self._data(input, output)
        return LBFGS(cfg).run(self, data).converged

    def num_parameters(self, parameters: Parameters = None) -> int:
        return self.params.num_parameters(TrainCFG.from_dict(parameters).trainable)

    def parameters(self, parameters: Parameters = None) -> np.ndarray:
        """Trained parameters (see the train_* flags) concatenated into one vector."""
        cfg = TrainCFG.from_dict(parameters)
        return np.asarray(self.params.to_vector(cfg.trainable))

    def set_parameters(self, x, parameters: Parameters = None) -> None:
        """Load parameters from a vector as produced by `parameters()`."""
        cfg = TrainCFG.from_dict(parameters)
        x = jnp.asarray(np.asarray(x, dtype=np.float64).ravel())
        self.params = self.params.from_vector(x, cfg.trainable)

    def compute_gradient(self, input, output, x=None, parameters: Parameters = None) -> np.ndarray:
        """
        Gradient of the training objective with respect to the trained parameters.

        Args:
            input: Inputs stored in columns
            output: Outputs stored in columns
            x: Parameter vector at which to evaluate; defaults to the current parameters
            parameters: Train-mask, regularisation and batch size
        """
        cfg = TrainCFG.from_dict(parameters)
        data = self._data(input, output)
        if x is None:
            x = self.params.to_vector(cfg.trainable)
        else:
            x = jnp.asarray(np.asarray(x, dtype=np.float64).ravel())
        _, gradient = value_and_gradient(x, self.params, data, cfg)
        return np.asarray(gradient)

    def check_gradient(self, input, output, epsilon: float = 1e-5, parameters: Parameters = None) -> float:
        """Maximum absolute difference between analytic and numerical gradient."""
        cfg = TrainCFG.from_dict(parameters)
        data = self._data(input, output)
        return check_gradient(self.params, data, epsilon, cfg)

    # ---- pickling ----
    def __reduce__(self):
        args = (self.dim_in, self.num_components, self.num_features)
        state = tuple(self._get(name) for name in PARAM_NAMES)
        return (self.__class__, args, state)

    def __setstate__(self, state) -> None:
        if len(state) != len(PARAM_NAMES):
            raise InvalidConfiguration(f"State should contain {len(PARAM_NAMES)} arrays.")
        for name, value in zip(PARAM_NAMES, state):
            self._set(name, value)

    def __repr__(self) -> str:
        return (
            f"MCBM(dim_in={self.dim_in}, num_components={self.num_components}, "
            f"num_features={self.num_features})"
        )


__all__ = ["MCBM"]
