# mcbm_jax/inference/optimisation/lbfgs.py
"""
L-BFGS training.

The trainable subset of the parameters (selected by the train-mask) is
flattened into one vector and optimised with `optax.lbfgs`, whose zoom line
search runs inside the update. Objective values and gradients come from the
analytic gradient engine, evaluated over contiguous chunks of the data.

State machine of a run:

    INITIALIZED -> ITERATING -> CONVERGED | MAX_ITER_REACHED | STOPPED

STOPPED means the progress callback asked to end training early.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

import jax
import jax.numpy as jnp
import numpy as np
import optax

from ...core.config import TrainCFG
from ...core.data import ConditionalData
from ...core.errors import NumericalDegeneracy
from ...energy.gradient import make_objective
from ..base import InferenceMethod, ParameterOwner

log = logging.getLogger(__name__)


class TrainState(enum.Enum):
    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max_iter_reached"
    STOPPED = "stopped"


@dataclass
class LBFGSRun:
    """L-BFGS run results."""
    state: TrainState
    num_iter: int
    value_trace: np.ndarray  # shape [num_iter + 1]
    grad_norm_trace: np.ndarray  # shape [num_iter + 1]

    @property
    def converged(self) -> bool:
        return self.state is TrainState.CONVERGED


class LBFGS(InferenceMethod):
    """
    Limited-memory BFGS on the trainable parameters of a model.

    Convergence is declared once ||g|| / max(1, ||x||) < cfg.threshold.
    Reaching cfg.max_iter without convergence is a normal outcome, not an
    error.
    """

    def __init__(self, cfg: TrainCFG = TrainCFG()):
        self.cfg = cfg
        self.state = TrainState.INITIALIZED

    def run(self, model: ParameterOwner, data: ConditionalData) -> LBFGSRun:
        """
        Fit model.params to data.

        Args:
            model: Owner of the parameters; updated after every iteration
            data: Training data

        Returns:
            LBFGSRun with final state, iteration count and traces
        """
        cfg = self.cfg
        mask = cfg.trainable
        params = model.params

        x = params.to_vector(mask)
        self.state = TrainState.ITERATING

        if x.shape[0] == 0:
            log.debug("Nothing to train.")
            self.state = TrainState.CONVERGED
            return LBFGSRun(self.state, 0, np.zeros(0), np.zeros(0))

        objective = make_objective(params, data, cfg)
        solver = optax.lbfgs(memory_size=cfg.num_grad)
        value_and_grad = optax.value_and_grad_from_state(objective)

        @jax.jit
        def current(x, opt_state):
            return value_and_grad(x, state=opt_state)

        @jax.jit
        def step(x, opt_state):
            value, grad = value_and_grad(x, state=opt_state)
            updates, opt_state = solver.update(
                grad, opt_state, x, value=value, grad=grad, value_fn=objective
            )
            return optax.apply_updates(x, updates), opt_state

        opt_state = solver.init(x)
        value_trace = []
        grad_norm_trace = []

        i = 0
        while True:
            value, grad = current(x, opt_state)
            value = float(value)
            grad_norm = float(jnp.linalg.norm(grad))

            if not np.isfinite(value):
                raise NumericalDegeneracy(f"Objective became non-finite at iteration {i}.")

            value_trace.append(value)
            grad_norm_trace.append(grad_norm)
            if cfg.verbosity > 0:
                log.info("%6d %12.7f %12.4e", i, value, grad_norm)

            if grad_norm / max(1.0, float(jnp.linalg.norm(x))) < cfg.threshold:
                self.state = TrainState.CONVERGED
                break
            if i >= cfg.max_iter:
                self.state = TrainState.MAX_ITER_REACHED
                break

            x, opt_state = step(x, opt_state)
            model.params = params.from_vector(x, mask)
            i += 1

            if cfg.callback is not None and i % cfg.cb_iter == 0:
                if cfg.callback(i, model.copy()) is False:
                    self.state = TrainState.STOPPED
                    break

        log.debug("L-BFGS finished after %d iterations (%s).", i, self.state.value)
        return LBFGSRun(
            state=self.state,
            num_iter=i,
            value_trace=np.asarray(value_trace),
            grad_norm_trace=np.asarray(grad_norm_trace),
        )


__all__ = ["TrainState", "LBFGS", "LBFGSRun"]
