# mcbm_jax/inference/optimisation/__init__.py
"""
Optimisation methods.

- LBFGS: limited-memory quasi-Newton training with train-mask and L2 penalties
"""
from .lbfgs import LBFGS, LBFGSRun, TrainState

__all__ = ["LBFGS", "LBFGSRun", "TrainState"]
