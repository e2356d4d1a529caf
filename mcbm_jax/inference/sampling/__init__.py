# mcbm_jax/inference/sampling/__init__.py
"""
Sampling from the model's conditional distribution.
"""
from .conditional import sample

__all__ = ["sample"]
