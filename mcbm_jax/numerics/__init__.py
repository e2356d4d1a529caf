# mcbm_jax/numerics/__init__.py
from .utils import (
    log_sum_exp,
    log_mean_exp,
    sample_normal,
    sample_gamma,
    covariance,
    p_inverse,
    log_det_pd,
    concatenate,
    readonly,
)

__all__ = [
    "log_sum_exp",
    "log_mean_exp",
    "sample_normal",
    "sample_gamma",
    "covariance",
    "p_inverse",
    "log_det_pd",
    "concatenate",
    "readonly",
]
