from dataclasses import replace

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from mcbm_jax import MCBM, MCBMParams, TrainCFG, ConditionalData
from mcbm_jax.energy import (
    check_gradient,
    log_likelihood,
    make_objective,
    numerical_gradient,
    value_and_gradient,
)


def _make_problem(N=3, C=2, F=3, T=60, seed=0):
    keys = jax.random.split(jax.random.PRNGKey(seed), 2)
    params = MCBMParams.init(keys[0], N, C, F)
    params = jax.tree_util.tree_map(
        lambda a: 0.5 * jax.random.normal(keys[1], a.shape, dtype=jnp.float64), params
    )
    rng = np.random.RandomState(seed)
    data = ConditionalData.from_arrays(rng.randint(2, size=(N, T)), rng.randint(2, size=(1, T)))
    return params, data


@pytest.mark.parametrize(
    "cfg",
    [
        TrainCFG(),
        TrainCFG(regularize_features=0.1, regularize_predictors=0.3),
        TrainCFG(train_priors=False, train_features=False),
        TrainCFG(train_weights=False, train_predictors=False, train_output_bias=False),
        TrainCFG(batch_size=7),
    ],
)
def test_gradient_check(cfg):
    params, data = _make_problem()
    assert check_gradient(params, data, 1e-5, cfg) < 1e-4


def test_matches_autodiff():
    params, data = _make_problem()
    T = len(data)

    def f(x):
        p = params.from_vector(x)
        return -jnp.sum(log_likelihood(p, data.X, data.Y)) / (T * jnp.log(2.0))

    x = params.to_vector()
    value, grad = value_and_gradient(x, params, data)
    np.testing.assert_allclose(value, f(x), rtol=1e-12)
    np.testing.assert_allclose(grad, jax.grad(f)(x), atol=1e-10)


def test_batching_does_not_change_result():
    params, data = _make_problem(T=53)
    x = params.to_vector()
    v_full, g_full = value_and_gradient(x, params, data, TrainCFG(batch_size=2000))
    v_chunk, g_chunk = value_and_gradient(x, params, data, TrainCFG(batch_size=5))
    np.testing.assert_allclose(v_chunk, v_full, rtol=1e-12)
    np.testing.assert_allclose(g_chunk, g_full, atol=1e-12)


def _num_equations(params, data, cfg):
    x = params.to_vector(cfg.trainable)
    jaxpr = jax.make_jaxpr(lambda v: value_and_gradient(v, params, data, cfg))(x)
    return len(jaxpr.jaxpr.eqns)


def test_traced_graph_independent_of_chunk_count():
    params, data = _make_problem(T=100)
    sizes = [_num_equations(params, data, TrainCFG(batch_size=b)) for b in (1, 5, 20, 100)]
    assert len(set(sizes)) == 1


def test_padded_last_chunk_is_ignored():
    params, data = _make_problem(T=53)
    x = params.to_vector()
    v_one, g_one = value_and_gradient(x, params, data, TrainCFG(batch_size=53))
    for batch_size in (2, 7, 10, 52):
        v, g = value_and_gradient(x, params, data, TrainCFG(batch_size=batch_size))
        np.testing.assert_allclose(v, v_one, rtol=1e-12)
        np.testing.assert_allclose(g, g_one, atol=1e-12)


def test_mask_omits_untrained():
    params, data = _make_problem()
    full = TrainCFG()
    partial = TrainCFG(train_features=False, train_input_bias=False)

    _, g_full = value_and_gradient(params.to_vector(full.trainable), params, data, full)
    _, g_part = value_and_gradient(params.to_vector(partial.trainable), params, data, partial)
    assert g_part.shape == (params.num_parameters(partial.trainable),)

    # entries of trained tensors agree with the full gradient
    offset_full, offset_part = 0, 0
    for name, shape in params.layout(full.trainable):
        size = int(np.prod(shape))
        if name in partial.trainable:
            np.testing.assert_allclose(
                g_part[offset_part:offset_part + size], g_full[offset_full:offset_full + size]
            )
            offset_part += size
        offset_full += size


def test_regularisation_gradient():
    params, data = _make_problem()
    cfg = TrainCFG(
        train_priors=False, train_weights=False, train_input_bias=False,
        train_output_bias=False, train_predictors=False, regularize_features=0.5,
    )
    x = params.to_vector(cfg.trainable)
    v_reg, g_reg = value_and_gradient(x, params, data, cfg)
    v, g = value_and_gradient(x, params, data, replace(cfg, regularize_features=0.0))
    np.testing.assert_allclose(v_reg - v, 0.5 * jnp.sum(params.features ** 2))
    np.testing.assert_allclose(g_reg - g, (2 * 0.5 * params.features).ravel())


def test_objective_uses_analytic_gradient():
    params, data = _make_problem()
    cfg = TrainCFG(regularize_predictors=0.2)
    objective = make_objective(params, data, cfg)
    x = params.to_vector()
    value, grad = jax.value_and_grad(objective)(x)
    v_ref, g_ref = value_and_gradient(x, params, data, cfg)
    np.testing.assert_allclose(value, v_ref)
    np.testing.assert_allclose(grad, g_ref)
    np.testing.assert_allclose(jax.jit(jax.grad(objective))(x), g_ref, atol=1e-12)


def test_numerical_gradient_leaves_params_untouched():
    params, data = _make_problem()
    before = params.to_vector()
    numerical_gradient(params, data)
    np.testing.assert_array_equal(params.to_vector(), before)


def test_model_check_gradient():
    model = MCBM(3, 2, 3, key=jax.random.PRNGKey(3))
    rng = np.random.RandomState(3)
    X = rng.randint(2, size=(3, 40))
    Y = rng.randint(2, size=(1, 40))
    assert model.check_gradient(X, Y) < 1e-4
    assert model.check_gradient(X, Y, parameters={"train_features": False, "regularize_predictors": 1.0}) < 1e-4
    assert model.check_gradient(X, Y, parameters={f"train_{n}": False for n in
                                                  ("priors", "weights", "features", "predictors",
                                                   "input_bias", "output_bias")}) == 0.0
