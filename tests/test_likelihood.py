import jax
import jax.numpy as jnp
import numpy as np

from mcbm_jax import MCBMParams
from mcbm_jax.energy import evaluate, joint_scores, log_likelihood, log_prob_one, responses, scores


def _make_problem(N=5, C=3, F=4, T=40, seed=0, scale=1.0):
    keys = jax.random.split(jax.random.PRNGKey(seed), 2)
    params = MCBMParams.init(keys[0], N, C, F)
    # larger parameters than the default initialisation
    params = jax.tree_util.tree_map(
        lambda a: scale * jax.random.normal(keys[1], a.shape, dtype=jnp.float64), params
    )
    rng = np.random.RandomState(seed)
    X = jnp.asarray(rng.randint(2, size=(N, T)), dtype=jnp.float64)
    Y = jnp.asarray(rng.randint(2, size=(1, T)), dtype=jnp.float64)
    return params, X, Y


def _direct_loglik(params, x, y):
    """Reference implementation for one data point."""
    def score(c, y_):
        proj = params.features.T @ x
        return (
            params.priors[0, c]
            + jnp.sum(params.weights[c] * proj ** 2)
            + params.input_bias[c] @ x
            + y_ * (params.predictors[c] @ x)
            + params.output_bias[c, 0] * y_
        )

    C = params.num_components
    num = jnp.log(sum(jnp.exp(score(c, y)) for c in range(C)))
    den = jnp.log(sum(jnp.exp(score(c, y_)) for c in range(C) for y_ in (0.0, 1.0)))
    return num - den


def test_matches_direct_formula():
    params, X, Y = _make_problem(T=6)
    loglik = log_likelihood(params, X, Y)
    assert loglik.shape == (1, 6)
    for t in range(6):
        np.testing.assert_allclose(loglik[0, t], _direct_loglik(params, X[:, t], Y[0, t]), rtol=1e-10)


def test_normalised():
    params, X, _ = _make_problem()
    T = X.shape[1]
    p0 = jnp.exp(log_likelihood(params, X, jnp.zeros((1, T))))
    p1 = jnp.exp(log_likelihood(params, X, jnp.ones((1, T))))
    np.testing.assert_allclose(p0 + p1, 1.0, atol=1e-12)
    np.testing.assert_allclose(jnp.exp(log_prob_one(params, X)), p1, atol=1e-12)


def test_stable_for_large_scores():
    params, X, Y = _make_problem(scale=200.0)
    loglik = log_likelihood(params, X, Y)
    assert jnp.all(jnp.isfinite(loglik))
    assert jnp.all(loglik <= 1e-8)


def test_score_shapes():
    params, X, Y = _make_problem(C=3, T=7)
    r = responses(params, X)
    assert scores(r, Y).shape == (3, 7)
    joint = joint_scores(r)
    assert joint.shape == (6, 7)
    np.testing.assert_allclose(joint[3:], scores(r, jnp.ones((1, 7))))


def test_evaluate_bits():
    params, X, Y = _make_problem()
    loglik = log_likelihood(params, X, Y)
    expected = -float(jnp.mean(loglik)) / np.log(2.0)
    np.testing.assert_allclose(evaluate(params, X, Y), expected)

    # a model with all parameters zero predicts 1 bit per output
    zero = jax.tree_util.tree_map(jnp.zeros_like, params)
    np.testing.assert_allclose(evaluate(zero, X, Y), 1.0)


def test_evaluate_permutation_invariant():
    params, X, Y = _make_problem(T=50)
    perm = np.random.RandomState(1).permutation(50)
    np.testing.assert_allclose(
        evaluate(params, X[:, perm], Y[:, perm]), evaluate(params, X, Y), rtol=1e-12
    )
