import jax.numpy as jnp
import numpy as np
import pytest

from mcbm_jax import ConditionalData, ShapeMismatch


def _make_data(N=4, T=53, seed=0):
    rng = np.random.RandomState(seed)
    return ConditionalData.from_arrays(rng.randint(2, size=(N, T)), rng.randint(2, size=(1, T)))


def test_chunks_shapes_and_padding():
    data = _make_data(N=4, T=53)
    X, Y, W = data.chunks(5)
    assert X.shape == (11, 4, 5)
    assert Y.shape == (11, 1, 5)
    assert W.shape == (11, 1, 5)
    np.testing.assert_array_equal(W[-1, 0], [1.0, 1.0, 1.0, 0.0, 0.0])
    assert float(jnp.sum(W)) == 53.0
    np.testing.assert_array_equal(X[-1, :, 3:], 0.0)

    # chunks in order recover the original columns
    X_flat = X.transpose(1, 0, 2).reshape(4, -1)[:, :53]
    Y_flat = Y.transpose(1, 0, 2).reshape(1, -1)[:, :53]
    np.testing.assert_array_equal(X_flat, data.X)
    np.testing.assert_array_equal(Y_flat, data.Y)


def test_chunks_batch_larger_than_data():
    data = _make_data(T=10)
    X, Y, W = data.chunks(2000)
    assert X.shape == (1, 4, 10)
    np.testing.assert_array_equal(W, 1.0)


def test_from_arrays_accepts_flat_outputs():
    data = ConditionalData.from_arrays(np.ones((3, 4)), [0, 1, 1, 0])
    assert data.Y.shape == (1, 4)
    assert data.Y.dtype == jnp.float64
    assert len(data) == 4


@pytest.mark.parametrize("output", [[[2, 0, 1, 1]], [[0, -1, 1, 0]], [[0.5, 1, 1, 0]]])
def test_from_arrays_rejects_non_binary_outputs(output):
    with pytest.raises(ShapeMismatch):
        ConditionalData.from_arrays(np.ones((3, 4)), output)


def test_rejects_empty_data():
    with pytest.raises(ShapeMismatch):
        ConditionalData.from_arrays(np.zeros((3, 0)), np.zeros((1, 0)))


def test_rejects_mismatched_columns():
    with pytest.raises(ShapeMismatch):
        ConditionalData.from_arrays(np.ones((3, 4)), np.ones((1, 5)))
