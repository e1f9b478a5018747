import math

import numpy as np
import pytest

from dlinoss.nn import Conv2d, Dropout, Linear, adaptive_avg_pool2d, gelu, relu


def test_linear_without_bias_maps_zero_to_zero():
    layer = Linear(3, 5, bias=False, rng=np.random.default_rng(0))
    assert layer.weight.shape == (3, 5)
    assert layer.bias is None
    assert np.array_equal(layer.forward(np.zeros((2, 3))), np.zeros((2, 5)))


def test_linear_is_affine():
    rng = np.random.default_rng(1)
    layer = Linear(4, 6, rng=rng)
    a, b = rng.normal(size=4), rng.normal(size=4)
    zero = layer.forward(np.zeros(4))
    assert np.allclose(layer.forward(a + b) + zero, layer.forward(a) + layer.forward(b))
    assert np.allclose(zero, layer.bias)


def test_linear_init_within_bound():
    layer = Linear(16, 8, rng=np.random.default_rng(2))
    bound = 1.0 / math.sqrt(16)
    assert np.all(np.abs(layer.weight) <= bound)
    assert np.all(np.abs(layer.bias) <= bound)


def test_linear_seeded_init_is_reproducible():
    first = Linear(5, 3, rng=np.random.default_rng(7))
    second = Linear(5, 3, rng=np.random.default_rng(7))
    assert np.array_equal(first.weight, second.weight)
    assert np.array_equal(first.bias, second.bias)


def test_linear_applies_to_last_axis():
    layer = Linear(3, 2, rng=np.random.default_rng(3))
    x = np.random.default_rng(4).normal(size=(4, 5, 3))
    assert layer.forward(x).shape == (4, 5, 2)


def test_linear_rejects_wrong_width():
    layer = Linear(3, 2)
    with pytest.raises(ValueError):
        layer.forward(np.zeros((2, 4)))


def test_linear_rejects_nonpositive_sizes():
    with pytest.raises(ValueError):
        Linear(0, 2)


def test_relu_clamps_negatives():
    assert np.array_equal(relu([-1.0, 0.0, 2.0]), [0.0, 0.0, 2.0])


def test_gelu_limits_and_symmetry():
    assert gelu(0.0) == 0.0
    assert gelu(10.0) == pytest.approx(10.0)
    assert gelu(-10.0) == pytest.approx(0.0, abs=1e-12)
    x = np.linspace(-3, 3, 13)
    assert np.allclose(gelu(x) - gelu(-x), x)


def test_dropout_is_identity_outside_training():
    x = np.arange(10.0)
    assert np.array_equal(Dropout(0.5).forward(x), x)
    assert np.array_equal(Dropout(0.0).forward(x, training=True), x)


def test_dropout_training_zeroes_or_rescales():
    x = np.arange(1.0, 201.0)
    out = Dropout(0.5, rng=np.random.default_rng(0)).forward(x, training=True)
    assert np.all((out == 0.0) | np.isclose(out, 2.0 * x))
    assert np.any(out == 0.0)
    assert np.any(out != 0.0)


@pytest.mark.parametrize("prob", [-0.1, 1.0, 1.5])
def test_dropout_rejects_bad_probability(prob):
    with pytest.raises(ValueError):
        Dropout(prob)


def test_conv2d_output_shape():
    conv = Conv2d((3, 4), (3, 3), rng=np.random.default_rng(0))
    out = conv.forward(np.zeros((2, 3, 5, 6)))
    assert out.shape == (2, 4, 3, 4)
    assert np.allclose(out[0, :, 0, 0], conv.bias)


def test_conv2d_delta_kernel_crops_input():
    conv = Conv2d((2, 1), (3, 3))
    conv.weight = np.zeros_like(conv.weight)
    conv.weight[0, 1, 1, 1] = 1.0
    conv.bias = np.zeros_like(conv.bias)
    x = np.random.default_rng(5).normal(size=(2, 2, 6, 7))
    assert np.allclose(conv.forward(x)[:, 0], x[:, 1, 1:-1, 1:-1])


def test_conv2d_rejects_channel_mismatch():
    conv = Conv2d((1, 8), (3, 3))
    with pytest.raises(ValueError):
        conv.forward(np.zeros((1, 2, 10, 10)))


def test_conv2d_rejects_small_input():
    conv = Conv2d((1, 1), (3, 3))
    with pytest.raises(ValueError):
        conv.forward(np.zeros((1, 1, 2, 5)))


def test_pool_preserves_mean_when_divisible():
    x = np.random.default_rng(0).normal(size=(2, 3, 24, 24))
    pooled = adaptive_avg_pool2d(x, (8, 8))
    assert pooled.shape == (2, 3, 8, 8)
    assert np.allclose(pooled.mean(axis=(-2, -1)), x.mean(axis=(-2, -1)))


def test_pool_identity_at_same_size_and_constant():
    x = np.random.default_rng(1).normal(size=(1, 1, 5, 5))
    assert np.allclose(adaptive_avg_pool2d(x, (5, 5)), x)
    assert np.allclose(adaptive_avg_pool2d(np.full((7, 9), 3.5), (2, 4)), 3.5)


def test_pool_rejects_zero_output():
    with pytest.raises(ValueError):
        adaptive_avg_pool2d(np.zeros((4, 4)), (0, 2))