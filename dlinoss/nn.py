"""Small neural-network building blocks on NumPy arrays.

Weights and biases are drawn uniformly from ``[-1/sqrt(fan_in), 1/sqrt(fan_in)]``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

__all__ = ["Linear", "Dropout", "Conv2d", "gelu", "relu", "adaptive_avg_pool2d"]

_erf = np.vectorize(math.erf, otypes=[float])


def _uniform_init(rng: np.random.Generator, shape: tuple[int, ...], fan_in: int) -> np.ndarray:
    bound = 1.0 / math.sqrt(fan_in)
    return rng.uniform(-bound, bound, size=shape)


def _rng_or_default(rng: np.random.Generator | None) -> np.random.Generator:
    return np.random.default_rng() if rng is None else rng


class Linear:
    """Affine map ``x @ weight + bias`` with ``weight`` of shape ``[in_features, out_features]``."""

    def __init__(
        self,
        in_features: int,
        out_features: int,
        bias: bool = True,
        rng: np.random.Generator | None = None,
    ) -> None:
        if in_features <= 0 or out_features <= 0:
            raise ValueError(f"feature sizes must be positive, got {in_features} and {out_features}")
        rng = _rng_or_default(rng)
        self.weight = _uniform_init(rng, (in_features, out_features), in_features)
        self.bias = _uniform_init(rng, (out_features,), in_features) if bias else None

    @property
    def in_features(self) -> int:
        return self.weight.shape[0]

    @property
    def out_features(self) -> int:
        return self.weight.shape[1]

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Apply the map to the last axis of ``x``."""
        x = np.asarray(x, dtype=float)
        if x.ndim == 0 or x.shape[-1] != self.in_features:
            raise ValueError(f"expected last dimension {self.in_features}, got shape {x.shape}")
        y = x @ self.weight
        if self.bias is not None:
            y = y + self.bias
        return y


class Dropout:
    """Zero each entry with probability ``prob`` during training and rescale the rest."""

    def __init__(self, prob: float = 0.5, rng: np.random.Generator | None = None) -> None:
        if not 0.0 <= prob < 1.0:
            raise ValueError(f"dropout probability must be in [0, 1), got {prob}")
        self.prob = prob
        self._rng = _rng_or_default(rng)

    def forward(self, x: np.ndarray, training: bool = False) -> np.ndarray:
        """Return ``x`` unchanged unless ``training`` is set and ``prob`` is positive."""
        x = np.asarray(x, dtype=float)
        if not training or self.prob == 0.0:
            return x
        keep = self._rng.random(x.shape) >= self.prob
        return np.where(keep, x / (1.0 - self.prob), 0.0)


class Conv2d:
    """Two-dimensional convolution with stride 1, no padding and a bias.

    ``channels`` is ``(in_channels, out_channels)``; inputs are ``[batch, C, H, W]``.
    """

    def __init__(
        self,
        channels: Sequence[int],
        kernel_size: Sequence[int],
        rng: np.random.Generator | None = None,
    ) -> None:
        in_channels, out_channels = channels
        kernel_h, kernel_w = kernel_size
        if min(in_channels, out_channels, kernel_h, kernel_w) <= 0:
            raise ValueError("channel counts and kernel sizes must be positive")
        rng = _rng_or_default(rng)
        fan_in = in_channels * kernel_h * kernel_w
        self.weight = _uniform_init(rng, (out_channels, in_channels, kernel_h, kernel_w), fan_in)
        self.bias = _uniform_init(rng, (out_channels,), fan_in)

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Return the valid convolution, shape ``[batch, out, H - kh + 1, W - kw + 1]``."""
        x = np.asarray(x, dtype=float)
        _, in_channels, kernel_h, kernel_w = self.weight.shape
        if x.ndim != 4 or x.shape[1] != in_channels:
            raise ValueError(f"expected input [batch, {in_channels}, H, W], got shape {x.shape}")
        if x.shape[2] < kernel_h or x.shape[3] < kernel_w:
            raise ValueError(f"input {x.shape[2:]} is smaller than kernel {(kernel_h, kernel_w)}")
        windows = sliding_window_view(x, (kernel_h, kernel_w), axis=(2, 3))
        out = np.einsum("bchwij,ocij->bohw", windows, self.weight)
        return out + self.bias[np.newaxis, :, np.newaxis, np.newaxis]


def gelu(x: np.ndarray) -> np.ndarray:
    """Gaussian error linear unit, ``x * Phi(x)``, using the exact error function."""
    x = np.asarray(x, dtype=float)
    return 0.5 * x * (1.0 + _erf(x / math.sqrt(2.0)))


def relu(x: np.ndarray) -> np.ndarray:
    """Rectified linear unit."""
    return np.maximum(np.asarray(x, dtype=float), 0.0)


def _bins(size: int, count: int) -> list[tuple[int, int]]:
    return [((i * size) // count, -((-(i + 1) * size) // count)) for i in range(count)]


def adaptive_avg_pool2d(x: np.ndarray, output_size: Sequence[int]) -> np.ndarray:
    """Average the last two axes of ``x`` down to ``output_size`` bins."""
    x = np.asarray(x, dtype=float)
    out_h, out_w = output_size
    if out_h <= 0 or out_w <= 0:
        raise ValueError(f"output size must be positive, got {tuple(output_size)}")
    if x.ndim < 2:
        raise ValueError(f"input must have at least two dimensions, got shape {x.shape}")
    height, width = x.shape[-2:]
    result = np.empty(x.shape[:-2] + (out_h, out_w))
    for i, (r0, r1) in enumerate(_bins(height, out_h)):
        for j, (c0, c1) in enumerate(_bins(width, out_w)):
            result[..., i, j] = x[..., r0:r1, c0:c1].mean(axis=(-2, -1))
    return result