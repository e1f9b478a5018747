"""Convolutional MNIST classifier with an MLP or a D-LinOSS head."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from dlinoss.block import DLinossBlock
from dlinoss.layer import DLinossLayerConfig
from dlinoss.nn import Conv2d, Dropout, Linear, adaptive_avg_pool2d, relu

__all__ = ["ModelConfig", "Model", "FEATURES"]

POOL_SIZE = (8, 8)
FEATURES = 16 * POOL_SIZE[0] * POOL_SIZE[1]


@dataclass
class Model:
    """Two convolutions, pooling to 16x8x8 features, then a classification head."""

    conv1: Conv2d
    conv2: Conv2d
    dropout: Dropout
    linear1: Linear | None = None
    linear2: Linear | None = None
    dlinoss_block: DLinossBlock | None = None
    training: bool = False

    def forward(self, images: np.ndarray) -> np.ndarray:
        """Map images ``[batch, height, width]`` to class scores ``[batch, num_classes]``."""
        images = np.asarray(images, dtype=float)
        if images.ndim != 3:
            raise ValueError(f"expected images [batch, height, width], got shape {images.shape}")
        batch_size = images.shape[0]

        x = self.conv1.forward(images[:, np.newaxis, :, :])
        x = self.dropout.forward(x, self.training)
        x = self.conv2.forward(x)
        x = self.dropout.forward(x, self.training)
        x = relu(x)
        x = adaptive_avg_pool2d(x, POOL_SIZE)
        x = x.reshape(batch_size, FEATURES)

        if self.dlinoss_block is not None:
            return self.dlinoss_block.forward(x[:, np.newaxis, :])[:, 0, :]

        if self.linear1 is not None:
            x = self.linear1.forward(x)
            x = self.dropout.forward(x, self.training)
            x = relu(x)
        if self.linear2 is not None:
            x = self.linear2.forward(x)
        return x


@dataclass
class ModelConfig:
    """Settings of a :class:`Model`."""

    num_classes: int
    hidden_size: int
    dropout: float = 0.5
    use_dlinoss: bool = False

    def init(self, rng: np.random.Generator | None = None) -> Model:
        """Build a model with freshly initialised weights."""
        rng = np.random.default_rng() if rng is None else rng
        conv1 = Conv2d((1, 8), (3, 3), rng=rng)
        conv2 = Conv2d((8, 16), (3, 3), rng=rng)
        dropout = Dropout(self.dropout, rng=rng)
        if self.use_dlinoss:
            config = DLinossLayerConfig.dlinoss_config(FEATURES, self.num_classes, self.hidden_size)
            return Model(conv1, conv2, dropout, dlinoss_block=DLinossBlock(config, 1, rng=rng))
        return Model(
            conv1,
            conv2,
            dropout,
            linear1=Linear(FEATURES, self.hidden_size, rng=rng),
            linear2=Linear(self.hidden_size, self.num_classes, rng=rng),
        )