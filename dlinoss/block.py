"""A stack of D-LinOSS layers."""

from __future__ import annotations

import numpy as np

from dlinoss.layer import DLinossLayer, DLinossLayerConfig

__all__ = ["DLinossBlock"]


class DLinossBlock:
    """Applies ``num_layers`` layers built from one config in turn.

    No normalisation is applied; ``norm`` is kept as ``None``.
    """

    def __init__(
        self,
        config: DLinossLayerConfig,
        num_layers: int,
        rng: np.random.Generator | None = None,
    ) -> None:
        if num_layers < 0:
            raise ValueError(f"num_layers must not be negative, got {num_layers}")
        rng = np.random.default_rng() if rng is None else rng
        self.layers = [DLinossLayer(config, rng=rng) for _ in range(num_layers)]
        self.norm = None

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Run ``[batch, seq_len, dim]`` through every layer."""
        x = np.asarray(x, dtype=float)
        for layer in self.layers:
            x = layer.forward_3d(x)
        return x