"""A single damped linear oscillatory state-space layer."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from dlinoss.core import apply_damped_linoss_imex, init_damping_g_matrix, init_oscillatory_a_matrix
from dlinoss.nn import Dropout, Linear, gelu

__all__ = ["DLinossLayerConfig", "DLinossLayer"]


@dataclass
class DLinossLayerConfig:
    """Sizes and initialisation settings of a :class:`DLinossLayer`."""

    num_oscillators: int
    input_dim: int
    output_dim: int
    use_damping: bool = True
    damping_min: float = 0.001
    damping_max: float = 0.1
    r_min: float = 0.01
    r_max: float = 10.0
    delta_t: float = 0.01
    dropout: float = 0.0

    @classmethod
    def dlinoss_config(cls, input_dim: int, output_dim: int, num_oscillators: int) -> DLinossLayerConfig:
        """Build a config with default settings from the three sizes."""
        return cls(num_oscillators, input_dim, output_dim)


class DLinossLayer:
    """Input projection, damped oscillator recurrence, output projection, GELU and dropout."""

    def __init__(self, config: DLinossLayerConfig, rng: np.random.Generator | None = None) -> None:
        rng = np.random.default_rng() if rng is None else rng
        self.input_proj = Linear(config.input_dim, config.num_oscillators, bias=False, rng=rng)
        self.output_proj = Linear(config.num_oscillators, config.output_dim, bias=True, rng=rng)
        self.a_diag = init_oscillatory_a_matrix(config.num_oscillators, config.r_min, config.r_max)
        self.g_diag = (
            init_damping_g_matrix(config.num_oscillators, config.damping_min, config.damping_max)
            if config.use_damping
            else None
        )
        self.delta_t = config.delta_t
        self.dropout = Dropout(config.dropout, rng=rng)
        self.training = False

    @property
    def num_oscillators(self) -> int:
        return self.a_diag.shape[0]

    @property
    def output_dim(self) -> int:
        return self.output_proj.out_features

    def _states(self, x: np.ndarray) -> np.ndarray:
        g_diag = np.zeros_like(self.a_diag) if self.g_diag is None else self.g_diag
        return apply_damped_linoss_imex(self.a_diag, g_diag, self.input_proj.weight, x, self.delta_t)

    def _project(self, states: np.ndarray) -> np.ndarray:
        return self.dropout.forward(gelu(self.output_proj.forward(states)), self.training)

    def forward_2d(self, x: np.ndarray) -> np.ndarray:
        """Treat each row of ``[batch, input_dim]`` as a sequence of length one."""
        x = np.asarray(x, dtype=float)
        if x.ndim != 2:
            raise ValueError(f"expected [batch, input_dim], got shape {x.shape}")
        return self._project(self._states(x[:, np.newaxis, :])[:, 0, :])

    def forward_3d(self, x: np.ndarray) -> np.ndarray:
        """Map ``[batch, seq_len, input_dim]`` to ``[batch, seq_len, output_dim]``."""
        x = np.asarray(x, dtype=float)
        if x.ndim != 3:
            raise ValueError(f"expected [batch, seq_len, input_dim], got shape {x.shape}")
        return self._project(self._states(x))

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Dispatch to :meth:`forward_2d` or :meth:`forward_3d` by the rank of ``x``."""
        x = np.asarray(x, dtype=float)
        if x.ndim == 2:
            return self.forward_2d(x)
        if x.ndim == 3:
            return self.forward_3d(x)
        raise ValueError(f"input must be 2-D or 3-D, got shape {x.shape}")