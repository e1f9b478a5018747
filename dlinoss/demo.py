"""Demonstration run of the layer, the MLP model and the D-LinOSS model."""

from __future__ import annotations

import argparse

import numpy as np

from dlinoss.layer import DLinossLayer, DLinossLayerConfig
from dlinoss.model import ModelConfig

__all__ = ["main"]


def _shape(array: np.ndarray) -> str:
    return str(list(array.shape))


def main(argv: list[str] | None = None) -> int:
    """Run the demonstration and return the exit status."""
    parser = argparse.ArgumentParser(prog="dlinoss-demo", description="Run the D-LinOSS demonstration.")
    parser.add_argument("--seed", type=int, default=None, help="seed for the random generator")
    args = parser.parse_args(argv)
    rng = np.random.default_rng(args.seed)

    print(f"Numerical backend: numpy {np.__version__}")

    test_matrix = rng.standard_normal((100, 100))
    print(f"Test matrix shape: {_shape(test_matrix)}")
    product = test_matrix @ test_matrix.T
    print(f"Matrix multiplication completed. Result shape: {_shape(product)}")

    layer = DLinossLayer(DLinossLayerConfig.dlinoss_config(32, 32, 32), rng=rng)
    layer_input = rng.uniform(-1.0, 1.0, size=(2, 64, 32))
    layer_output = layer.forward_3d(layer_input)
    print("D-LinOSS layer forward pass successful!")
    print(f"Output shape: {_shape(layer_output)}")

    mlp_model = ModelConfig(num_classes=10, hidden_size=512, dropout=0.5, use_dlinoss=False).init(rng)
    mlp_output = mlp_model.forward(rng.uniform(0.0, 1.0, size=(2, 28, 28)))
    print("Full model with MLP head successful!")
    print(f"Model output shape: {_shape(mlp_output)}")

    dlinoss_model = ModelConfig(num_classes=10, hidden_size=64, dropout=0.5, use_dlinoss=True).init(rng)
    dlinoss_output = dlinoss_model.forward(rng.uniform(0.0, 1.0, size=(2, 28, 28)))
    print("Full model with D-LinOSS head successful!")
    print(f"D-LinOSS model output shape: {_shape(dlinoss_output)}")

    print("\n=== Large matrix test ===")
    large_a = rng.standard_normal((512, 512))
    large_b = rng.standard_normal((512, 512))
    large_result = large_a @ large_b
    print(f"Large matrix multiplication (512x512) completed. Result shape: {_shape(large_result)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())