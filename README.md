# dlinoss

Damped linear oscillatory state-space layers (D-LinOSS), written with NumPy.

## What is in the package

- `dlinoss.core` holds the D-LinOSS maths.
  - `init_oscillatory_a_matrix(ssm_size, min_period, max_period)` returns
    log-spaced angular frequencies.
  - `init_damping_g_matrix(ssm_size, r_min, r_max)` returns negative,
    log-spaced damping coefficients.
  - `init_stable_parameters(ssm_size, step, rng)` draws A uniformly from
    `[0.1, 2.0)` and picks a G that meets the stability condition
    `(G_i - step * A_i)**2 <= 4 * A_i`.
  - `check_stability_condition(a_diag, g_diag, step)` reports whether that
    condition holds for every oscillator.
  - `binary_operator(q_i, q_j)` is the associative combination of two
    `(a, b)` scan elements. Here `a` is a flattened 2x2 block matrix of
    length `4n`, and `b` is a `[velocity, position]` state of length `2n`.
  - `apply_damped_linoss_imex(a_diag, g_diag, b_matrix, input_sequence, step)`
    runs the IMEX recurrence step by step. It maps an input
    `[batch, seq_len, input_dim]` to position states `[batch, seq_len, ssm_size]`.
- `dlinoss.scan` holds tree-based (up-sweep and down-sweep) inclusive prefix scans.
  - `parallel_scan(elements, binary_op)` works on any associative operator.
  - `batched_parallel_scan(elements, binary_op)` requires every element to
    have the same shapes and raises `ValueError` otherwise.
  - `batched_parallel_scan_with_profiling(elements, binary_op)` also returns a
    `ScanProfile`. The profile holds timings in seconds, the element count,
    the tree depth and the bytes stacked. `print_profile()` prints it.
  - `apply_damped_linoss_parallel(...)` computes the same result as
    `apply_damped_linoss_imex`, but by way of the scan.
- `dlinoss.nn` holds small building blocks: `Linear`, `Dropout`, `Conv2d`
  (stride 1, no padding), `gelu`, `relu` and `adaptive_avg_pool2d`.
- `dlinoss.layer` holds `DLinossLayerConfig` and `DLinossLayer`.
  - The layer runs an input projection, then the damped recurrence, then an
    output projection, GELU and dropout.
  - `forward_3d` takes `[batch, seq_len, input_dim]`.
  - `forward_2d` takes `[batch, input_dim]`.
  - `forward` dispatches on the rank of its input.
  - Dropout applies only when the layer's `training` attribute is set.
- `dlinoss.block` holds `DLinossBlock`, which applies a stack of layers built
  from one config.
- `dlinoss.data` holds `MnistItem`, `MnistBatch` and `MnistBatcher`.
  - `MnistBatcher().batch(items)` scales 28x28 pixel values from `[0, 255]` to
    `[0, 1]`.
  - It then standardises them with mean 0.1307 and std 0.3081.
  - It returns float32 images `[batch, 28, 28]` and int64 targets.
- `dlinoss.model` holds `ModelConfig` and `Model`.
  - The model runs two 3x3 convolutions, then ReLU, then adaptive pooling to
    16x8x8 features.
  - The head is either an MLP or, with `use_dlinoss=True`, a one-layer
    `DLinossBlock`.
  - `Model.forward(images)` maps `[batch, height, width]` to
    `[batch, num_classes]`.
- `dlinoss.profiling` holds `Profiler`, `ProfileResult`, `DLinossBenchmark`,
  `benchmark_dlinoss` and `estimate_memory_usage`.
  - These give rough timing, bandwidth (GB/s), throughput and memory (MB)
    figures for matrix work and for the recurrence.
  - Durations are in seconds.

## Installation

```
pip install .
```

## Example

```python
import numpy as np
from dlinoss.core import (
    apply_damped_linoss_imex,
    init_damping_g_matrix,
    init_oscillatory_a_matrix,
)

rng = np.random.default_rng(0)
a = init_oscillatory_a_matrix(32, 0.1, 10.0)
g = init_damping_g_matrix(32, 0.01, 0.1)
b = rng.normal(0.0, 0.1, size=(8, 32))
u = rng.normal(size=(4, 64, 8))

y = apply_damped_linoss_imex(a, g, b, u, 0.01)
print(y.shape)  # (4, 64, 32)
```

A layer and a model:

```python
import numpy as np
from dlinoss.layer import DLinossLayer, DLinossLayerConfig
from dlinoss.model import ModelConfig

rng = np.random.default_rng(0)
layer = DLinossLayer(DLinossLayerConfig.dlinoss_config(32, 32, 32), rng)
out = layer.forward_3d(rng.uniform(-1, 1, size=(2, 64, 32)))
print(out.shape)  # (2, 64, 32)

model = ModelConfig(num_classes=10, hidden_size=64, use_dlinoss=True).init(rng)
logits = model.forward(rng.uniform(0, 1, size=(2, 28, 28)))
print(logits.shape)  # (2, 10)
```

## Demo

```
dlinoss-demo
dlinoss-demo --seed 0
```

The demo does the following:

- It builds a layer and both model variants.
- It runs forward passes on random data and prints the shapes of the results.
- It runs a few matrix multiplications.

`--seed` makes the run reproducible.

## What the package does not do

- It does not train. There is no optimiser, no loss, no backpropagation and
  no learning loop.
- It does not load the MNIST dataset.
- It does not save or load trained weights.
- It offers no inference command. The models run forward passes only, with
  freshly initialised weights.
- All computation runs on the CPU through NumPy.

## Tests

```
pip install .[test]
pytest
```