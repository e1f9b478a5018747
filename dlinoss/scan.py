"""Tree-structured prefix scan over D-LinOSS recurrence elements.

A scan element is a pair ``(a, b)`` as described in :mod:`dlinoss.core`.
The scan takes an associative ``binary_op(left, right)``, where ``left`` is
the earlier element. It returns the inclusive prefix combination
``e0, op(e0, e1), op(op(e0, e1), e2), ...``. The work runs in an up-sweep
and a down-sweep, each of depth ``ceil(log2(n))``.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

import numpy as np

from dlinoss.core import ScanElement, binary_operator

__all__ = [
    "ScanProfile",
    "parallel_scan",
    "batched_parallel_scan",
    "batched_parallel_scan_with_profiling",
    "apply_damped_linoss_parallel",
]

T = TypeVar("T")
BinaryOp = Callable[[Any, Any], Any]


def _upsweep(elements: Sequence[T], binary_op: Callable[[T, T], T]) -> list[list[T]]:
    """Build the reduction tree: each level combines neighbouring pairs of the one below."""
    levels = [list(elements)]
    while len(levels[-1]) > 1:
        current = levels[-1]
        levels.append([binary_op(left, right) for left, right in zip(current[0::2], current[1::2])])
    return levels


def _downsweep(levels: list[list[T]], binary_op: Callable[[T, T], T]) -> list[T]:
    """Turn the reduction tree into inclusive prefixes, from the root down."""
    scanned = levels[-1]
    for level in reversed(levels[:-1]):
        result: list[T] = []
        for index, element in enumerate(level):
            if index == 0:
                result.append(element)
            elif index % 2:
                result.append(scanned[index // 2])
            else:
                result.append(binary_op(scanned[index // 2 - 1], element))
        scanned = result
    return scanned


def _tree_scan(elements: Sequence[T], binary_op: Callable[[T, T], T]) -> list[T]:
    if len(elements) <= 1:
        return list(elements)
    return _downsweep(_upsweep(elements, binary_op), binary_op)


def _tree_depth(n: int) -> int:
    """Depth of the scan tree, ``log2`` of the next power of two at or above ``n``."""
    return (n - 1).bit_length() if n > 0 else 0


def parallel_scan(elements: Sequence[T], binary_op: Callable[[T, T], T]) -> list[T]:
    """Return the inclusive prefix scan of ``elements`` under ``binary_op``."""
    return _tree_scan(elements, binary_op)


def _stack(elements: Sequence[ScanElement]) -> tuple[np.ndarray, np.ndarray]:
    try:
        batched_a = np.stack([np.asarray(a, dtype=float) for a, _ in elements])
        batched_b = np.stack([np.asarray(b, dtype=float) for _, b in elements])
    except ValueError as error:
        raise ValueError(f"scan elements must all have the same shapes: {error}") from error
    if batched_a.ndim != 2 or batched_b.ndim != 2:
        raise ValueError("scan elements must be pairs of 1-D arrays")
    return batched_a, batched_b


def _unstack(batched_a: np.ndarray, batched_b: np.ndarray) -> list[ScanElement]:
    return list(zip(batched_a, batched_b))


def _batched_scan(
    batched_a: np.ndarray, batched_b: np.ndarray, binary_op: BinaryOp
) -> tuple[np.ndarray, np.ndarray]:
    scanned = _tree_scan(_unstack(batched_a, batched_b), binary_op)
    return (
        np.stack([np.asarray(a, dtype=float) for a, _ in scanned]),
        np.stack([np.asarray(b, dtype=float) for _, b in scanned]),
    )


def batched_parallel_scan(elements: Sequence[ScanElement], binary_op: BinaryOp) -> list[ScanElement]:
    """Scan elements held as stacked ``[n, dim]`` arrays.

    Every element must have the same shapes. Raises ValueError otherwise.
    """
    if len(elements) <= 1:
        return list(elements)
    batched_a, batched_b = _stack(elements)
    return _unstack(*_batched_scan(batched_a, batched_b, binary_op))


@dataclass
class ScanProfile:
    """Timings, in seconds, and sizes recorded for one profiled scan."""

    upsweep_time: float = 0.0
    downsweep_time: float = 0.0
    tensor_ops_time: float = 0.0
    total_time: float = 0.0
    elements_processed: int = 0
    tree_depth: int = 0
    memory_allocated: int | None = None

    def calculate_metrics(self, n: int) -> None:
        """Record the element count and the depth of the scan tree."""
        self.elements_processed = n
        self.tree_depth = _tree_depth(n)

    def print_profile(self) -> None:
        """Print the recorded profile."""
        print("\n=== PARALLEL SCAN PROFILE ===")
        print(f"Elements processed: {self.elements_processed}")
        print(f"Tree depth (log n): {self.tree_depth}")
        print(f"Total time: {self.total_time:.6f}s")
        print(f"Up-sweep time: {self.upsweep_time:.6f}s")
        print(f"Down-sweep time: {self.downsweep_time:.6f}s")
        print(f"Tensor ops time: {self.tensor_ops_time:.6f}s")
        if self.memory_allocated is not None:
            print(f"Memory allocated: {self.memory_allocated / (1024.0 * 1024.0):.2f} MB")
        print(f"Theoretical complexity: O(log {self.elements_processed})")
        print("================================")


def batched_parallel_scan_with_profiling(
    elements: Sequence[ScanElement], binary_op: BinaryOp
) -> tuple[list[ScanElement], ScanProfile]:
    """Run :func:`batched_parallel_scan` and return its results with a :class:`ScanProfile`."""
    profile = ScanProfile()
    total_start = time.perf_counter()
    profile.calculate_metrics(len(elements))

    if len(elements) <= 1:
        profile.total_time = time.perf_counter() - total_start
        return list(elements), profile

    start = time.perf_counter()
    batched_a, batched_b = _stack(elements)
    profile.memory_allocated = batched_a.nbytes + batched_b.nbytes
    rows = _unstack(batched_a, batched_b)
    profile.tensor_ops_time = time.perf_counter() - start

    start = time.perf_counter()
    levels = _upsweep(rows, binary_op)
    profile.upsweep_time = time.perf_counter() - start

    start = time.perf_counter()
    scanned = _downsweep(levels, binary_op)
    profile.downsweep_time = time.perf_counter() - start

    results = [(np.asarray(a, dtype=float), np.asarray(b, dtype=float)) for a, b in scanned]
    profile.total_time = time.perf_counter() - total_start
    return results, profile


def _compose_recurrence(earlier: ScanElement, later: ScanElement) -> ScanElement:
    """Combine two steps of ``x_t = A_t x_{t-1} + b_t``, earlier step first."""
    return binary_operator(later, earlier)


def apply_damped_linoss_parallel(
    a_diag: np.ndarray,
    g_diag: np.ndarray,
    b_matrix: np.ndarray,
    input_sequence: np.ndarray,
    step: float,
) -> np.ndarray:
    """Compute the same recurrence as ``apply_damped_linoss_imex`` with a prefix scan.

    Returns the position states, with shape ``[batch, seq_len, ssm_size]``.
    """
    a = np.asarray(a_diag, dtype=float)
    g = np.asarray(g_diag, dtype=float)
    b = np.asarray(b_matrix, dtype=float)
    u = np.asarray(input_sequence, dtype=float)

    if a.ndim != 1 or g.shape != a.shape:
        raise ValueError(f"a_diag and g_diag must be 1-D of equal length, got {a.shape} and {g.shape}")
    if u.ndim != 3:
        raise ValueError(f"input_sequence must be 3-D [batch, seq_len, input_dim], got shape {u.shape}")
    ssm_size = a.shape[0]
    batch_size, seq_len, input_dim = u.shape
    if b.shape != (input_dim, ssm_size):
        raise ValueError(f"b_matrix must have shape ({input_dim}, {ssm_size}), got {b.shape}")

    bu = u @ b

    s_inv = 1.0 / (1.0 + g * step)
    transition = np.concatenate(
        [
            s_inv,
            -step * s_inv * a,
            step * s_inv,
            1.0 - step * step * s_inv * a,
        ]
    )

    output = np.zeros((batch_size, seq_len, ssm_size))
    for batch_index, sequence in enumerate(bu):
        forced = sequence * s_inv
        elements = [
            (transition, np.concatenate([f * step, f * (step * step)])) for f in forced
        ]
        states = batched_parallel_scan(elements, _compose_recurrence)
        if states:
            output[batch_index] = np.stack([state[ssm_size:] for _, state in states])
    return output