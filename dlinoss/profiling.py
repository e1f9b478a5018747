"""Timing and throughput measurements for matrix work and the D-LinOSS recurrence.

Durations are in seconds. Bandwidth is in GB/s and memory in MB.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np

from dlinoss.core import apply_damped_linoss_imex, init_damping_g_matrix, init_oscillatory_a_matrix

__all__ = [
    "Profiler",
    "ProfileResult",
    "DLinossBenchmark",
    "benchmark_dlinoss",
    "estimate_memory_usage",
]

_BYTES_PER_FLOAT = 4
_MIN_BANDWIDTH_GBPS = 10.0
_REASONABLE_SECONDS = 5.0
_PEAK_OPS_PER_SECOND = 1_000_000_000.0
_TINY = 1e-12


def _elapsed_since(start: float) -> float:
    return time.perf_counter() - start


@dataclass
class ProfileResult:
    """Outcome of :meth:`Profiler.comprehensive_test`."""

    arrays_in_memory: bool
    computation_time: float
    is_faster_than_baseline: bool
    memory_bandwidth_gbps: float
    device_info: str

    def is_accelerated(self) -> bool:
        """True when the arrays checked out, bandwidth exceeds 10 GB/s and the work took at least 1 ms."""
        return (
            self.arrays_in_memory
            and self.memory_bandwidth_gbps > _MIN_BANDWIDTH_GBPS
            and self.computation_time >= 0.001
        )

    def print_assessment(self) -> None:
        """Print the measurements and a verdict."""
        print("\n=== ACCELERATION ASSESSMENT ===")
        print(f"✓ Arrays in memory: {self.arrays_in_memory}")
        print(f"✓ Computation time: {self.computation_time:.6f}s")
        print(f"✓ Faster than baseline: {self.is_faster_than_baseline}")
        print(f"✓ Memory bandwidth: {self.memory_bandwidth_gbps:.2f} GB/s")
        print(f"✓ Device: {self.device_info}")
        if self.is_accelerated():
            print("🎉 CONFIRMED: accelerated computation is being used!")
        else:
            print("❌ WARNING: acceleration not confirmed")
            print("   - Check the numerical library installation")
            print("   - Verify the BLAS backend is working")


class Profiler:
    """Times operations against an optional baseline and checks matrix work completes."""

    def __init__(self, rng: np.random.Generator | None = None) -> None:
        self._rng = np.random.default_rng() if rng is None else rng
        self.baseline_time: float | None = None

    @property
    def device_info(self) -> str:
        return f"numpy {np.__version__} (cpu)"

    def measure_baseline(self, operation: Callable[[], object]) -> float:
        """Time ``operation`` and keep the duration as the baseline."""
        start = time.perf_counter()
        operation()
        duration = _elapsed_since(start)
        self.baseline_time = duration
        return duration

    def measure_performance(self, operation: Callable[[], object]) -> tuple[float, bool]:
        """Time ``operation``; report whether it took less than twice the baseline.

        Without a baseline the comparison is False.
        """
        start = time.perf_counter()
        np.asarray(operation())
        duration = _elapsed_since(start)
        is_faster = self.baseline_time is not None and duration < self.baseline_time * 2
        return duration, is_faster

    def verify_memory(self, matrix: np.ndarray) -> bool:
        """Multiply ``matrix`` by its transpose; True for a numeric matrix done within 5 seconds."""
        matrix = np.asarray(matrix)
        if matrix.ndim != 2:
            raise ValueError(f"expected a 2-D matrix, got shape {matrix.shape}")
        start = time.perf_counter()
        matrix @ matrix.T
        duration = _elapsed_since(start)

        is_numeric = np.issubdtype(matrix.dtype, np.number)
        is_reasonable_time = duration < _REASONABLE_SECONDS
        print(
            f"  Memory verification: numeric={is_numeric}, "
            f"reasonable_time={is_reasonable_time}, duration={duration:.6f}s"
        )
        return bool(is_numeric and is_reasonable_time)

    def comprehensive_test(self, size: int) -> ProfileResult:
        """Check, time and measure bandwidth on ``size`` x ``size`` random matrices."""
        if size <= 0:
            raise ValueError(f"size must be positive, got {size}")
        print("\n=== COMPREHENSIVE VERIFICATION TEST ===")
        print(f"Matrix size: {size}x{size}")

        matrix_a = self._rng.standard_normal((size, size)).astype(np.float32)
        matrix_b = self._rng.standard_normal((size, size)).astype(np.float32)

        in_memory_a = self.verify_memory(matrix_a)
        in_memory_b = self.verify_memory(matrix_b)
        print(f"Matrix A verified: {in_memory_a}")
        print(f"Matrix B verified: {in_memory_b}")

        computation_time, is_faster = self.measure_performance(lambda: matrix_a @ matrix_b)
        print(f"Computation time: {computation_time:.6f}s")
        if self.baseline_time is not None:
            print(f"Baseline time: {self.baseline_time:.6f}s")
            print(f"Speedup: {self.baseline_time / max(computation_time, _TINY):.2f}x")

        bandwidth = self._memory_bandwidth(size)
        return ProfileResult(
            arrays_in_memory=in_memory_a and in_memory_b,
            computation_time=computation_time,
            is_faster_than_baseline=is_faster,
            memory_bandwidth_gbps=bandwidth,
            device_info=self.device_info,
        )

    def _memory_bandwidth(self, size: int) -> float:
        data_size = size * size * _BYTES_PER_FLOAT
        start = time.perf_counter()
        matrix = self._rng.standard_normal((size, size)).astype(np.float32)
        matrix + matrix * 2.0
        duration = max(_elapsed_since(start), _TINY)
        bandwidth = (data_size * 3.0) / (duration * 1_000_000_000.0)
        print(f"Memory bandwidth test: {bandwidth:.2f} GB/s")
        return bandwidth


@dataclass
class DLinossBenchmark:
    """Measurements of one run of the D-LinOSS recurrence."""

    ssm_size: int
    batch_size: int
    sequence_length: int
    computation_time: float
    memory_usage_mb: float
    throughput_sequences_per_sec: float
    utilization_estimated: float

    def print_results(self) -> str:
        """Print the measurements and return the printed text."""
        report = "\n".join(
            [
                f"  Computation time: {self.computation_time:.6f}s",
                f"  Memory usage: {self.memory_usage_mb:.2f} MB",
                f"  Throughput: {self.throughput_sequences_per_sec:.2f} sequences/sec",
                f"  Estimated utilization: {self.utilization_estimated * 100.0:.1f}%",
            ]
        )
        print(report)
        return report


def estimate_memory_usage(ssm_size: int, batch_size: int, seq_len: int, input_dim: int) -> float:
    """Estimate the MB held by parameters, input, output and intermediates in float32."""
    shapes = [
        (ssm_size,),
        (ssm_size,),
        (input_dim, ssm_size),
        (batch_size, seq_len, input_dim),
        (batch_size, seq_len, ssm_size),
        (batch_size, seq_len, ssm_size),
        (batch_size, seq_len, ssm_size),
    ]
    total_bytes = sum(int(np.prod(shape)) * _BYTES_PER_FLOAT for shape in shapes)
    return total_bytes / (1024.0 * 1024.0)


def _run_benchmark(
    ssm_size: int, batch_size: int, seq_len: int, rng: np.random.Generator
) -> DLinossBenchmark:
    input_dim = ssm_size // 2
    a_diag = init_oscillatory_a_matrix(ssm_size, 0.1, 10.0)
    g_diag = init_damping_g_matrix(ssm_size, 0.01, 0.1)
    b_matrix = rng.normal(0.0, 0.1, size=(input_dim, ssm_size))
    input_sequence = rng.normal(0.0, 1.0, size=(batch_size, seq_len, input_dim))

    memory_usage_mb = estimate_memory_usage(ssm_size, batch_size, seq_len, input_dim)

    start = time.perf_counter()
    apply_damped_linoss_imex(a_diag, g_diag, b_matrix, input_sequence, 0.01)
    computation_time = _elapsed_since(start)
    seconds = max(computation_time, _TINY)

    throughput = (batch_size * seq_len) / seconds
    actual_ops = float(ssm_size * ssm_size * seq_len * batch_size)
    utilization = (actual_ops / seconds) / _PEAK_OPS_PER_SECOND

    return DLinossBenchmark(
        ssm_size=ssm_size,
        batch_size=batch_size,
        sequence_length=seq_len,
        computation_time=computation_time,
        memory_usage_mb=memory_usage_mb,
        throughput_sequences_per_sec=throughput,
        utilization_estimated=min(utilization, 1.0),
    )


def benchmark_dlinoss(
    ssm_sizes: Sequence[int],
    batch_sizes: Sequence[int],
    sequence_lengths: Sequence[int],
    rng: np.random.Generator | None = None,
) -> list[DLinossBenchmark]:
    """Benchmark every combination of sizes, state size outermost and sequence length innermost."""
    rng = np.random.default_rng() if rng is None else rng
    results = []
    for ssm_size in ssm_sizes:
        for batch_size in batch_sizes:
            for seq_len in sequence_lengths:
                print("\n=== D-LinOSS Benchmark ===")
                print(f"SSM size: {ssm_size}, Batch: {batch_size}, Sequence: {seq_len}")
                benchmark = _run_benchmark(ssm_size, batch_size, seq_len, rng)
                benchmark.print_results()
                results.append(benchmark)
    return results