import numpy as np
import pytest

from dlinoss.core import (
    apply_damped_linoss_imex,
    binary_operator,
    check_stability_condition,
    init_damping_g_matrix,
    init_oscillatory_a_matrix,
    init_stable_parameters,
)
from dlinoss.scan import (
    ScanProfile,
    apply_damped_linoss_parallel,
    batched_parallel_scan,
    batched_parallel_scan_with_profiling,
    parallel_scan,
)


def _sequential_reference(elements, binary_op):
    results = []
    for element in elements:
        results.append(element if not results else binary_op(results[-1], element))
    return results


def _make_elements(count, n, seed=0):
    rng = np.random.default_rng(seed)
    return [
        (rng.uniform(0.5, 1.0, size=4 * n), rng.normal(0.0, 0.1, size=2 * n))
        for _ in range(count)
    ]


def test_empty_scan_returns_empty_list():
    assert parallel_scan([], binary_operator) == []
    assert batched_parallel_scan([], binary_operator) == []


def test_single_element_is_returned_unchanged():
    element = (np.array([1.0, 0.0, 0.0, 1.0]), np.array([1.0, 0.0]))
    (result,) = parallel_scan([element], binary_operator)
    np.testing.assert_array_equal(result[0], element[0])
    np.testing.assert_array_equal(result[1], element[1])


def test_identity_blocks_accumulate_states():
    identity = np.array([1.0, 0.0, 0.0, 1.0])
    elements = [(identity, np.array([1.0, 0.0])) for _ in range(4)]
    results = parallel_scan(elements, binary_operator)
    assert len(results) == 4
    for count, (a, b) in enumerate(results, start=1):
        np.testing.assert_allclose(a, identity)
        np.testing.assert_allclose(b, [float(count), 0.0])


def test_string_concatenation_preserves_order():
    assert parallel_scan(list("abcde"), lambda x, y: x + y) == ["a", "ab", "abc", "abcd", "abcde"]


@pytest.mark.parametrize("count", [2, 3, 5, 7, 8, 16, 33, 64, 100])
def test_parallel_matches_sequential(count):
    elements = _make_elements(count, n=8, seed=count)
    parallel = parallel_scan(elements, binary_operator)
    sequential = _sequential_reference(elements, binary_operator)
    assert len(parallel) == len(sequential) == count
    for (pa, pb), (sa, sb) in zip(parallel, sequential):
        np.testing.assert_allclose(pa, sa, rtol=1e-9, atol=1e-12)
        np.testing.assert_allclose(pb, sb, rtol=1e-9, atol=1e-12)


@pytest.mark.parametrize("seq_len", [64, 128])
def test_realistic_scale_parallel_matches_sequential(seq_len):
    ssm_size = 128
    rng = np.random.default_rng(seq_len)
    elements = []
    for i in range(seq_len):
        max_period = 10.0 * (i + 1) / seq_len
        a_matrix = init_oscillatory_a_matrix(4 * ssm_size, 0.1, max(max_period, 0.2)) * 0.01
        b_vector = rng.normal(0.0, 0.1, size=2 * ssm_size)
        elements.append((a_matrix, b_vector))
    parallel = parallel_scan(elements, binary_operator)
    sequential = _sequential_reference(elements, binary_operator)
    assert len(parallel) == len(sequential)
    for (pa, pb), (sa, sb) in list(zip(parallel, sequential))[:10]:
        assert np.max(np.abs(pa - sa)) < 1e-4
        assert np.max(np.abs(pb - sb)) < 1e-4


def test_batched_scan_matches_parallel_scan():
    elements = _make_elements(13, n=4, seed=3)
    batched = batched_parallel_scan(elements, binary_operator)
    plain = parallel_scan(elements, binary_operator)
    assert len(batched) == 13
    for (ba, bb), (pa, pb) in zip(batched, plain):
        np.testing.assert_allclose(ba, pa)
        np.testing.assert_allclose(bb, pb)


def test_batched_scan_rejects_ragged_elements():
    elements = [
        (np.ones(4), np.ones(2)),
        (np.ones(8), np.ones(4)),
    ]
    with pytest.raises(ValueError):
        batched_parallel_scan(elements, binary_operator)


@pytest.mark.parametrize("size, depth", [(8, 3), (16, 4), (32, 5), (64, 6), (128, 7)])
def test_profiling_reports_tree_depth(size, depth):
    elements = [
        (np.array([i * 0.01, -i * 0.01, i * 0.01, -i * 0.01]), np.array([1.0, 0.5]))
        for i in range(size)
    ]
    results, profile = batched_parallel_scan_with_profiling(elements, binary_operator)
    assert len(results) == size
    assert profile.tree_depth == depth
    assert profile.elements_processed == size
    assert profile.memory_allocated == size * 6 * 8
    assert profile.total_time >= profile.upsweep_time


def test_profiling_matches_unprofiled_results():
    elements = _make_elements(9, n=2, seed=5)
    profiled, _ = batched_parallel_scan_with_profiling(elements, binary_operator)
    plain = batched_parallel_scan(elements, binary_operator)
    for (qa, qb), (pa, pb) in zip(profiled, plain):
        np.testing.assert_allclose(qa, pa)
        np.testing.assert_allclose(qb, pb)


def test_profiling_of_empty_input():
    results, profile = batched_parallel_scan_with_profiling([], binary_operator)
    assert results == []
    assert profile.elements_processed == 0
    assert profile.tree_depth == 0
    assert profile.memory_allocated is None


@pytest.mark.parametrize("n, depth", [(0, 0), (1, 0), (2, 1), (5, 3), (1024, 10), (1025, 11)])
def test_calculate_metrics(n, depth):
    profile = ScanProfile()
    profile.calculate_metrics(n)
    assert profile.elements_processed == n
    assert profile.tree_depth == depth


def test_print_profile_reports_counts(capsys):
    profile = ScanProfile()
    profile.calculate_metrics(8)
    profile.print_profile()
    out = capsys.readouterr().out
    assert "Elements processed: 8" in out
    assert "Tree depth (log n): 3" in out
    assert "O(log 8)" in out


def test_parallel_imex_matches_sequential_imex():
    rng = np.random.default_rng(11)
    ssm_size, batch_size, seq_len, input_dim = 16, 3, 37, 5
    a_diag = init_oscillatory_a_matrix(ssm_size, 0.1, 10.0)
    g_diag = init_damping_g_matrix(ssm_size, 0.01, 0.1)
    b_matrix = rng.normal(0.0, 0.1, size=(input_dim, ssm_size))
    inputs = rng.normal(0.0, 1.0, size=(batch_size, seq_len, input_dim))
    parallel = apply_damped_linoss_parallel(a_diag, g_diag, b_matrix, inputs, 0.01)
    sequential = apply_damped_linoss_imex(a_diag, g_diag, b_matrix, inputs, 0.01)
    assert parallel.shape == (batch_size, seq_len, ssm_size)
    np.testing.assert_allclose(parallel, sequential, rtol=1e-8, atol=1e-12)


def test_parallel_imex_with_stable_parameters_is_bounded():
    rng = np.random.default_rng(2)
    ssm_size, batch_size, seq_len, input_dim = 64, 2, 32, 16
    step = 0.001
    a_diag, g_diag = init_stable_parameters(ssm_size, step, rng)
    assert check_stability_condition(a_diag, g_diag, step)
    b_matrix = rng.normal(0.0, 1.0 / np.sqrt(ssm_size), size=(input_dim, ssm_size))
    inputs = rng.normal(0.0, 1.0, size=(batch_size, seq_len, input_dim))
    output = apply_damped_linoss_parallel(a_diag, g_diag, b_matrix, inputs, step)
    assert output.shape == (batch_size, seq_len, ssm_size)
    assert np.all(np.isfinite(output))
    assert np.max(np.abs(output)) < 1e10


def test_parallel_imex_nonzero_for_constant_input():
    a_diag = np.array([-0.5, -1.0])
    g_diag = np.array([0.1, 0.2])
    output = apply_damped_linoss_parallel(a_diag, g_diag, np.ones((2, 2)), np.ones((1, 3, 2)), 0.01)
    assert abs(output.sum()) > 1e-6


def test_parallel_imex_rejects_wrong_b_matrix():
    with pytest.raises(ValueError):
        apply_damped_linoss_parallel(np.ones(4), np.zeros(4), np.ones((3, 4)), np.ones((1, 2, 2)), 0.01)


def test_parallel_imex_rejects_two_dimensional_input():
    with pytest.raises(ValueError):
        apply_damped_linoss_parallel(np.ones(4), np.zeros(4), np.ones((2, 4)), np.ones((2, 2)), 0.01)