"""Damped linear oscillatory state-space (D-LinOSS) operations.

Arrays follow these conventions:

* ``a_diag`` and ``g_diag`` are 1-D arrays of length ``ssm_size``. They hold
  the diagonals of the oscillatory matrix A and the damping matrix G.
* A scan element is a pair ``(a, b)``. ``a`` is a flattened 2x2 block matrix
  of length ``4 * n``, with blocks ordered ``[m11, m12, m21, m22]``. ``b`` is
  a state vector of length ``2 * n``, holding ``[velocity, position]``.
"""

from __future__ import annotations

import math

import numpy as np

__all__ = [
    "binary_operator",
    "init_oscillatory_a_matrix",
    "init_stable_parameters",
    "check_stability_condition",
    "init_damping_g_matrix",
    "apply_damped_linoss_imex",
]

ScanElement = tuple[np.ndarray, np.ndarray]


def _split_element(element: ScanElement) -> tuple[np.ndarray, np.ndarray, int]:
    a, b = (np.asarray(part, dtype=float) for part in element)
    if a.ndim != 1 or a.shape[0] % 4:
        raise ValueError(f"block matrix must be 1-D with length divisible by 4, got shape {a.shape}")
    n = a.shape[0] // 4
    if b.shape != (2 * n,):
        raise ValueError(f"state vector must have shape ({2 * n},), got {b.shape}")
    return a, b, n


def binary_operator(q_i: ScanElement, q_j: ScanElement) -> ScanElement:
    """Associative combination of two recurrence elements.

    Returns ``(A_i @ A_j, A_i @ b_j + b_i)``, computed block-diagonally.
    """
    a_i, b_i, n = _split_element(q_i)
    a_j, b_j, n_j = _split_element(q_j)
    if n != n_j:
        raise ValueError(f"elements have different sizes: {n} and {n_j}")

    ia, ib, ic, id_ = a_i.reshape(4, n)
    ja, jb, jc, jd = a_j.reshape(4, n)

    a_out = np.concatenate(
        [
            ia * ja + ib * jc,
            ia * jb + ib * jd,
            ic * ja + id_ * jc,
            ic * jb + id_ * jd,
        ]
    )

    jy, jdy = b_j.reshape(2, n)
    iy, idy = b_i.reshape(2, n)
    b_out = np.concatenate([ia * jy + ib * jdy + iy, ic * jy + id_ * jdy + idy])
    return a_out, b_out


def _log_spaced(ssm_size: int, low: float, high: float) -> np.ndarray:
    """Return ``exp(log(low) + k/ssm_size * (log(high) - log(low)))`` for k in range."""
    fraction = np.arange(ssm_size, dtype=np.float64) / ssm_size if ssm_size else np.empty(0)
    log_low, log_high = math.log(low), math.log(high)
    return np.exp(log_low + fraction * (log_high - log_low)).astype(np.float32)


def init_oscillatory_a_matrix(ssm_size: int, min_period: float, max_period: float) -> np.ndarray:
    """Return log-spaced angular frequencies from ``2*pi/max_period`` up to ``2*pi/min_period``."""
    return _log_spaced(ssm_size, 2.0 * math.pi / max_period, 2.0 * math.pi / min_period)


def init_damping_g_matrix(ssm_size: int, r_min: float, r_max: float) -> np.ndarray:
    """Return negative, log-spaced damping coefficients from ``-r_min`` towards ``-r_max``."""
    return -_log_spaced(ssm_size, max(r_min, 1e-8), r_max)


def init_stable_parameters(
    ssm_size: int, step: float, rng: np.random.Generator | None = None
) -> tuple[np.ndarray, np.ndarray]:
    """Draw A uniformly from [0.1, 2.0) and choose G inside the stability region.

    The stability condition is ``(G_i - step * A_i)**2 <= 4 * A_i``.
    """
    rng = np.random.default_rng() if rng is None else rng
    a_diag = rng.uniform(0.1, 2.0, size=ssm_size).astype(np.float32)
    center = a_diag * step
    radius = np.sqrt(a_diag) * 2.0
    g_diag = (-(center + radius * 0.5)).astype(np.float32)

    print("Initialized stable parameters:")
    print("  A range: [0.1, 2.0]")
    print("  G initialized with stability guarantee")
    return a_diag, g_diag


def check_stability_condition(a_diag: np.ndarray, g_diag: np.ndarray, step: float) -> bool:
    """Return whether ``(G_i - step * A_i)**2 <= 4 * A_i`` holds for every oscillator."""
    a = np.asarray(a_diag, dtype=float)
    g = np.asarray(g_diag, dtype=float)
    if a.shape != g.shape:
        raise ValueError(f"a_diag and g_diag differ in shape: {a.shape} and {g.shape}")
    diff = g - a * step
    return bool(np.all(diff * diff <= a * 4.0))


def apply_damped_linoss_imex(
    a_diag: np.ndarray,
    g_diag: np.ndarray,
    b_matrix: np.ndarray,
    input_sequence: np.ndarray,
    step: float,
) -> np.ndarray:
    """Run the damped oscillator recurrence with an IMEX discretisation.

    ``input_sequence`` has shape ``[batch, seq_len, input_dim]``.
    ``b_matrix`` has shape ``[input_dim, ssm_size]``.
    The result holds the position states, with shape ``[batch, seq_len, ssm_size]``.
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

    bu = u @ b  # [batch, seq_len, ssm_size]

    s_inv = 1.0 / (1.0 + g * step)
    m11 = s_inv
    m12 = -step * s_inv * a
    m21 = step * s_inv
    m22 = 1.0 - step * step * s_inv * a

    velocity = np.zeros((batch_size, ssm_size))
    position = np.zeros((batch_size, ssm_size))
    outputs = np.empty((batch_size, seq_len, ssm_size))

    for index, bu_l in enumerate(np.moveaxis(bu, 1, 0)):
        forced = bu_l * s_inv
        velocity, position = (
            velocity * m11 + position * m12 + forced * step,
            velocity * m21 + position * m22 + forced * (step * step),
        )
        outputs[:, index, :] = position

    return outputs