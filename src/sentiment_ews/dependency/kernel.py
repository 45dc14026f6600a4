"""
Kernel (box) Estimators for Mutual Information and Transfer Entropy

Densities are estimated by counting neighbours inside a box kernel of
fixed width under the max-norm, after optionally standardizing each
variable (zero mean, unit variance). Each sample counts itself, so every
joint count is >= 1. Results are in bits.

MI(X;Y)  = < log2( N * c(x,y) / (c(x) * c(y)) ) >

TE(X->Y), history length 1, source delay u:
    y_next = y[n], y_prev = y[n-1], x_src = x[n-u]
    TE = < log2( c(y_next,y_prev,x_src) * c(y_prev)
                 / (c(y_prev,x_src) * c(y_next,y_prev)) ) >

Both estimators are deterministic.
"""
from typing import Tuple

import numpy as np

from sentiment_ews.common.errors import EstimatorError


def _as_array(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size <= 1:
        raise EstimatorError(f"{name} needs more than 1 observation, got {arr.size}")
    return arr


def standardize(values: np.ndarray) -> np.ndarray:
    """Zero mean, unit variance (NaNs ignored); a constant series is only centred."""
    mean = np.nanmean(values)
    std = np.nanstd(values)
    if not np.isfinite(std) or std == 0:
        return values - mean
    return (values - mean) / std


def _within(values: np.ndarray, kernel_width: float) -> np.ndarray:
    """Boolean N x N matrix: |v_i - v_j| <= width."""
    return np.abs(values[:, None] - values[None, :]) <= kernel_width


def _check_width(kernel_width: float) -> None:
    if not np.isfinite(kernel_width) or kernel_width <= 0:
        raise EstimatorError(f"kernel_width must be > 0, got {kernel_width}")


def kernel_mutual_information(
    x,
    y,
    kernel_width: float = 0.5,
    normalise: bool = True
) -> float:
    """
    Box-kernel mutual information between two paired samples.

    Args:
        x, y: Paired observations; pairs with a NaN are dropped
        kernel_width: Kernel half-width (in standard deviations when normalised)
        normalise: Standardize each variable first

    Returns:
        MI in bits

    Raises:
        EstimatorError: length <= 1, mismatched lengths, fewer than 2
                        complete pairs, or invalid kernel width
    """
    _check_width(kernel_width)
    x = _as_array(x, 'x')
    y = _as_array(y, 'y')
    if x.size != y.size:
        raise EstimatorError(f"Length mismatch: {x.size} vs {y.size}")

    mask = np.isfinite(x) & np.isfinite(y)
    x, y = x[mask], y[mask]
    n = x.size
    if n < 2:
        raise EstimatorError(f"Need at least 2 complete pairs, got {n}")

    if normalise:
        x, y = standardize(x), standardize(y)

    near_x = _within(x, kernel_width)
    near_y = _within(y, kernel_width)
    c_x = near_x.sum(axis=1)
    c_y = near_y.sum(axis=1)
    c_xy = (near_x & near_y).sum(axis=1)

    return float(np.mean(np.log2(n * c_xy / (c_x * c_y))))


def transfer_entropy_samples(source: np.ndarray, target: np.ndarray, lag: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """(y_next, y_prev, x_src) triplets with any NaN triplet removed."""
    n = target.size
    start = max(1, lag)
    idx = np.arange(start, n)
    y_next = target[idx]
    y_prev = target[idx - 1]
    x_src = source[idx - lag]
    mask = np.isfinite(y_next) & np.isfinite(y_prev) & np.isfinite(x_src)
    return y_next[mask], y_prev[mask], x_src[mask]


def kernel_transfer_entropy(
    source,
    target,
    kernel_width: float = 0.5,
    lag: int = 1,
    history: int = 1,
    normalise: bool = True
) -> float:
    """
    Box-kernel transfer entropy from `source` to `target`.

    Args:
        source: Driving series (same daily index as target)
        target: Driven series
        kernel_width: Kernel half-width
        lag: Source delay in steps; must be >= 1
        history: Target history length (only 1 is supported)
        normalise: Standardize each series before counting

    Returns:
        TE in bits

    Raises:
        EstimatorError: lag < 1, length <= 1, mismatched lengths or too few
                        complete triplets
    """
    _check_width(kernel_width)
    if history != 1:
        raise ValueError(f"Only history length 1 is supported, got {history}")
    if lag < 1:
        raise EstimatorError(f"Transfer entropy needs a source delay >= 1, got {lag}")

    source = _as_array(source, 'source')
    target = _as_array(target, 'target')
    if source.size != target.size:
        raise EstimatorError(f"Length mismatch: {source.size} vs {target.size}")

    if normalise:
        source, target = standardize(source), standardize(target)

    y_next, y_prev, x_src = transfer_entropy_samples(source, target, lag)
    if y_next.size < 2:
        raise EstimatorError(f"Need at least 2 complete samples at lag {lag}, got {y_next.size}")

    near_next = _within(y_next, kernel_width)
    near_prev = _within(y_prev, kernel_width)
    near_src = _within(x_src, kernel_width)

    c_prev = near_prev.sum(axis=1)
    c_prev_src = (near_prev & near_src).sum(axis=1)
    c_next_prev = (near_next & near_prev).sum(axis=1)
    c_all = (near_next & near_prev & near_src).sum(axis=1)

    return float(np.mean(np.log2(c_all * c_prev / (c_prev_src * c_next_prev))))
