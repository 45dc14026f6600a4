import numpy as np
import pytest

from sentiment_ews.common.errors import EstimatorError
from sentiment_ews.dependency.kernel import (
    kernel_mutual_information,
    kernel_transfer_entropy,
    standardize,
)


def test_identical_series_share_information(rng):
    x = rng.normal(size=300)
    assert kernel_mutual_information(x, x) > 0.5


def test_independent_noise_has_near_zero_information(rng):
    x = rng.normal(size=400)
    y = rng.normal(size=400)
    assert abs(kernel_mutual_information(x, y)) < 0.15


def test_mutual_information_is_symmetric(rng):
    x = rng.normal(size=100)
    y = x + rng.normal(scale=0.5, size=100)
    assert kernel_mutual_information(x, y) == pytest.approx(kernel_mutual_information(y, x))


def test_incomplete_pairs_are_dropped(rng):
    x = rng.normal(size=50)
    y = x.copy()
    x_gappy = x.copy()
    x_gappy[::5] = np.nan
    keep = ~np.isnan(x_gappy)
    assert kernel_mutual_information(x_gappy, y) == pytest.approx(
        kernel_mutual_information(x[keep], y[keep])
    )


def test_transfer_entropy_follows_the_driver(rng):
    x = rng.normal(size=400)
    y = np.empty_like(x)
    y[0] = 0.0
    y[1:] = x[:-1] + rng.normal(scale=0.1, size=399)

    forward = kernel_transfer_entropy(x, y, lag=1)
    backward = kernel_transfer_entropy(y, x, lag=1)
    assert forward > 0.5
    assert forward > backward + 0.3


@pytest.mark.parametrize("lag", [0, -1])
def test_transfer_entropy_requires_positive_lag(rng, lag):
    x = rng.normal(size=20)
    with pytest.raises(EstimatorError):
        kernel_transfer_entropy(x, x, lag=lag)


def test_transfer_entropy_needs_enough_triplets():
    with pytest.raises(EstimatorError):
        kernel_transfer_entropy([1.0, 2.0, 3.0], [np.nan, 1.0, 2.0], lag=1)


def test_only_history_one_supported(rng):
    x = rng.normal(size=20)
    with pytest.raises(ValueError):
        kernel_transfer_entropy(x, x, history=2)


@pytest.mark.parametrize("x, y", [
    ([1.0], [1.0]),
    ([1.0, 2.0, 3.0], [1.0, 2.0]),
    ([1.0, np.nan, 3.0], [np.nan, 2.0, 4.0]),
])
def test_mutual_information_rejects_degenerate_input(x, y):
    with pytest.raises(EstimatorError):
        kernel_mutual_information(x, y)


@pytest.mark.parametrize("width", [0.0, -0.5, np.nan])
def test_kernel_width_must_be_positive(rng, width):
    x = rng.normal(size=20)
    with pytest.raises(EstimatorError):
        kernel_mutual_information(x, x, kernel_width=width)


def test_standardize_constant_series_is_centred():
    out = standardize(np.array([3.0, 3.0, np.nan]))
    assert out[0] == 0.0
    assert np.isnan(out[2])
