import numpy as np
import pandas as pd
import pytest

from sentiment_ews.common.errors import EstimatorError
from sentiment_ews.common.status import NOT_COMPUTED
from sentiment_ews.dependency import estimator
from sentiment_ews.dependency.estimator import (
    DependencyResult,
    estimate_dependency,
    pearson_correlation,
    search_optimal_lag,
)


def _daily(values, start='2020-03-01'):
    return pd.Series(values, index=pd.date_range(start, periods=len(values), freq='D'), dtype=float)


def test_lagged_copy_is_found(rng):
    driver = rng.normal(size=150)
    predictor = _daily(driver)
    outcome = predictor.shift(3)

    result = estimate_dependency(predictor, outcome, max_lag=7, kernel_width=0.5)

    assert result.optimal_lag == 3
    assert not result.lag_forced
    assert result.is_computed
    assert result.mutual_information_at_optimal_lag == pytest.approx(max(result.lag_profile.values()))
    assert result.transfer_entropy > 0
    assert sorted(result.lag_profile) == list(range(8))


def test_lag_zero_winner_forces_lag_one(rng):
    predictor = _daily(rng.normal(size=120))
    outcome = predictor * 2.0 + 1.0

    result = estimate_dependency(predictor, outcome, max_lag=5, kernel_width=0.5)

    assert result.lag_forced
    assert result.optimal_lag == 1
    assert result.mutual_information_at_optimal_lag == pytest.approx(result.lag_profile[1])
    assert result.pearson_correlation == pytest.approx(1.0)


def test_optimal_lag_is_never_zero(rng):
    for seed in range(3):
        gen = np.random.default_rng(seed)
        result = estimate_dependency(
            _daily(gen.normal(size=60)), _daily(gen.normal(size=60)), max_lag=4, kernel_width=0.5
        )
        assert result.optimal_lag >= 1


def test_series_are_aligned_by_date(rng):
    values = rng.normal(size=80)
    predictor = _daily(values, start='2020-03-01')
    # same values, recorded two days later, on a shorter index
    outcome = _daily(values[:70], start='2020-03-03')

    result = estimate_dependency(predictor, outcome, max_lag=4, kernel_width=0.5)
    assert result.optimal_lag == 2


def test_pearson_undefined_below_two_overlaps():
    predictor = _daily([1.0, np.nan, 3.0])
    outcome = _daily([np.nan, 2.0, 5.0])
    r, p_value, n = pearson_correlation(predictor, outcome)
    assert n == 1
    assert np.isnan(r)
    assert np.isnan(p_value)


def test_pearson_undefined_for_constant_series():
    r, _, n = pearson_correlation(_daily([2.0, 2.0, 2.0]), _daily([1.0, 2.0, 3.0]))
    assert n == 3
    assert np.isnan(r)


def test_too_short_overlap_raises():
    predictor = _daily([np.nan, 1.0, 9.0])
    outcome = _daily([np.nan, 5.0, -1.0])
    with pytest.raises(EstimatorError):
        estimate_dependency(predictor, outcome, max_lag=3, kernel_width=0.5)


def test_not_computed_keeps_the_correlation():
    predictor = _daily([np.nan, 1.0, 9.0])
    outcome = _daily([np.nan, 5.0, -1.0])
    result = DependencyResult.not_computed(predictor, outcome, 'too short')

    assert result.status == NOT_COMPUTED
    assert result.n_overlap == 2
    assert result.pearson_correlation == pytest.approx(-1.0)
    assert result.optimal_lag is None
    assert np.isnan(result.transfer_entropy)
    assert result.to_dict()['message'] == 'too short'


def test_all_missing_series_raises():
    with pytest.raises(EstimatorError):
        estimate_dependency(_daily([np.nan] * 5), _daily([1.0] * 5), max_lag=2, kernel_width=0.5)


def test_search_requires_positive_max_lag(rng):
    s = _daily(rng.normal(size=10))
    with pytest.raises(ValueError):
        search_optimal_lag(s, s, max_lag=0, kernel_width=0.5)


def test_forced_lag_without_mutual_information_raises(monkeypatch, rng):
    def fake_mi(predictor, outcome, lag, kernel_width):
        if lag == 1:
            raise EstimatorError("too few samples")
        return {0: 0.8}.get(lag, 0.1)

    monkeypatch.setattr(estimator, 'mutual_information_at_lag', fake_mi)
    s = _daily(rng.normal(size=40))

    with pytest.raises(EstimatorError, match='forced lag 1'):
        search_optimal_lag(s, s, max_lag=3, kernel_width=0.5)
    with pytest.raises(EstimatorError):
        estimate_dependency(s, s, max_lag=3, kernel_width=0.5)


def test_computed_result_rejects_lag_zero():
    with pytest.raises(ValueError):
        DependencyResult(0.5, 0.1, 10, optimal_lag=0)


def test_to_dict_stringifies_lag_keys():
    result = DependencyResult(0.5, 0.1, 10, optimal_lag=2, lag_profile={0: 0.1, 1: 0.2, 2: 0.3})
    assert list(result.to_dict()['lag_profile']) == ['0', '1', '2']
