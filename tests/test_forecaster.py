from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest

from sentiment_ews.common.errors import ForecastError, InsufficientDataError
from sentiment_ews.models import order_selection
from sentiment_ews.models.base import FORECAST_COLUMNS
from sentiment_ews.models.forecaster import ArimaModel, ConditionalForecaster
from sentiment_ews.models.order_selection import InformationCriterionSelector, trend_for


def _ar1(gen, n, phi=0.7, mean=5.0, scale=0.4):
    values = np.empty(n)
    values[0] = mean
    for t in range(1, n):
        values[t] = mean + phi * (values[t - 1] - mean) + gen.normal(scale=scale)
    return values


@pytest.fixture
def series():
    gen = np.random.default_rng(3)
    index = pd.date_range('2020-03-01', periods=80, freq='D', name='date')
    positivity = pd.Series(_ar1(gen, 80), index=index, name='positivity')
    hospitalizations = pd.Series(
        10 + 2.0 * positivity.to_numpy() + gen.normal(scale=0.5, size=80), index=index,
        name='new_hospitalizations',
    )
    return positivity, hospitalizations


def _check_intervals(frame):
    assert (frame['lower_95'] <= frame['lower_80']).all()
    assert (frame['lower_80'] <= frame['point_estimate']).all()
    assert (frame['point_estimate'] <= frame['upper_80']).all()
    assert (frame['upper_80'] <= frame['upper_95']).all()


def test_conditional_forecast_shapes_and_intervals(series, small_selector):
    positivity, hospitalizations = series
    forecaster = ConditionalForecaster(small_selector, horizon=7, training_cutoff='2020-05-09')

    results = forecaster.forecast(positivity, {'new_hospitalizations': hospitalizations})

    assert set(results) == {'positivity', 'new_hospitalizations'}
    expected_dates = list(pd.date_range('2020-05-10', periods=7, freq='D'))
    for result in results.values():
        assert list(result.frame.columns) == FORECAST_COLUMNS
        assert list(result.frame['date']) == expected_dates
        assert np.isfinite(result.aic)
        _check_intervals(result.frame)

    assert results['new_hospitalizations'].exog_name == 'positivity'
    assert results['positivity'].exog_name is None


def test_training_window_ends_at_cutoff(series, small_selector):
    positivity, hospitalizations = series
    forecaster = ConditionalForecaster(small_selector, horizon=3, training_cutoff='2020-04-15')
    forecaster.fit_predictor(positivity)
    assert forecaster.predictor_history_.index[-1] == pd.Timestamp('2020-04-15')
    assert forecaster.predictor_result_.frame['date'].iloc[0] == pd.Timestamp('2020-04-16')


def test_missing_predictor_days_are_filled_for_the_regressor(series, small_selector):
    positivity, hospitalizations = series
    gappy = positivity.copy()
    gappy.iloc[[10, 11, 30, 55]] = np.nan
    forecaster = ConditionalForecaster(small_selector, horizon=5)

    forecaster.fit_predictor(gappy)
    assert forecaster.predictor_history_.notna().all()

    result = forecaster.forecast_outcome(hospitalizations)
    _check_intervals(result.frame)


def test_outcome_starts_at_first_observed_day(series, small_selector):
    positivity, hospitalizations = series
    late = hospitalizations.copy()
    late.iloc[:20] = np.nan
    forecaster = ConditionalForecaster(small_selector, horizon=4)
    forecaster.fit_predictor(positivity)
    result = forecaster.forecast_outcome(late, name='late')
    assert result.name == 'late'
    assert len(result.frame) == 4


def test_too_little_history_is_fatal(series, small_selector):
    positivity, hospitalizations = series
    forecaster = ConditionalForecaster(small_selector, horizon=3, training_cutoff='2020-03-10', min_train_obs=14)
    with pytest.raises(InsufficientDataError):
        forecaster.fit_predictor(positivity)


def test_largest_candidate_order_sets_the_floor(series):
    positivity, _ = series
    selector = InformationCriterionSelector(max_p=3, max_d=2, max_q=3)
    forecaster = ConditionalForecaster(selector, horizon=3, training_cutoff='2020-03-08', min_train_obs=2)
    with pytest.raises(InsufficientDataError, match='need 10'):
        forecaster.fit_predictor(positivity)


def test_outcome_without_overlap_is_fatal(series, small_selector):
    positivity, hospitalizations = series
    forecaster = ConditionalForecaster(small_selector, horizon=3)
    forecaster.fit_predictor(positivity)
    with pytest.raises(InsufficientDataError):
        forecaster.forecast_outcome(hospitalizations * np.nan, name='empty')


def test_outcome_before_predictor_is_an_error(series):
    _, hospitalizations = series
    with pytest.raises(ValueError):
        ConditionalForecaster().forecast_outcome(hospitalizations)


def test_arima_model_requires_future_regressor(series, small_selector):
    positivity, hospitalizations = series
    model = ArimaModel(small_selector, name='hosp').fit(hospitalizations, exog=positivity)
    with pytest.raises(ValueError):
        model.forecast(3)
    with pytest.raises(ValueError):
        model.forecast(3, exog_future=np.ones(2))
    assert len(model.forecast(3, exog_future=np.full(3, 5.0))) == 3


def test_trend_only_without_differencing():
    assert trend_for((1, 0, 1)) == 'c'
    assert trend_for((1, 1, 1)) == 'n'


def _fake_fits(monkeypatch, criteria):
    def fake(endog, order, exog=None):
        value = criteria.get(order)
        if value is None:
            raise ValueError('does not fit')
        return SimpleNamespace(aic=value, bic=value)
    monkeypatch.setattr(order_selection, 'fit_sarimax', fake)


def test_ties_prefer_fewer_parameters(monkeypatch):
    selector = InformationCriterionSelector(max_p=1, max_d=0, max_q=1)
    _fake_fits(monkeypatch, {
        (0, 0, 0): 10.0 + 5e-9,
        (0, 0, 1): 10.0,
        (1, 0, 0): 10.0,
        (1, 0, 1): 10.0,
    })
    assert selector.select(pd.Series(np.arange(20.0))) == (0, 0, 0)


def test_ties_then_prefer_smaller_p(monkeypatch):
    selector = InformationCriterionSelector(max_p=1, max_d=0, max_q=1)
    _fake_fits(monkeypatch, {
        (0, 0, 0): 12.0,
        (0, 0, 1): 5.0,
        (1, 0, 0): 5.0,
        (1, 0, 1): 7.0,
    })
    assert selector.select(pd.Series(np.arange(20.0))) == (0, 0, 1)


def test_failed_orders_are_skipped(monkeypatch):
    selector = InformationCriterionSelector(max_p=1, max_d=0, max_q=1, criterion='bic')
    _fake_fits(monkeypatch, {(1, 0, 1): 3.0})
    with pytest.warns(UserWarning, match='failed to fit'):
        assert selector.select(pd.Series(np.arange(20.0))) == (1, 0, 1)
    assert [c.order for c in selector.candidates_] == [(1, 0, 1)]


def test_no_order_fits(monkeypatch):
    selector = InformationCriterionSelector(max_p=1, max_d=0, max_q=0)
    _fake_fits(monkeypatch, {})
    with pytest.warns(UserWarning):
        with pytest.raises(ForecastError):
            selector.select(pd.Series(np.arange(20.0)))


def test_kpss_differences_a_trending_walk():
    gen = np.random.default_rng(0)
    walk = pd.Series(np.cumsum(gen.normal(size=200)) + np.arange(200) * 0.5)
    flat = pd.Series(np.full(50, 3.0))
    selector = InformationCriterionSelector(max_d=2)
    assert selector.select_d(walk) >= 1
    assert selector.select_d(flat) == 0


def test_unknown_criterion():
    with pytest.raises(ValueError):
        InformationCriterionSelector(criterion='hqic')

