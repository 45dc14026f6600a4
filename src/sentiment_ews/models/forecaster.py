"""
Conditional ARIMA Forecaster

Two-stage forecast of healthcare demand from positivity:
1. Truncate history at the configured training cutoff
2. Fit an automatically ordered ARIMA to the predictor alone and forecast
   it `horizon` days ahead
3. Fit a second ARIMA to each outcome with the predictor as exogenous
   regressor, on the window where both are observed
4. Forecast the outcome with the predictor forecast as future regressor
5. Report point estimates with nested 80% / 95% prediction intervals

The predictor is fitted once and reused for every outcome.
"""
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd

from sentiment_ews.common.errors import ForecastError, InsufficientDataError
from sentiment_ews.models.base import FORECAST_COLUMNS, BaseForecastModel
from sentiment_ews.models.order_selection import (
    InformationCriterionSelector,
    Order,
    OrderSelector,
    fit_sarimax,
)


@dataclass
class ForecastResult:
    """Forecast for one series."""
    name: str
    order: Order
    aic: float
    frame: pd.DataFrame
    exog_name: Optional[str] = None

    def to_frame(self) -> pd.DataFrame:
        out = self.frame.copy()
        out.insert(0, 'series', self.name)
        return out


class ArimaModel(BaseForecastModel):
    """SARIMAX with an automatically selected (p, d, q) order."""

    def __init__(self, order_selector: Optional[OrderSelector] = None, name: str = 'arima', config: Optional[Dict] = None):
        super().__init__(name=name, config=config)
        self.order_selector = order_selector or InformationCriterionSelector()
        self.order_ = None
        self.results_ = None
        self.endog_ = None

    def fit(self, endog: pd.Series, exog: Optional[pd.Series] = None) -> 'ArimaModel':
        endog = endog.astype(float)
        if exog is not None:
            exog = exog.reindex(endog.index).astype(float)
            if exog.isna().any():
                raise ValueError("Exogenous regressor must be complete over the training window")
            self.exog_name = exog.name

        self.order_ = self.order_selector.select(endog, exog=exog)
        try:
            self.results_ = fit_sarimax(endog, self.order_, exog=exog)
        except (ValueError, np.linalg.LinAlgError) as exc:
            raise ForecastError(f"{self.name}: ARIMA{self.order_} failed to fit: {exc}") from exc

        self.endog_ = endog
        self.is_fitted = True
        return self

    @property
    def aic(self) -> float:
        return float(self.results_.aic)

    def fitted_values(self) -> pd.Series:
        """One-step-ahead in-sample predictions (defined on missing days too)."""
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")
        return pd.Series(np.asarray(self.results_.predict()), index=self.endog_.index)

    def forecast(self, steps: int, exog_future: Optional[pd.Series] = None) -> pd.DataFrame:
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")
        if self.exog_name is not None and exog_future is None:
            raise ValueError(f"{self.name} was fit with a regressor; exog_future is required")

        exog = None
        if exog_future is not None:
            exog = np.asarray(exog_future, dtype=float).reshape(-1, 1)
            if exog.shape[0] != steps:
                raise ValueError(f"exog_future has {exog.shape[0]} rows, expected {steps}")

        prediction = self.results_.get_forecast(steps=steps, exog=exog)
        mean = np.asarray(prediction.predicted_mean, dtype=float)
        ci_80 = np.asarray(prediction.conf_int(alpha=0.20), dtype=float)
        ci_95 = np.asarray(prediction.conf_int(alpha=0.05), dtype=float)

        dates = pd.date_range(self.endog_.index[-1] + pd.Timedelta(days=1), periods=steps, freq='D')
        frame = pd.DataFrame({
            'date': dates,
            'point_estimate': mean,
            'lower_80': ci_80[:, 0],
            'upper_80': ci_80[:, 1],
            'lower_95': ci_95[:, 0],
            'upper_95': ci_95[:, 1],
        }, columns=FORECAST_COLUMNS)

        if not np.isfinite(frame.drop(columns='date').to_numpy()).all():
            raise ForecastError(f"{self.name}: forecast produced non-finite values")
        return frame


class ConditionalForecaster:
    """
    Forecast outcomes conditioned on a forecast of the predictor.

    Example:
        forecaster = ConditionalForecaster(horizon=14, training_cutoff='2020-06-30')
        results = forecaster.forecast(positivity, {'new_cases': cases,
                                                   'new_hospitalizations': hosp})
    """

    def __init__(
        self,
        order_selector: Optional[OrderSelector] = None,
        horizon: int = 14,
        training_cutoff=None,
        min_train_obs: int = 14
    ):
        if horizon < 1:
            raise ValueError(f"horizon must be >= 1, got {horizon}")
        self.order_selector = order_selector or InformationCriterionSelector()
        self.horizon = horizon
        self.training_cutoff = pd.Timestamp(training_cutoff) if training_cutoff is not None else None
        self.min_train_obs = min_train_obs

        self.predictor_model_ = None
        self.predictor_result_ = None
        self.predictor_history_ = None

    def _required_obs(self) -> int:
        return max(self.min_train_obs, self.order_selector.min_observations())

    def _truncate(self, series: pd.Series) -> pd.Series:
        series = series.astype(float).sort_index()
        if self.training_cutoff is not None:
            series = series.loc[:self.training_cutoff]
        return series

    def _check_window(self, series: pd.Series, label: str) -> None:
        n_obs = int(series.notna().sum())
        required = self._required_obs()
        if n_obs < required:
            raise InsufficientDataError(
                f"{label}: {n_obs} observed days in the training window, need {required}"
            )

    def fit_predictor(self, predictor: pd.Series, name: str = 'positivity') -> ForecastResult:
        """
        Fit the predictor model (no covariates) and forecast it.

        Raises:
            InsufficientDataError: too few observed days before the cutoff
        """
        series = self._truncate(predictor)
        valid = series.dropna()
        if len(valid):
            series = series.loc[valid.index[0]:]
        self._check_window(series, name)
        series = series.asfreq('D')

        model = ArimaModel(self.order_selector, name=name).fit(series)
        frame = model.forecast(self.horizon)

        # missing days in the regressor history take the model's one-step predictions
        history = series.where(series.notna(), model.fitted_values())
        history.name = name

        self.predictor_model_ = model
        self.predictor_history_ = history
        self.predictor_result_ = ForecastResult(name=name, order=model.order_, aic=model.aic, frame=frame)
        return self.predictor_result_

    def forecast_outcome(self, outcome: pd.Series, name: Optional[str] = None) -> ForecastResult:
        """
        Fit the outcome model with the predictor as regressor and forecast it.

        Raises:
            InsufficientDataError: too few observed outcome days in the overlap
        """
        if self.predictor_result_ is None:
            raise ValueError("Call fit_predictor() before forecast_outcome()")

        name = name or outcome.name or 'outcome'
        history = self.predictor_history_
        outcome = self._truncate(outcome).reindex(history.index)

        observed = outcome.dropna()
        if len(observed) == 0:
            raise InsufficientDataError(f"{name}: no observed days overlap the predictor window")
        outcome = outcome.loc[observed.index[0]:]
        exog = history.loc[outcome.index[0]:]
        self._check_window(outcome, name)

        model = ArimaModel(self.order_selector, name=name).fit(outcome.asfreq('D'), exog=exog.asfreq('D'))
        exog_future = self.predictor_result_.frame['point_estimate'].to_numpy()
        frame = model.forecast(self.horizon, exog_future=exog_future)

        return ForecastResult(
            name=name, order=model.order_, aic=model.aic, frame=frame, exog_name=history.name
        )

    def forecast(self, predictor: pd.Series, outcomes: Dict[str, pd.Series]) -> Dict[str, ForecastResult]:
        """
        Predictor forecast plus one conditional forecast per outcome.

        Returns:
            Dict keyed by predictor name and outcome names
        """
        predictor_name = predictor.name or 'positivity'
        results = {predictor_name: self.fit_predictor(predictor, name=predictor_name)}
        for name, series in outcomes.items():
            results[name] = self.forecast_outcome(series, name=name)
        return results
