"""
Base Forecast Model Interface for Sentiment EWS

Abstract base class that all time-series models must implement.
Ensures a consistent fit / forecast API for predictor and outcome models.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

import pandas as pd


FORECAST_COLUMNS = ['date', 'point_estimate', 'lower_80', 'upper_80', 'lower_95', 'upper_95']


class BaseForecastModel(ABC):
    """Abstract base class for daily-series forecast models."""

    def __init__(self, name: str, config: Optional[Dict] = None):
        """
        Initialize model.

        Args:
            name: Model identifier
            config: Model-specific configuration
        """
        self.name = name
        self.config = config or {}
        self.is_fitted = False
        self.exog_name = None

    @abstractmethod
    def fit(self, endog: pd.Series, exog: Optional[pd.Series] = None) -> 'BaseForecastModel':
        """
        Fit model to a daily series.

        Args:
            endog: Daily series to model (NaN = missing day)
            exog: Optional exogenous regressor on the same index

        Returns:
            self
        """
        pass

    @abstractmethod
    def forecast(self, steps: int, exog_future: Optional[pd.Series] = None) -> pd.DataFrame:
        """
        Forecast `steps` days past the end of the training window.

        Args:
            steps: Horizon in days
            exog_future: Future regressor values (required if fit with exog)

        Returns:
            DataFrame with FORECAST_COLUMNS
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', fitted={self.is_fitted})"
