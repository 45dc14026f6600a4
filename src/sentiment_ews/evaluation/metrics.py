"""
Out-of-sample Forecast Metrics for Sentiment EWS

Forecasts start the day after the training cutoff; where the actual series
continues past the cutoff, the held-out days score the forecast:
- MAE, RMSE
- Empirical coverage of the 80% and 95% prediction intervals
"""
from typing import Dict

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error


def align_forecast(forecast: pd.DataFrame, actual: pd.Series) -> pd.DataFrame:
    """Forecast rows joined with observed actuals (unobserved days dropped)."""
    frame = forecast.set_index(pd.to_datetime(forecast['date']).dt.normalize())
    actual = actual.copy()
    actual.index = pd.DatetimeIndex(actual.index).normalize()
    frame = frame.assign(actual=actual.reindex(frame.index).to_numpy(dtype=float))
    return frame.dropna(subset=['actual'])


def evaluate_forecast(forecast: pd.DataFrame, actual: pd.Series) -> Dict[str, float]:
    """
    Score a forecast against held-out actuals.

    Args:
        forecast: Frame with date, point_estimate and interval columns
        actual: DailySeries of observed values

    Returns:
        Dictionary with mae, rmse, coverage_80, coverage_95, n_evaluated
        (metrics NaN when no day overlaps)
    """
    frame = align_forecast(forecast, actual)
    n = len(frame)
    if n == 0:
        return {
            'mae': np.nan,
            'rmse': np.nan,
            'coverage_80': np.nan,
            'coverage_95': np.nan,
            'n_evaluated': 0,
        }

    y_true = frame['actual'].to_numpy()
    y_pred = frame['point_estimate'].to_numpy()
    in_80 = (frame['lower_80'] <= frame['actual']) & (frame['actual'] <= frame['upper_80'])
    in_95 = (frame['lower_95'] <= frame['actual']) & (frame['actual'] <= frame['upper_95'])

    return {
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        'coverage_80': float(in_80.mean()),
        'coverage_95': float(in_95.mean()),
        'n_evaluated': int(n),
    }


def print_metrics(metrics: Dict[str, float], title: str = "Forecast metrics") -> None:
    """Pretty print metrics."""
    print(f"\n{title}")
    print("-" * 40)
    print(f"  MAE:          {metrics.get('mae', np.nan):.3f}")
    print(f"  RMSE:         {metrics.get('rmse', np.nan):.3f}")
    print(f"  Coverage 80:  {metrics.get('coverage_80', np.nan):.3f}")
    print(f"  Coverage 95:  {metrics.get('coverage_95', np.nan):.3f}")
    print(f"  Days:         {metrics.get('n_evaluated', 0)}")
