"""
Daily Series Construction

Turns SentimentRecords and epi records into DailySeries: pandas Series on a
gap-free daily DatetimeIndex. Days without data are NaN, never zero, and
every consumer must treat them as missing.
"""
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.preprocessing import MinMaxScaler

from sentiment_ews.features.lexicon import DEFAULT_NEUTRAL_BAND


def to_daily_index(
    series: pd.Series,
    start: Optional[pd.Timestamp] = None,
    end: Optional[pd.Timestamp] = None
) -> pd.Series:
    """
    Reindex a date-indexed series onto a complete daily range.

    Args:
        series: Values indexed by date (one per day)
        start: First day of the output (default: first observed day)
        end: Last day of the output (default: last observed day)

    Returns:
        Daily series with NaN on days without a value
    """
    series = series.copy()
    series.index = pd.DatetimeIndex(pd.to_datetime(series.index)).normalize()
    if series.index.has_duplicates:
        raise ValueError("Daily series has duplicate dates; aggregate first")
    series = series.sort_index().astype(float)

    if start is None and end is None and len(series) == 0:
        return pd.Series(dtype=float, index=pd.DatetimeIndex([], freq='D'), name=series.name)

    start = pd.Timestamp(start).normalize() if start is not None else series.index.min()
    end = pd.Timestamp(end).normalize() if end is not None else series.index.max()
    full_index = pd.date_range(start, end, freq='D', name='date')
    return series.reindex(full_index)


def aggregate_daily(
    df: pd.DataFrame,
    value_col: str,
    date_col: str = 'day',
    agg: str = 'mean',
    start: Optional[pd.Timestamp] = None,
    end: Optional[pd.Timestamp] = None
) -> pd.Series:
    """Aggregate row-level values to one value per calendar day (NaN-aware)."""
    if len(df) == 0:
        daily = pd.Series(dtype=float, name=value_col)
    else:
        days = pd.to_datetime(df[date_col]).dt.normalize()
        daily = df[value_col].astype(float).groupby(days).agg(agg)
        # a day whose values are all NaN stays NaN, even for 'sum'
        daily[df[value_col].notna().groupby(days).sum() == 0] = np.nan
        daily.name = value_col
    return to_daily_index(daily, start=start, end=end)


def build_positivity_series(
    records: pd.DataFrame,
    neutral_band: Tuple[float, float] = DEFAULT_NEUTRAL_BAND,
    start: Optional[pd.Timestamp] = None,
    end: Optional[pd.Timestamp] = None
) -> pd.Series:
    """
    Daily mean positivity from SentimentRecords.

    A day whose mean falls inside the neutral band carries no information
    and is marked missing, like a day with no records.
    """
    daily = aggregate_daily(records, 'mean_positivity', date_col='day', start=start, end=end)
    low, high = neutral_band
    daily[(daily > low) & (daily < high)] = np.nan
    daily.name = 'positivity'
    return daily


def build_epi_series(
    epi: pd.DataFrame,
    column: str,
    start: Optional[pd.Timestamp] = None,
    end: Optional[pd.Timestamp] = None
) -> pd.Series:
    """Daily series for one epi column (epi frame indexed by date)."""
    series = to_daily_index(epi[column], start=start, end=end)
    series.name = column
    return series


def complete_cases(predictor: pd.Series, outcome: pd.Series) -> pd.DataFrame:
    """Rows (dates) where both series are observed."""
    aligned = pd.concat({'predictor': predictor, 'outcome': outcome}, axis=1)
    return aligned.dropna()


class MinMaxNormalizer:
    """
    Per-series min-max scaling to [0, 1] that ignores missing values.

    Thin wrapper over scikit-learn's MinMaxScaler so a fitted normalizer can
    be kept alongside a series and inverted later.
    """

    def __init__(self):
        self.scaler_ = None
        self.data_min_ = None
        self.data_max_ = None

    def fit(self, values: Union[pd.Series, np.ndarray]) -> 'MinMaxNormalizer':
        arr = np.asarray(values, dtype=float).reshape(-1, 1)
        if not np.isfinite(arr).any():
            raise ValueError("Cannot normalize a series with no finite values")
        self.scaler_ = MinMaxScaler().fit(arr)
        self.data_min_ = float(self.scaler_.data_min_[0])
        self.data_max_ = float(self.scaler_.data_max_[0])
        return self

    def _apply(self, values, fn):
        if self.scaler_ is None:
            raise ValueError("Normalizer not fitted. Call fit() first.")
        arr = np.asarray(values, dtype=float).reshape(-1, 1)
        out = fn(arr).ravel()
        if isinstance(values, pd.Series):
            return pd.Series(out, index=values.index, name=values.name)
        return out

    def transform(self, values):
        return self._apply(values, lambda arr: self.scaler_.transform(arr))

    def inverse_transform(self, values):
        return self._apply(values, lambda arr: self.scaler_.inverse_transform(arr))

    def fit_transform(self, values):
        return self.fit(values).transform(values)


def min_max_normalize(values: pd.Series) -> pd.Series:
    """Scale a series to [0, 1] using its own observed min/max."""
    return MinMaxNormalizer().fit_transform(values)
