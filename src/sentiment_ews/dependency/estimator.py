"""
Dependency Estimation between a predictor and an outcome DailySeries

Steps:
1. Min-max normalize each series with its own observed min/max
2. Pearson correlation on complete cases (dates where both are observed)
3. Lag search: MI at lag 0 is the baseline; lags 1..max_lag are scanned
   and a lag is kept only if its MI is strictly greater. If the baseline
   is never beaten the lag is forced to 1.
4. Transfer entropy predictor -> outcome at the selected lag

The measures are descriptive; nothing here implies causation.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from scipy import stats

from sentiment_ews.common.errors import EstimatorError
from sentiment_ews.common.status import COMPUTED, NOT_COMPUTED
from sentiment_ews.dependency.kernel import kernel_mutual_information, kernel_transfer_entropy
from sentiment_ews.features.daily_series import MinMaxNormalizer, complete_cases


@dataclass(frozen=True)
class DependencyResult:
    """
    Relationship statistics for one (predictor, outcome) pair.

    Attributes:
        pearson_correlation: NaN when fewer than 2 overlapping observations
                             or a constant series
        pearson_p_value: Two-sided p-value (NaN when undefined)
        n_overlap: Number of complete-case dates
        optimal_lag: MI-maximizing lag in days, always >= 1 when computed
        mutual_information_at_optimal_lag: MI (bits) at optimal_lag
        transfer_entropy: TE (bits) predictor -> outcome at optimal_lag
        lag_profile: MI per lag 0..max_lag (NaN where not estimable)
        lag_forced: True when lag 0 was never beaten and lag 1 was imposed
        status: 'computed', or 'not_computed' when MI / TE failed (the
                correlation fields are still filled in)
        message: Why the pair was not computed
    """
    pearson_correlation: float
    pearson_p_value: float
    n_overlap: int
    optimal_lag: Optional[int] = None
    mutual_information_at_optimal_lag: float = np.nan
    transfer_entropy: float = np.nan
    lag_profile: Dict[int, float] = field(default_factory=dict)
    lag_forced: bool = False
    status: str = COMPUTED
    message: str = ''

    def __post_init__(self):
        if self.status == COMPUTED and (self.optimal_lag is None or self.optimal_lag < 1):
            raise ValueError(f"optimal_lag must be >= 1, got {self.optimal_lag}")

    @property
    def is_computed(self) -> bool:
        return self.status == COMPUTED

    @classmethod
    def not_computed(cls, predictor: pd.Series, outcome: pd.Series, message: str) -> 'DependencyResult':
        """Partial result: correlation only, information measures missing."""
        r, p_value, n_overlap = pearson_correlation(predictor, outcome)
        return cls(
            pearson_correlation=r,
            pearson_p_value=p_value,
            n_overlap=n_overlap,
            status=NOT_COMPUTED,
            message=message,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out['lag_profile'] = {str(k): v for k, v in self.lag_profile.items()}
        return out


def _on_common_index(predictor: pd.Series, outcome: pd.Series):
    index = predictor.index.union(outcome.index)
    if len(index):
        index = pd.date_range(index.min(), index.max(), freq='D', name='date')
    return predictor.reindex(index).astype(float), outcome.reindex(index).astype(float)


def normalize_pair(predictor: pd.Series, outcome: pd.Series):
    """Min-max normalize each series separately; constants are not shared."""
    try:
        return (
            MinMaxNormalizer().fit_transform(predictor),
            MinMaxNormalizer().fit_transform(outcome),
        )
    except ValueError as exc:
        raise EstimatorError(str(exc)) from exc


def pearson_correlation(predictor: pd.Series, outcome: pd.Series):
    """
    Pearson r and p-value on complete cases.

    Returns:
        Tuple of (r, p_value, n_overlap); r and p are NaN when undefined
    """
    pairs = complete_cases(predictor, outcome)
    n = len(pairs)
    if n < 2 or pairs['predictor'].nunique() < 2 or pairs['outcome'].nunique() < 2:
        return np.nan, np.nan, n
    r, p = stats.pearsonr(pairs['predictor'], pairs['outcome'])
    return float(r), float(p), n


def mutual_information_at_lag(
    predictor: pd.Series,
    outcome: pd.Series,
    lag: int,
    kernel_width: float
) -> float:
    """MI between predictor shifted forward `lag` days and outcome (complete cases)."""
    pairs = complete_cases(predictor.shift(lag), outcome)
    return kernel_mutual_information(
        pairs['predictor'].to_numpy(), pairs['outcome'].to_numpy(), kernel_width=kernel_width
    )


def search_optimal_lag(
    predictor: pd.Series,
    outcome: pd.Series,
    max_lag: int,
    kernel_width: float
):
    """
    MI-maximizing lag in 1..max_lag against a lag-0 baseline.

    Returns:
        Tuple of (lag, mi_at_lag, lag_profile, forced)

    Raises:
        EstimatorError: MI cannot be estimated at any lag, or lag 0 wins and
            MI at the forced lag 1 cannot be estimated
    """
    if max_lag < 1:
        raise ValueError(f"max_lag must be >= 1, got {max_lag}")

    profile: Dict[int, float] = {}
    for lag in range(0, max_lag + 1):
        try:
            profile[lag] = mutual_information_at_lag(predictor, outcome, lag, kernel_width)
        except EstimatorError:
            profile[lag] = np.nan

    if all(np.isnan(v) for v in profile.values()):
        raise EstimatorError("Mutual information could not be estimated at any lag")

    best_lag = 0
    best_mi = profile[0] if not np.isnan(profile[0]) else -np.inf
    for lag in range(1, max_lag + 1):
        mi = profile[lag]
        if not np.isnan(mi) and mi > best_mi:
            best_lag, best_mi = lag, mi

    forced = best_lag == 0
    if forced:
        if np.isnan(profile[1]):
            raise EstimatorError("Mutual information could not be estimated at the forced lag 1")
        best_lag = 1
        best_mi = profile[1]

    return best_lag, float(best_mi), profile, forced


def estimate_dependency(
    predictor: pd.Series,
    outcome: pd.Series,
    max_lag: int,
    kernel_width: float
) -> DependencyResult:
    """
    Full dependency estimate for one (predictor, outcome) pair.

    Args:
        predictor: DailySeries (e.g. daily positivity)
        outcome: DailySeries (e.g. new hospitalizations)
        max_lag: Largest lag in days to scan
        kernel_width: Box-kernel width for MI and TE

    Returns:
        DependencyResult

    Raises:
        EstimatorError: series with no finite values, or MI / TE not estimable
    """
    predictor, outcome = _on_common_index(predictor, outcome)
    predictor, outcome = normalize_pair(predictor, outcome)

    r, p_value, n_overlap = pearson_correlation(predictor, outcome)

    lag, mi, profile, forced = search_optimal_lag(predictor, outcome, max_lag, kernel_width)

    te = kernel_transfer_entropy(
        predictor.to_numpy(), outcome.to_numpy(),
        kernel_width=kernel_width, lag=lag, history=1, normalise=True,
    )

    return DependencyResult(
        pearson_correlation=r,
        pearson_p_value=p_value,
        n_overlap=n_overlap,
        optimal_lag=lag,
        mutual_information_at_optimal_lag=mi,
        transfer_entropy=te,
        lag_profile=profile,
        lag_forced=forced,
    )
