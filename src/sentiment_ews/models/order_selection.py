"""
Automatic ARIMA Order Selection

Order selection is a strategy: any OrderSelector can be handed to the
forecaster. The default, InformationCriterionSelector, is a
non-stepwise auto-ARIMA:

1. d: repeated KPSS tests (level stationarity, alpha = 0.05); difference
   while the test rejects, up to max_d
2. (p, q): full grid over [0, max_p] x [0, max_q] at that d, keeping the
   lowest AIC (or BIC)

Tie-breaking (criterion values within 1e-8): smaller p + q, then smaller p.
Orders whose fit raises are skipped.
"""
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.statespace.sarimax import SARIMAX
from statsmodels.tsa.stattools import kpss

from sentiment_ews.common.errors import ForecastError


Order = Tuple[int, int, int]

TIE_TOLERANCE = 1e-8


@dataclass(frozen=True)
class OrderCandidate:
    order: Order
    criterion_value: float


def trend_for(order: Order) -> str:
    """Constant term only for undifferenced models."""
    return 'c' if order[1] == 0 else 'n'


def fit_sarimax(endog: pd.Series, order: Order, exog: Optional[pd.Series] = None):
    """Fit a SARIMAX model quietly; convergence chatter is suppressed."""
    model = SARIMAX(
        endog,
        exog=exog,
        order=order,
        trend=trend_for(order),
    )
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        return model.fit(disp=False)


class OrderSelector(ABC):
    """Strategy interface for choosing an ARIMA (p, d, q) order."""

    @abstractmethod
    def select(self, endog: pd.Series, exog: Optional[pd.Series] = None) -> Order:
        pass

    def min_observations(self) -> int:
        """Fewest observed points the largest candidate order can be fit on."""
        return 3


class InformationCriterionSelector(OrderSelector):
    """KPSS-chosen d, then AIC/BIC grid search over p and q."""

    def __init__(
        self,
        max_p: int = 3,
        max_d: int = 2,
        max_q: int = 3,
        criterion: str = 'aic',
        kpss_alpha: float = 0.05
    ):
        if criterion not in ('aic', 'bic'):
            raise ValueError(f"Unknown criterion: {criterion}")
        self.max_p = max_p
        self.max_d = max_d
        self.max_q = max_q
        self.criterion = criterion
        self.kpss_alpha = kpss_alpha
        self.candidates_: List[OrderCandidate] = []

    def min_observations(self) -> int:
        return self.max_p + self.max_d + self.max_q + 2

    def select_d(self, endog: pd.Series) -> int:
        """Number of differences needed for KPSS level stationarity."""
        y = endog.dropna().to_numpy(dtype=float)
        d = 0
        while d < self.max_d and y.size > 3 and np.ptp(y) > 0:
            try:
                with warnings.catch_warnings():
                    warnings.simplefilter('ignore', InterpolationWarning)
                    _, p_value, _, _ = kpss(y, regression='c', nlags='auto')
            except (ValueError, np.linalg.LinAlgError):
                break
            if p_value >= self.kpss_alpha:
                break
            y = np.diff(y)
            d += 1
        return d

    def select(self, endog: pd.Series, exog: Optional[pd.Series] = None) -> Order:
        """
        Choose (p, d, q) for `endog` (with `exog` as regressor, if given).

        Raises:
            ForecastError: no candidate order could be fit
        """
        d = self.select_d(endog)

        candidates = []
        for p in range(self.max_p + 1):
            for q in range(self.max_q + 1):
                order = (p, d, q)
                try:
                    results = fit_sarimax(endog, order, exog=exog)
                except (ValueError, np.linalg.LinAlgError, IndexError) as exc:
                    warnings.warn(f"ARIMA{order} failed to fit: {exc}")
                    continue
                value = float(getattr(results, self.criterion))
                if np.isfinite(value):
                    candidates.append(OrderCandidate(order, value))

        self.candidates_ = candidates
        if not candidates:
            raise ForecastError(f"No ARIMA order with d={d} could be fit")

        best_value = min(c.criterion_value for c in candidates)
        tied = [c for c in candidates if c.criterion_value - best_value <= TIE_TOLERANCE]
        best = min(tied, key=lambda c: (c.order[0] + c.order[2], c.order[0]))
        return best.order
