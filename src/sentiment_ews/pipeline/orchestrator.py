"""
Pipeline Orchestrator - one scheduled run per location

Stage order (no retries):
1. Score documents into SentimentRecords
2. Daily series: positivity, new cases, new hospitalizations
3. Dependency: positivity vs. each outcome
4. Forecasts: positivity, then each outcome conditioned on it
5. Kriging: sentiment field, then hospitalization field with the
   sentiment field as drift

Failure handling:
- malformed documents are skipped inside the scorer
- an EstimatorError marks that pair not computed (correlation kept)
- InsufficientDataError is fatal for the location
- a SpatialError marks the spatial stage not computed; everything
  else is still reported
"""
import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from sentiment_ews.common.errors import EstimatorError, SentimentEWSError, SpatialError
from sentiment_ews.common.status import COMPUTED, FAILED, NOT_COMPUTED
from sentiment_ews.config import RunConfig
from sentiment_ews.data.geocoding import BoundingBox, BoundingBoxSource
from sentiment_ews.data.records import Document
from sentiment_ews.dependency.estimator import DependencyResult, estimate_dependency
from sentiment_ews.features.daily_series import build_epi_series, build_positivity_series
from sentiment_ews.features.lexicon import Lexicon, LexiconEntry, score_documents
from sentiment_ews.models.forecaster import ConditionalForecaster, ForecastResult
from sentiment_ews.models.kriging import SpatialField, krige, sample_grid
from sentiment_ews.models.order_selection import InformationCriterionSelector, OrderSelector


PREDICTOR = 'positivity'
OUTCOMES = ('new_cases', 'new_hospitalizations')
SPATIAL_OUTCOME = 'new_hospitalizations'


@dataclass(frozen=True)
class StageOutcome:
    """Partial-result marker for one pipeline stage."""
    stage: str
    status: str
    message: str = ''

    def to_dict(self) -> Dict[str, str]:
        return {'stage': self.stage, 'status': self.status, 'message': self.message}


@dataclass
class PipelineResult:
    """Everything one location run produced."""
    location_name: str
    bbox: BoundingBox
    records: pd.DataFrame
    daily: pd.DataFrame
    dependency: Dict[str, DependencyResult] = field(default_factory=dict)
    forecasts: Dict[str, ForecastResult] = field(default_factory=dict)
    fields: Dict[str, SpatialField] = field(default_factory=dict)
    stages: List[StageOutcome] = field(default_factory=list)

    def stage(self, name: str) -> Optional[StageOutcome]:
        for outcome in self.stages:
            if outcome.stage == name:
                return outcome
        return None


@dataclass
class LocationFailure:
    """A location whose run raised; reported by run_locations()."""
    location_name: str
    error: str
    status: str = FAILED


def _log(verbose: bool, message: str) -> None:
    if verbose:
        print(message)


def selector_from_config(config: RunConfig) -> OrderSelector:
    """Default order selector built from the run's order_selection settings."""
    order = config.order_selection
    return InformationCriterionSelector(
        max_p=order.max_p, max_d=order.max_d, max_q=order.max_q, criterion=order.criterion
    )


def build_daily_frame(records: pd.DataFrame, epi: pd.DataFrame, config: RunConfig) -> pd.DataFrame:
    """
    Positivity and outcome DailySeries on one shared daily index.

    The index spans the union of sentiment days and epi days.
    """
    days = [d for d in (records['day'].min(), records['day'].max()) if pd.notna(d)] if len(records) else []
    if len(epi):
        days += [epi.index.min(), epi.index.max()]
    if not days:
        return pd.DataFrame(columns=[PREDICTOR, *OUTCOMES], index=pd.DatetimeIndex([], name='date'), dtype=float)
    start, end = min(days), max(days)

    daily = pd.DataFrame({
        PREDICTOR: build_positivity_series(records, config.neutral_band, start=start, end=end),
    })
    for column in OUTCOMES:
        daily[column] = build_epi_series(epi, column, start=start, end=end)
    daily.index.name = 'date'
    return daily


def run_dependency(daily: pd.DataFrame, config: RunConfig, verbose: bool = True) -> Dict[str, DependencyResult]:
    """Dependency of each outcome on positivity; failed pairs come back not computed."""
    results = {}
    for outcome in OUTCOMES:
        try:
            result = estimate_dependency(
                daily[PREDICTOR], daily[outcome],
                max_lag=config.max_lag, kernel_width=config.kernel_width,
            )
            _log(verbose, f"  ✓ {PREDICTOR} → {outcome}: r={result.pearson_correlation:.3f}, "
                          f"lag={result.optimal_lag}, MI={result.mutual_information_at_optimal_lag:.4f}, "
                          f"TE={result.transfer_entropy:.4f}")
        except EstimatorError as exc:
            warnings.warn(f"Dependency {PREDICTOR} → {outcome} not computed: {exc}")
            result = DependencyResult.not_computed(daily[PREDICTOR], daily[outcome], str(exc))
            _log(verbose, f"  → {PREDICTOR} → {outcome}: not computed ({exc})")
        results[outcome] = result
    return results


def run_forecasts(
    daily: pd.DataFrame,
    config: RunConfig,
    order_selector: Optional[OrderSelector] = None,
    verbose: bool = True
) -> Dict[str, ForecastResult]:
    """
    Positivity forecast plus conditional outcome forecasts.

    Raises:
        InsufficientDataError: too little history before the cutoff
    """
    forecaster = ConditionalForecaster(
        order_selector=order_selector or selector_from_config(config),
        horizon=config.forecast_horizon,
        training_cutoff=config.training_cutoff_date,
        min_train_obs=config.min_train_obs,
    )
    forecasts = forecaster.forecast(daily[PREDICTOR], {name: daily[name] for name in OUTCOMES})
    for name, result in forecasts.items():
        _log(verbose, f"  ✓ {name}: ARIMA{result.order}, AIC={result.aic:.2f}")
    return forecasts


def spatial_observations(records: pd.DataFrame, daily: pd.DataFrame, bbox: BoundingBox) -> pd.DataFrame:
    """
    Geotagged records inside the bounding box, with the day's outcome attached.

    Columns: lng, lat, positivity, new_hospitalizations
    """
    located = records.dropna(subset=['lng', 'lat'])
    inside = [bbox.contains(lng, lat) for lng, lat in zip(located['lng'], located['lat'])]
    located = located.loc[np.asarray(inside, dtype=bool)]

    days = pd.DatetimeIndex(pd.to_datetime(located['day'])).normalize()
    return pd.DataFrame({
        'lng': located['lng'].to_numpy(dtype=float),
        'lat': located['lat'].to_numpy(dtype=float),
        PREDICTOR: located['mean_positivity'].to_numpy(dtype=float),
        SPATIAL_OUTCOME: daily[SPATIAL_OUTCOME].reindex(days).to_numpy(dtype=float),
    })


def run_kriging(
    records: pd.DataFrame,
    daily: pd.DataFrame,
    bbox: BoundingBox,
    config: RunConfig,
    verbose: bool = True
) -> Dict[str, SpatialField]:
    """
    Sentiment field, then the hospitalization field drifted on it.

    Raises:
        SpatialError: insufficient support or a failed variogram fit
    """
    observations = spatial_observations(records, daily, bbox)
    grid = sample_grid(bbox, config.grid_sample_count, config.seed)
    _log(verbose, f"  → {len(observations)} geotagged records, {len(grid)} grid points")

    sentiment = krige(
        observations, grid, value_col=PREDICTOR,
        variogram_model=config.variogram_model, n_lags=config.n_lags, name=PREDICTOR,
    )
    _log(verbose, f"  ✓ {PREDICTOR} field ({sentiment.n_support} support points)")

    grid = grid.assign(**{PREDICTOR: sentiment.frame['predicted_value'].to_numpy()})
    outcome = krige(
        observations, grid, covariate=PREDICTOR, value_col=SPATIAL_OUTCOME,
        variogram_model=config.variogram_model, n_lags=config.n_lags, name=SPATIAL_OUTCOME,
    )
    _log(verbose, f"  ✓ {SPATIAL_OUTCOME} field ({outcome.n_support} support points)")

    return {PREDICTOR: sentiment, SPATIAL_OUTCOME: outcome}


def run_location(
    config: RunConfig,
    documents: Iterable[Union[Document, dict]],
    epi: pd.DataFrame,
    lexicon: Union[Lexicon, Sequence[LexiconEntry]],
    bbox_source: BoundingBoxSource,
    order_selector: Optional[OrderSelector] = None,
    verbose: bool = True
) -> PipelineResult:
    """
    Run every stage for one location.

    Args:
        config: Run settings for this location
        documents: Documents (or raw document rows) for the location
        epi: Epi frame from load_epi_records() / prepare_epi_frame()
        lexicon: Shared read-only lexicon
        bbox_source: Bounding-box lookup
        order_selector: ARIMA order strategy (default from config)
        verbose: Print progress

    Returns:
        PipelineResult with per-stage outcomes

    Raises:
        GeocodingError: location has no bounding box
        InsufficientDataError: too little history to forecast
    """
    _log(verbose, "=" * 60)
    _log(verbose, f"SENTIMENT EWS - {config.location_name.upper()}")
    _log(verbose, "=" * 60)

    bbox = bbox_source.lookup(config.location_name)
    stages = []

    _log(verbose, "\n[1/5] Scoring documents...")
    records = score_documents(documents, lexicon, neutral_band=config.neutral_band)
    stages.append(StageOutcome('score', COMPUTED, f"{len(records)} sentiment records"))
    _log(verbose, f"  → {len(records)} sentiment records")

    _log(verbose, "\n[2/5] Building daily series...")
    daily = build_daily_frame(records, epi, config)
    stages.append(StageOutcome('daily_series', COMPUTED, f"{len(daily)} days"))
    if len(daily):
        _log(verbose, f"  → {len(daily)} days ({daily.index.min().date()} to {daily.index.max().date()}), "
                      f"{int(daily[PREDICTOR].notna().sum())} with positivity")

    _log(verbose, "\n[3/5] Estimating dependency...")
    dependency = run_dependency(daily, config, verbose=verbose)
    for outcome, result in dependency.items():
        stages.append(StageOutcome(f"dependency:{outcome}", result.status, result.message))

    _log(verbose, "\n[4/5] Forecasting...")
    forecasts = run_forecasts(daily, config, order_selector=order_selector, verbose=verbose)
    stages.append(StageOutcome('forecast', COMPUTED, f"{config.forecast_horizon}-day horizon"))

    _log(verbose, "\n[5/5] Kriging...")
    try:
        fields = run_kriging(records, daily, bbox, config, verbose=verbose)
        stages.append(StageOutcome('spatial', COMPUTED, f"{config.grid_sample_count} grid points"))
    except SpatialError as exc:
        warnings.warn(f"Spatial stage not computed for {config.location_name}: {exc}")
        _log(verbose, f"  → not computed ({exc})")
        fields = {}
        stages.append(StageOutcome('spatial', NOT_COMPUTED, str(exc)))

    _log(verbose, f"\n✓ {config.location_name} complete")

    return PipelineResult(
        location_name=config.location_name,
        bbox=bbox,
        records=records,
        daily=daily,
        dependency=dependency,
        forecasts=forecasts,
        fields=fields,
        stages=stages,
    )


def run_locations(
    configs: Sequence[RunConfig],
    documents: Mapping[str, Iterable[Union[Document, dict]]],
    epi: Mapping[str, pd.DataFrame],
    lexicon: Union[Lexicon, Sequence[LexiconEntry]],
    bbox_source: BoundingBoxSource,
    order_selector: Optional[OrderSelector] = None,
    verbose: bool = True
) -> Dict[str, Union[PipelineResult, LocationFailure]]:
    """
    Independent runs for several locations, one after another.

    The lexicon is shared read-only; each location gets its own copy of its
    epi frame. A location whose run raises is reported as a
    LocationFailure and the remaining locations still run.
    """
    if not isinstance(lexicon, Lexicon):
        lexicon = Lexicon(lexicon)

    results = {}
    for config in configs:
        name = config.location_name
        try:
            if name not in documents or name not in epi:
                raise SentimentEWSError(f"No input data for location '{name}'")
            results[name] = run_location(
                config, list(documents[name]), epi[name].copy(), lexicon, bbox_source,
                order_selector=order_selector, verbose=verbose,
            )
        except (SentimentEWSError, ValueError) as exc:
            warnings.warn(f"Location {name} failed: {exc}")
            _log(verbose, f"\n✗ {name} failed: {exc}")
            results[name] = LocationFailure(location_name=name, error=f"{type(exc).__name__}: {exc}")
    return results
