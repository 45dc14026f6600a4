"""
Spatial Interpolation by Kriging

Two fields are produced per run, strictly in this order:
1. Sentiment field: ordinary kriging of record-level positivity
2. Outcome field: kriging with external drift (KED) of hospitalizations,
   with positivity as covariate (observed at the support points, the
   predicted sentiment field at the grid)

Variogram: empirical semivariances in `n_lags` equal-width distance bins,
then nugget / partial sill / range of a parametric model fitted with
scipy.optimize.curve_fit under non-negativity bounds. With a covariate the
variogram is fit to OLS residuals of the response on the covariate.

Distances are plain Euclidean in lng/lat degrees.
"""
import warnings
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Optional

import numpy as np
import pandas as pd
from scipy.linalg import LinAlgError, lu_factor, lu_solve
from scipy.optimize import OptimizeWarning, curve_fit
from scipy.spatial.distance import cdist, pdist, squareform

from sentiment_ews.common.errors import InsufficientSupportError, VariogramFitError
from sentiment_ews.data.geocoding import BoundingBox


def spherical(h, nugget, psill, range_):
    h = np.asarray(h, dtype=float)
    ratio = np.minimum(h / range_, 1.0)
    return nugget + psill * (1.5 * ratio - 0.5 * ratio ** 3)


def exponential(h, nugget, psill, range_):
    return nugget + psill * (1.0 - np.exp(-3.0 * np.asarray(h, dtype=float) / range_))


def gaussian(h, nugget, psill, range_):
    return nugget + psill * (1.0 - np.exp(-3.0 * (np.asarray(h, dtype=float) / range_) ** 2))


def linear(h, nugget, slope):
    return nugget + slope * np.asarray(h, dtype=float)


VARIOGRAM_MODELS: Dict[str, Callable] = {
    'spherical': spherical,
    'exponential': exponential,
    'gaussian': gaussian,
    'linear': linear,
}

GRID_CHUNK_SIZE = 2000


@dataclass(frozen=True)
class VariogramModel:
    """Fitted variogram parameters; sill = nugget + psill."""
    model: str
    nugget: float
    psill: float
    range: float

    @property
    def sill(self) -> float:
        return self.nugget + self.psill

    def __call__(self, h):
        h = np.asarray(h, dtype=float)
        if self.model == 'linear':
            gamma = linear(h, self.nugget, self.psill)
        else:
            gamma = VARIOGRAM_MODELS[self.model](h, self.nugget, self.psill, self.range)
        # gamma(0) = 0; the nugget is a jump just above zero
        return np.where(h > 0, gamma, 0.0)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class SpatialField:
    """Predicted surface on a grid: columns lng, lat, predicted_value, variance."""
    name: str
    frame: pd.DataFrame
    variogram: VariogramModel
    n_support: int
    covariate: Optional[str] = None


def deduplicate_observations(observations: pd.DataFrame, value_col: str = 'value') -> pd.DataFrame:
    """Drop incomplete rows, then keep the first observation per coordinate pair."""
    cols = ['lng', 'lat', value_col]
    missing = [c for c in cols if c not in observations.columns]
    if missing:
        raise ValueError(f"Observations missing columns: {missing}")
    clean = observations.dropna(subset=cols)
    return clean.drop_duplicates(subset=['lng', 'lat'], keep='first').reset_index(drop=True)


def check_support(coords: np.ndarray) -> None:
    """At least 3 unique points that do not all lie on one line."""
    if coords.shape[0] < 3:
        raise InsufficientSupportError(f"Kriging needs >= 3 unique points, got {coords.shape[0]}")
    design = np.column_stack([np.ones(coords.shape[0]), coords])
    if np.linalg.matrix_rank(design) < 3:
        raise InsufficientSupportError("Support points are collinear")


def empirical_variogram(coords: np.ndarray, values: np.ndarray, n_lags: int = 6):
    """
    Binned semivariances.

    Returns:
        Tuple of (bin_centres, semivariances, pair_counts) for non-empty bins
    """
    dists = pdist(coords)
    sq_diffs = 0.5 * pdist(values.reshape(-1, 1), metric='sqeuclidean')
    edges = np.linspace(0.0, dists.max(), n_lags + 1)
    which = np.clip(np.digitize(dists, edges[1:-1], right=True), 0, n_lags - 1)

    centres, gammas, counts = [], [], []
    for k in range(n_lags):
        in_bin = which == k
        if in_bin.any():
            centres.append(dists[in_bin].mean())
            gammas.append(sq_diffs[in_bin].mean())
            counts.append(int(in_bin.sum()))
    return np.array(centres), np.array(gammas), np.array(counts)


def fit_variogram(
    coords: np.ndarray,
    values: np.ndarray,
    model: str = 'spherical',
    n_lags: int = 6
) -> VariogramModel:
    """
    Fit a variogram model to the empirical semivariogram.

    Raises:
        VariogramFitError: unknown model, too few bins, non-convergence,
                           non-finite or zero-sill parameters
    """
    if model not in VARIOGRAM_MODELS:
        raise VariogramFitError(f"Unknown variogram model: {model}")

    lags, gammas, counts = empirical_variogram(coords, values, n_lags=n_lags)
    n_params = 2 if model == 'linear' else 3
    if lags.size < n_params:
        raise VariogramFitError(f"Only {lags.size} non-empty lag bins for a {n_params}-parameter model")
    if gammas.max() <= 0:
        raise VariogramFitError("No spatial variation: all semivariances are zero")

    max_gamma = max(float(gammas.max()), 1e-12)
    max_lag = float(lags.max())
    if model == 'linear':
        p0 = [float(gammas.min()), max_gamma / max_lag]
        bounds = ([0.0, 0.0], [max_gamma, np.inf])
    else:
        p0 = [float(gammas.min()), max(max_gamma - float(gammas.min()), 1e-12), 0.5 * max_lag]
        bounds = ([0.0, 0.0, 1e-12], [max_gamma, 10.0 * max_gamma, 10.0 * max_lag])

    # weight bins by pair count
    sigma = 1.0 / np.sqrt(counts)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', OptimizeWarning)
            params, _ = curve_fit(
                VARIOGRAM_MODELS[model], lags, gammas, p0=p0, bounds=bounds,
                sigma=sigma, maxfev=10000,
            )
    except (RuntimeError, ValueError) as exc:
        raise VariogramFitError(f"Variogram fit did not converge: {exc}") from exc

    if not np.all(np.isfinite(params)):
        raise VariogramFitError(f"Variogram fit returned non-finite parameters: {params}")

    if model == 'linear':
        fitted = VariogramModel(model, nugget=float(params[0]), psill=float(params[1]), range=max_lag)
    else:
        fitted = VariogramModel(model, nugget=float(params[0]), psill=float(params[1]), range=float(params[2]))

    if fitted.sill <= 1e-12:
        raise VariogramFitError("Degenerate variogram: zero sill")
    return fitted


def _residuals(values: np.ndarray, covariate: np.ndarray) -> np.ndarray:
    design = np.column_stack([np.ones_like(covariate), covariate])
    coef, *_ = np.linalg.lstsq(design, values, rcond=None)
    return values - design @ coef


def krige(
    observations: pd.DataFrame,
    target_grid: pd.DataFrame,
    covariate: Optional[str] = None,
    value_col: str = 'value',
    variogram_model: str = 'spherical',
    n_lags: int = 6,
    name: str = 'field'
) -> SpatialField:
    """
    Ordinary kriging, or kriging with external drift when `covariate` is set.

    Args:
        observations: Columns lng, lat, value_col (and covariate, if used)
        target_grid: Columns lng, lat (and covariate, if used)
        covariate: Column holding the drift variable in both frames
        value_col: Response column in observations
        variogram_model: spherical | exponential | gaussian | linear
        n_lags: Number of distance bins for the empirical variogram
        name: Label of the resulting field

    Returns:
        SpatialField with predicted_value and variance per grid point

    Raises:
        InsufficientSupportError: < 3 unique or collinear support points
        VariogramFitError: variogram fit failed
    """
    subset = [covariate] if covariate else []
    obs = deduplicate_observations(observations.dropna(subset=subset) if subset else observations, value_col)
    coords = obs[['lng', 'lat']].to_numpy(dtype=float)
    check_support(coords)

    values = obs[value_col].to_numpy(dtype=float)
    if covariate:
        if covariate not in target_grid.columns:
            raise ValueError(f"Target grid has no covariate column '{covariate}'")
        drift_obs = obs[covariate].to_numpy(dtype=float)
        drift_grid = target_grid[covariate].to_numpy(dtype=float)
        if not np.isfinite(drift_grid).all():
            raise ValueError(f"Covariate '{covariate}' has missing values on the grid")
        variogram = fit_variogram(coords, _residuals(values, drift_obs), variogram_model, n_lags)
    else:
        drift_obs = drift_grid = None
        variogram = fit_variogram(coords, values, variogram_model, n_lags)

    n = coords.shape[0]
    n_drift = 1 if covariate is None else 2
    size = n + n_drift

    # kriging system [[Gamma, F], [F^T, 0]]
    system = np.zeros((size, size))
    system[:n, :n] = variogram(squareform(pdist(coords)))
    system[:n, n] = system[n, :n] = 1.0
    if covariate:
        system[:n, n + 1] = system[n + 1, :n] = drift_obs
    try:
        lu = lu_factor(system, check_finite=True)
    except (LinAlgError, ValueError) as exc:
        raise InsufficientSupportError(f"Kriging system is singular: {exc}") from exc

    grid_coords = target_grid[['lng', 'lat']].to_numpy(dtype=float)
    predicted = np.empty(grid_coords.shape[0])
    variance = np.empty(grid_coords.shape[0])

    for start in range(0, grid_coords.shape[0], GRID_CHUNK_SIZE):
        stop = start + GRID_CHUNK_SIZE
        rhs = np.ones((size, min(stop, grid_coords.shape[0]) - start))
        rhs[:n] = variogram(cdist(coords, grid_coords[start:stop]))
        if covariate:
            rhs[n + 1] = drift_grid[start:stop]
        weights = lu_solve(lu, rhs)
        predicted[start:stop] = weights[:n].T @ values
        variance[start:stop] = np.einsum('ij,ij->j', weights, rhs)

    if not np.isfinite(predicted).all():
        raise InsufficientSupportError("Kriging system is ill-conditioned (non-finite predictions)")

    frame = pd.DataFrame({
        'lng': grid_coords[:, 0],
        'lat': grid_coords[:, 1],
        'predicted_value': predicted,
        'variance': np.maximum(variance, 0.0),
    })
    return SpatialField(name=name, frame=frame, variogram=variogram, n_support=n, covariate=covariate)


def sample_grid(bbox: BoundingBox, n_points: int, seed: int) -> pd.DataFrame:
    """Uniform random grid points inside a bounding box (reproducible for a seed)."""
    if n_points < 1:
        raise ValueError(f"n_points must be >= 1, got {n_points}")
    rng = np.random.default_rng(seed)
    return pd.DataFrame({
        'lng': rng.uniform(bbox.min_lng, bbox.max_lng, n_points),
        'lat': rng.uniform(bbox.min_lat, bbox.max_lat, n_points),
    })
