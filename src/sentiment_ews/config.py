"""
Configuration loader for Sentiment EWS.
Loads YAML config and provides typed access to run settings.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pandas as pd
import yaml

from sentiment_ews.common.errors import ConfigError


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to config/config_default.yaml

    Returns:
        Dictionary containing all configuration settings
    """
    if config_path is None:
        config_path = get_project_root() / "config" / "config_default.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    if not isinstance(config, dict):
        raise ConfigError(f"Config file must hold a mapping: {config_path}")

    return config


def get_project_root() -> Path:
    """Get the project root directory (the one holding config/ and src/)."""
    return Path(__file__).resolve().parent.parent.parent


def get_data_path(relative_path: str) -> Path:
    """
    Get absolute path for a data file.

    Args:
        relative_path: Path relative to project root (e.g., "data/raw/tweets.csv")

    Returns:
        Absolute Path object
    """
    path = Path(relative_path)
    if path.is_absolute():
        return path
    return get_project_root() / path


def _require(cfg: Dict[str, Any], key: str) -> Any:
    if key not in cfg or cfg[key] is None:
        raise ConfigError(f"Missing required config key: {key}")
    return cfg[key]


def _parse_date(value: Any, key: str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return pd.Timestamp(str(value)).date()
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"Invalid date for {key}: {value!r}") from exc


@dataclass(frozen=True)
class OrderSelectionConfig:
    """Search space for automatic ARIMA order selection."""
    max_p: int = 3
    max_d: int = 2
    max_q: int = 3
    criterion: str = "aic"


@dataclass(frozen=True)
class RunConfig:
    """
    Settings for one scheduled run on one location.

    Every randomized step takes `seed` from here; nothing is read from
    process-wide state.
    """
    location_name: str
    training_cutoff_date: dt.date
    forecast_horizon: int = 14
    max_lag: int = 14
    kernel_width: float = 0.5
    grid_sample_count: int = 10000
    neutral_band: Tuple[float, float] = (4.0, 6.0)
    seed: int = 42
    min_train_obs: int = 14
    variogram_model: str = "spherical"
    n_lags: int = 6
    order_selection: OrderSelectionConfig = field(default_factory=OrderSelectionConfig)

    def __post_init__(self):
        if self.forecast_horizon < 1:
            raise ConfigError("forecast_horizon must be >= 1")
        if self.max_lag < 1:
            raise ConfigError("max_lag must be >= 1")
        if self.kernel_width <= 0:
            raise ConfigError("kernel_width must be > 0")
        if self.grid_sample_count < 1:
            raise ConfigError("grid_sample_count must be >= 1")
        low, high = self.neutral_band
        if low > high:
            raise ConfigError(f"neutral_band lower bound exceeds upper: {self.neutral_band}")

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any], location_name: Optional[str] = None) -> 'RunConfig':
        """
        Build a RunConfig from a loaded YAML mapping.

        Args:
            cfg: Output of load_config()
            location_name: Overrides cfg['location_name'] (multi-location runs)
        """
        name = location_name or _require(cfg, 'location_name')
        cutoff = _parse_date(_require(cfg, 'training_cutoff_date'), 'training_cutoff_date')

        band = cfg.get('neutral_band', [4.0, 6.0])
        if not isinstance(band, (list, tuple)) or len(band) != 2:
            raise ConfigError(f"neutral_band must be a pair, got {band!r}")

        order_cfg = cfg.get('order_selection') or {}
        order = OrderSelectionConfig(
            max_p=int(order_cfg.get('max_p', 3)),
            max_d=int(order_cfg.get('max_d', 2)),
            max_q=int(order_cfg.get('max_q', 3)),
            criterion=str(order_cfg.get('criterion', 'aic')).lower(),
        )

        return cls(
            location_name=str(name),
            training_cutoff_date=cutoff,
            forecast_horizon=int(cfg.get('forecast_horizon', 14)),
            max_lag=int(cfg.get('max_lag', 14)),
            kernel_width=float(cfg.get('kernel_width', 0.5)),
            grid_sample_count=int(cfg.get('grid_sample_count', 10000)),
            neutral_band=(float(band[0]), float(band[1])),
            seed=int(cfg.get('seed', 42)),
            min_train_obs=int(cfg.get('min_train_obs', 14)),
            variogram_model=str(cfg.get('variogram_model', 'spherical')),
            n_lags=int(cfg.get('n_lags', 6)),
            order_selection=order,
        )
