"""
Error types for Sentiment EWS.

Record-level problems (ParseError) are recovered by dropping the record.
Stage-level problems are surfaced to the orchestrator, which decides
whether the stage is marked "not computed" or the whole run aborts.
"""


class SentimentEWSError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(SentimentEWSError):
    """Configuration is missing a required key or holds an invalid value."""


class ParseError(SentimentEWSError):
    """Malformed coordinate or date field on a single record."""


class LexiconError(SentimentEWSError):
    """Lexicon could not be loaded. Always fatal."""


class GeocodingError(SentimentEWSError):
    """No bounding box is known for the requested location."""


class EstimatorError(SentimentEWSError):
    """Insufficient or invalid data for a kernel MI / TE estimate."""


class ForecastError(SentimentEWSError):
    """ARIMA order selection or fitting failed."""


class InsufficientDataError(ForecastError):
    """Training window is too short for the model class."""


class SpatialError(SentimentEWSError):
    """Spatial stage cannot proceed."""


class VariogramFitError(SpatialError):
    """Variogram auto-fit did not converge or is degenerate."""


class InsufficientSupportError(SpatialError):
    """Fewer than 3 unique, non-collinear support points."""
