"""
Bounding-box lookup for named locations.

The kriging grid is sampled inside the box returned here. Boxes come from
the `locations` table of the run config; names are matched fuzzily so
"new york" or "New York City, NY" resolve to the same entry.
"""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from rapidfuzz import fuzz, process

from sentiment_ews.common.errors import ConfigError, GeocodingError


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned lng/lat box."""
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    def __post_init__(self):
        if self.min_lng >= self.max_lng or self.min_lat >= self.max_lat:
            raise ConfigError(f"Degenerate bounding box: {self}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> 'BoundingBox':
        try:
            return cls(
                min_lng=float(values['min_lng']),
                min_lat=float(values['min_lat']),
                max_lng=float(values['max_lng']),
                max_lat=float(values['max_lat']),
            )
        except KeyError as exc:
            raise ConfigError(f"Bounding box missing key: {exc.args[0]}") from exc

    def contains(self, lng: float, lat: float) -> bool:
        return self.min_lng <= lng <= self.max_lng and self.min_lat <= lat <= self.max_lat


class BoundingBoxSource:
    """Looks up bounding boxes by location name from a static table."""

    def __init__(self, table: Mapping[str, Mapping[str, Any]], score_threshold: int = 85):
        """
        Args:
            table: location name -> {min_lng, min_lat, max_lng, max_lat}
            score_threshold: Minimum fuzzy match score (0-100)
        """
        self.boxes: Dict[str, BoundingBox] = {
            str(name): BoundingBox.from_mapping(values) for name, values in (table or {}).items()
        }
        self.score_threshold = score_threshold

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], score_threshold: Optional[int] = None) -> 'BoundingBoxSource':
        threshold = score_threshold if score_threshold is not None else cfg.get('fuzzy_score_threshold', 85)
        return cls(cfg.get('locations') or {}, score_threshold=int(threshold))

    def match(self, location_name: str) -> Tuple[str, float]:
        """
        Resolve a location name to a table key.

        Returns:
            Tuple of (matched_name, score)

        Raises:
            GeocodingError: no entry scores at or above the threshold
        """
        if not self.boxes:
            raise GeocodingError("No bounding boxes configured")

        query = str(location_name).strip()
        for name in self.boxes:
            if name.casefold() == query.casefold():
                return name, 100.0

        match = process.extractOne(
            query, list(self.boxes), scorer=fuzz.token_set_ratio, processor=str.casefold
        )
        if match and match[1] >= self.score_threshold:
            return match[0], float(match[1])

        raise GeocodingError(f"No bounding box for location: {location_name!r}")

    def lookup(self, location_name: str) -> BoundingBox:
        name, _ = self.match(location_name)
        return self.boxes[name]
