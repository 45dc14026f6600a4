"""
Record types delivered by the external sources, with field parsers.

Malformed coordinate or timestamp fields raise ParseError; callers drop the
offending record and carry on.
"""
import re
import warnings
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from sentiment_ews.common.errors import ParseError


_COORD_NUMBER = re.compile(r'[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?')


@dataclass(frozen=True)
class Document:
    """A single social-media post as delivered by the document source."""
    author_id: str
    document_id: str
    timestamp: pd.Timestamp
    raw_text: str
    popularity_count: int = 0
    lng: Optional[float] = None
    lat: Optional[float] = None

    @property
    def day(self) -> pd.Timestamp:
        """Calendar day of the post (UTC for timezone-aware timestamps)."""
        ts = self.timestamp
        if ts.tzinfo is not None:
            ts = ts.tz_convert(None)
        return ts.normalize()

    @property
    def has_coordinates(self) -> bool:
        return self.lng is not None and self.lat is not None


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    return isinstance(value, str) and value.strip() in ("", "nan", "None", "null")


def parse_coordinates(value: Any) -> Optional[Tuple[float, float]]:
    """
    Parse a coordinate field into (lng, lat).

    Accepts "lng,lat", "[lng, lat]", "(lng lat)" strings or a 2-sequence.
    Empty values mean "no coordinates" and return None.

    Raises:
        ParseError: malformed string or out-of-range values
    """
    if is_missing(value):
        return None

    if isinstance(value, str):
        parts = _COORD_NUMBER.findall(value)
        leftover = _COORD_NUMBER.sub('', value)
        if len(parts) != 2 or re.search(r'[^\s,;\[\]\(\)]', leftover):
            raise ParseError(f"Malformed coordinates: {value!r}")
        values = parts
    elif isinstance(value, (list, tuple, np.ndarray)):
        if len(value) != 2:
            raise ParseError(f"Coordinates need exactly 2 values: {value!r}")
        values = list(value)
    else:
        raise ParseError(f"Unsupported coordinate type: {type(value).__name__}")

    try:
        lng, lat = float(values[0]), float(values[1])
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Non-numeric coordinates: {value!r}") from exc

    if not (np.isfinite(lng) and np.isfinite(lat)):
        raise ParseError(f"Non-finite coordinates: {value!r}")
    if not (-180.0 <= lng <= 180.0 and -90.0 <= lat <= 90.0):
        raise ParseError(f"Coordinates out of range (lng, lat): {value!r}")

    return lng, lat


def parse_timestamp(value: Any) -> pd.Timestamp:
    """Parse a timestamp field; raises ParseError on failure."""
    if is_missing(value):
        raise ParseError("Missing timestamp")
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError) as exc:
        raise ParseError(f"Malformed timestamp: {value!r}") from exc
    if ts is pd.NaT:
        raise ParseError(f"Malformed timestamp: {value!r}")
    return ts


def document_from_row(row: Dict[str, Any]) -> Document:
    """
    Build a Document from a raw record.

    Coordinates may come as one `coordinates` field or separate `lng`/`lat`.

    Raises:
        ParseError: missing ids, malformed timestamp or coordinates
    """
    for key in ('author_id', 'document_id'):
        if is_missing(row.get(key)):
            raise ParseError(f"Missing {key}")

    if 'coordinates' in row and not is_missing(row.get('coordinates')):
        coords = parse_coordinates(row['coordinates'])
    elif not is_missing(row.get('lng')) and not is_missing(row.get('lat')):
        coords = parse_coordinates([row['lng'], row['lat']])
    else:
        coords = None

    popularity = row.get('popularity_count', 0)
    try:
        popularity = 0 if is_missing(popularity) else int(float(popularity))
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Malformed popularity_count: {popularity!r}") from exc

    text = row.get('text', row.get('raw_text', ''))
    text = '' if is_missing(text) else str(text)

    return Document(
        author_id=str(row['author_id']),
        document_id=str(row['document_id']),
        timestamp=parse_timestamp(row.get('timestamp')),
        raw_text=text,
        popularity_count=popularity,
        lng=coords[0] if coords else None,
        lat=coords[1] if coords else None,
    )


def documents_from_records(records: Iterable[Dict[str, Any]]) -> List[Document]:
    """
    Convert raw records to Documents, dropping malformed ones.

    Each dropped record is reported through warnings.warn.
    """
    documents = []
    for i, row in enumerate(records):
        try:
            documents.append(document_from_row(row))
        except ParseError as exc:
            warnings.warn(f"Skipping document #{i} ({row.get('document_id', '?')}): {exc}")
    return documents

