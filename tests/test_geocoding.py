import pytest

from sentiment_ews.common.errors import ConfigError, GeocodingError
from sentiment_ews.data.geocoding import BoundingBox, BoundingBoxSource


def test_exact_and_case_insensitive_lookup(bbox_source):
    assert bbox_source.match('Chicago') == ('Chicago', 100.0)
    assert bbox_source.match('  chicago ') == ('Chicago', 100.0)


def test_fuzzy_lookup(bbox_source):
    name, score = bbox_source.match('new york')
    assert name == 'New York City'
    assert score >= bbox_source.score_threshold
    assert bbox_source.lookup('New York City NY').min_lng == pytest.approx(-74.2591)


def test_unknown_location(bbox_source):
    with pytest.raises(GeocodingError):
        bbox_source.lookup('Atlantis')


def test_empty_table():
    with pytest.raises(GeocodingError):
        BoundingBoxSource({}).lookup('Chicago')


def test_degenerate_box():
    with pytest.raises(ConfigError):
        BoundingBox(1.0, 0.0, 1.0, 2.0)


def test_box_missing_key():
    with pytest.raises(ConfigError, match='max_lat'):
        BoundingBox.from_mapping({'min_lng': 0, 'min_lat': 0, 'max_lng': 1})


def test_contains():
    box = BoundingBox(0.0, 0.0, 1.0, 1.0)
    assert box.contains(0.5, 1.0)
    assert not box.contains(1.5, 0.5)


def test_from_config_reads_threshold():
    source = BoundingBoxSource.from_config({
        'fuzzy_score_threshold': 99,
        'locations': {'Chicago': {'min_lng': 0, 'min_lat': 0, 'max_lng': 1, 'max_lat': 1}},
    })
    assert source.score_threshold == 99
    with pytest.raises(GeocodingError):
        source.lookup('Chicag')
