import datetime as dt

import numpy as np
import pandas as pd
import pytest

from sentiment_ews.config import RunConfig
from sentiment_ews.data.geocoding import BoundingBoxSource
from sentiment_ews.data.loader import prepare_epi_frame
from sentiment_ews.features.lexicon import Lexicon, LexiconEntry
from sentiment_ews.models.order_selection import InformationCriterionSelector


NYC_BBOX = {'min_lng': -74.2591, 'min_lat': 40.4774, 'max_lng': -73.7004, 'max_lat': 40.9176}

# word -> positivity, ordered from negative to positive
WORDS = [
    ('awful', 1.0),
    ('sick', 2.0),
    ('sad', 3.0),
    ('table', 5.0),
    ('happy', 7.0),
    ('great', 8.0),
    ('wonderful', 9.0),
]
GRADED_WORDS = [w for w, s in WORDS if s != 5.0]


@pytest.fixture
def lexicon_entries():
    return [LexiconEntry(word, score) for word, score in WORDS] + [
        LexiconEntry('love', 8.5, 'joy'),
        LexiconEntry('fever', 2.2, 'fear'),
    ]


@pytest.fixture
def lexicon(lexicon_entries):
    return Lexicon(lexicon_entries)


@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def bbox_source():
    return BoundingBoxSource({
        'New York City': NYC_BBOX,
        'Chicago': {'min_lng': -87.9401, 'min_lat': 41.6445, 'max_lng': -87.5241, 'max_lat': 42.0230},
    })


@pytest.fixture
def small_selector():
    return InformationCriterionSelector(max_p=1, max_d=1, max_q=1)


@pytest.fixture
def run_config():
    return RunConfig(
        location_name='New York City',
        training_cutoff_date=dt.date(2020, 4, 20),
        forecast_horizon=5,
        max_lag=5,
        grid_sample_count=150,
        min_train_obs=14,
        seed=11,
    )


def make_epi(dates, new_cases, cumulative_hospitalizations):
    raw = pd.DataFrame({
        'date': [d.strftime('%Y-%m-%d') for d in dates],
        'new_cases': new_cases,
        'cumulative_hospitalizations': cumulative_hospitalizations,
    })
    return prepare_epi_frame(raw)


@pytest.fixture
def synthetic_inputs():
    """
    60 days of geotagged posts in the NYC box plus matching epi records.

    Daily mood follows a slow wave; posts further east are happier.
    Hospitalizations track the mood of two days earlier.
    """
    gen = np.random.default_rng(2020)
    dates = pd.date_range('2020-03-01', periods=60, freq='D')
    mood = 3.0 + 2.0 * np.sin(np.arange(60) / 6.0)

    documents = []
    for day, level in zip(dates, mood):
        for k in range(5):
            lng = gen.uniform(NYC_BBOX['min_lng'], NYC_BBOX['max_lng'])
            lat = gen.uniform(NYC_BBOX['min_lat'], NYC_BBOX['max_lat'])
            east = (lng - NYC_BBOX['min_lng']) / (NYC_BBOX['max_lng'] - NYC_BBOX['min_lng'])
            idx = int(np.clip(round(level + 2.0 * east + gen.normal(0, 0.5)), 0, len(GRADED_WORDS) - 1))
            documents.append({
                'author_id': f"u{k}",
                'document_id': f"{day:%m%d}-{k}",
                'timestamp': f"{day:%Y-%m-%d} 1{k}:00:00",
                'text': f"Feeling {GRADED_WORDS[idx]} today",
                'popularity_count': k,
                'coordinates': f"{lng:.5f},{lat:.5f}",
            })

    lagged = np.roll(mood, 2)
    new_cases = np.round(50 + 10 * mood + gen.normal(0, 2, 60))
    new_hosp = np.round(5 + 3 * lagged + gen.normal(0, 1, 60)).clip(min=0)
    cumulative = 1000 + np.cumsum(new_hosp)
    epi = make_epi(dates, new_cases, cumulative)
    return documents, epi


@pytest.fixture
def epi_factory():
    return make_epi
