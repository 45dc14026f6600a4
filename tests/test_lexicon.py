import numpy as np
import pandas as pd
import pytest

from sentiment_ews.common.errors import LexiconError
from sentiment_ews.data.records import Document
from sentiment_ews.features.lexicon import (
    SENTIMENT_RECORD_COLUMNS,
    Lexicon,
    LexiconEntry,
    in_neutral_band,
    score_documents,
    score_text,
)


def _doc(doc_id, text, ts='2020-03-02 10:00', author='a1', lng=-73.9, lat=40.7):
    return Document(
        author_id=author, document_id=doc_id, timestamp=pd.Timestamp(ts),
        raw_text=text, lng=lng, lat=lat,
    )


def test_exact_lookup(lexicon):
    assert lexicon.score('happy') == 7.0
    assert 'happy' in lexicon


def test_stem_of_token_matches_lexicon_word(lexicon):
    # "loved" stems to "love", itself a lexicon word
    assert lexicon.lookup_exact('loved') is None
    assert lexicon.score('loved') == 8.5


def test_stem_of_token_matches_stemmed_lexicon_word(lexicon):
    # "happiness" and "happy" share the stem "happi"
    assert lexicon.score('happiness') == 7.0


def test_first_entry_per_stem_wins():
    lex = Lexicon([LexiconEntry('caring', 7.0), LexiconEntry('cares', 3.0)])
    assert lex.lookup_stem('cared') == 7.0


def test_unknown_token_has_no_score(lexicon):
    assert lexicon.score('zzyzx') is None


def test_empty_lexicon_is_fatal():
    with pytest.raises(LexiconError):
        Lexicon([])


def test_neutral_band_is_open():
    assert in_neutral_band(5.0)
    assert not in_neutral_band(4.0)
    assert not in_neutral_band(6.0)


def test_score_text_discards_neutral_tokens(lexicon):
    assert score_text('the table', lexicon) is None
    assert score_text('a wonderful table', lexicon) == 9.0


def test_score_text_mean_inside_band_is_uninformative(lexicon):
    # 3 and 7 average to 5
    assert score_text('sad but happy', lexicon) is None


def test_score_documents_one_record_per_informative_document(lexicon):
    docs = [
        _doc('d1', 'Happy and in love'),
        _doc('d2', 'the table'),
        _doc('d3', 'sad but happy'),
        _doc('d4', 'awful fever', ts='2020-03-03 23:30'),
    ]
    records = score_documents(docs, lexicon)

    assert list(records.columns) == SENTIMENT_RECORD_COLUMNS
    assert list(records['document_id']) == ['d1', 'd4']
    assert records.loc[0, 'mean_positivity'] == pytest.approx((7.0 + 8.5) / 2)
    assert records.loc[1, 'mean_positivity'] == pytest.approx((1.0 + 2.2) / 2)
    assert records.loc[1, 'day'] == pd.Timestamp('2020-03-03')
    assert records.loc[0, 'entity_id'] == 'a1:d1'


def test_score_documents_without_coordinates_keeps_nan(lexicon):
    records = score_documents([_doc('d1', 'great', lng=None, lat=None)], lexicon)
    assert len(records) == 1
    assert np.isnan(records.loc[0, 'lng'])


def test_malformed_raw_document_is_skipped_with_warning(lexicon):
    rows = [
        {'author_id': 'a', 'document_id': '1', 'timestamp': '2020-03-02', 'text': 'great',
         'coordinates': '-73.9,40.7'},
        {'author_id': 'a', 'document_id': '2', 'timestamp': '2020-03-02', 'text': 'great',
         'coordinates': 'somewhere'},
    ]
    with pytest.warns(UserWarning, match='Skipping document'):
        records = score_documents(rows, lexicon)
    assert list(records['document_id']) == ['1']


def test_raw_document_without_ids_is_skipped_with_warning(lexicon):
    rows = [
        {'document_id': '1', 'timestamp': '2020-03-02', 'text': 'happy'},
        {'author_id': 'b', 'document_id': '2', 'timestamp': '2020-03-02', 'text': 'happy'},
        {'author_id': 'c', 'document_id': '', 'timestamp': '2020-03-02', 'text': 'happy'},
    ]
    with pytest.warns(UserWarning, match='Missing author_id'):
        records = score_documents(rows, lexicon)
    assert list(records['entity_id']) == ['b:2']


def test_no_informative_documents_gives_empty_frame(lexicon):
    records = score_documents([_doc('d1', 'table table')], lexicon)
    assert records.empty
    assert list(records.columns) == SENTIMENT_RECORD_COLUMNS


def test_custom_neutral_band(lexicon):
    records = score_documents([_doc('d1', 'happy')], lexicon, neutral_band=(6.5, 7.5))
    assert records.empty
