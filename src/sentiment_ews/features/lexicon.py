"""
Lexicon-based Positivity Scoring

Each document is normalized and tokenized; every token is looked up in a
positivity lexicon (0 = negative .. 9 = positive):
1. exact word match
2. Porter stem of the token, matched against lexicon words, then against
   stems of lexicon words
3. otherwise the token carries no score

Scores inside the neutral band (open interval, default (4, 6)) are
uninformative and discarded. The remaining scores are averaged per
(author, document, day, coordinates). A document left with no
informative score produces no record at all.
"""
import warnings
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from nltk.stem import PorterStemmer

from sentiment_ews.common.errors import LexiconError, ParseError
from sentiment_ews.data.records import Document, document_from_row
from sentiment_ews.features.text import text_to_tokens


DEFAULT_NEUTRAL_BAND: Tuple[float, float] = (4.0, 6.0)

SENTIMENT_RECORD_COLUMNS = [
    'entity_id', 'author_id', 'document_id', 'day', 'lng', 'lat',
    'mean_positivity', 'n_tokens', 'popularity_count',
]


@dataclass(frozen=True)
class LexiconEntry:
    """One lexicon row."""
    word: str
    positivity_score: float
    affect_category: Optional[str] = None


class Lexicon:
    """
    Read-only word -> positivity table with stemmed fallback.

    Safe to share across locations; nothing is mutated after construction.
    """

    def __init__(self, entries: Sequence[LexiconEntry]):
        if not entries:
            raise LexiconError("Lexicon is empty")

        self._stemmer = PorterStemmer()
        self._exact: Dict[str, float] = {}
        self._by_stem: Dict[str, float] = {}

        for entry in entries:
            word = entry.word.strip().lower()
            if not word or word in self._exact:
                continue
            self._exact[word] = float(entry.positivity_score)

        # first entry per stem wins (file order)
        for word, score in self._exact.items():
            self._by_stem.setdefault(self._stemmer.stem(word), score)

    def __len__(self) -> int:
        return len(self._exact)

    def __contains__(self, word: str) -> bool:
        return word in self._exact

    def stem(self, token: str) -> str:
        return self._stemmer.stem(token)

    def lookup_exact(self, word: str) -> Optional[float]:
        return self._exact.get(word)

    def lookup_stem(self, token: str) -> Optional[float]:
        """Look up the stem of `token` as a word, then among stemmed lexicon words."""
        stem = self.stem(token)
        score = self._exact.get(stem)
        if score is None:
            score = self._by_stem.get(stem)
        return score

    def score(self, token: str) -> Optional[float]:
        """Positivity of a token, or None if neither the word nor its stem is known."""
        score = self.lookup_exact(token)
        if score is None:
            score = self.lookup_stem(token)
        return score


def in_neutral_band(score: float, neutral_band: Tuple[float, float] = DEFAULT_NEUTRAL_BAND) -> bool:
    """True when score lies strictly inside the band (bounds are informative)."""
    low, high = neutral_band
    return low < score < high


def informative_scores(
    tokens: Iterable[str],
    lexicon: Lexicon,
    neutral_band: Tuple[float, float] = DEFAULT_NEUTRAL_BAND
) -> List[float]:
    """Scores of matched tokens, excluding the neutral band."""
    scores = []
    for token in tokens:
        score = lexicon.score(token)
        if score is not None and not in_neutral_band(score, neutral_band):
            scores.append(score)
    return scores


def score_text(
    text: str,
    lexicon: Lexicon,
    neutral_band: Tuple[float, float] = DEFAULT_NEUTRAL_BAND
) -> Optional[float]:
    """Mean informative positivity of a text, or None when nothing informative remains."""
    scores = informative_scores(text_to_tokens(text), lexicon, neutral_band)
    if not scores:
        return None
    mean = float(np.mean(scores))
    return None if in_neutral_band(mean, neutral_band) else mean


def score_documents(
    documents: Iterable[Union[Document, dict]],
    lexicon: Union[Lexicon, Sequence[LexiconEntry]],
    neutral_band: Tuple[float, float] = DEFAULT_NEUTRAL_BAND
) -> pd.DataFrame:
    """
    Score documents into SentimentRecords.

    Args:
        documents: Documents, or raw records parsed with document_from_row()
        lexicon: Lexicon or its entries
        neutral_band: Open interval of discarded scores

    Returns:
        DataFrame with SENTIMENT_RECORD_COLUMNS, one row per informative
        document. Raw records with malformed fields are skipped with a
        warning.
    """
    if not isinstance(lexicon, Lexicon):
        lexicon = Lexicon(lexicon)

    groups: Dict[tuple, dict] = {}

    for i, doc in enumerate(documents):
        if not isinstance(doc, Document):
            try:
                doc = document_from_row(doc)
            except ParseError as exc:
                warnings.warn(f"Skipping document #{i}: {exc}")
                continue

        scores = informative_scores(text_to_tokens(doc.raw_text), lexicon, neutral_band)
        if not scores:
            continue

        key = (doc.author_id, doc.document_id, doc.day, doc.lng, doc.lat)
        group = groups.setdefault(key, {'scores': [], 'popularity_count': 0})
        group['scores'].extend(scores)
        group['popularity_count'] = max(group['popularity_count'], doc.popularity_count)

    rows = []
    for (author_id, document_id, day, lng, lat), group in groups.items():
        mean = float(np.mean(group['scores']))
        if in_neutral_band(mean, neutral_band):
            continue
        rows.append({
            'entity_id': f"{author_id}:{document_id}",
            'author_id': author_id,
            'document_id': document_id,
            'day': day,
            'lng': np.nan if lng is None else lng,
            'lat': np.nan if lat is None else lat,
            'mean_positivity': mean,
            'n_tokens': len(group['scores']),
            'popularity_count': group['popularity_count'],
        })

    records = pd.DataFrame(rows, columns=SENTIMENT_RECORD_COLUMNS)
    if len(records):
        records = records.sort_values(['day', 'author_id', 'document_id']).reset_index(drop=True)
    records['day'] = pd.to_datetime(records['day'])
    records[['lng', 'lat', 'mean_positivity']] = records[['lng', 'lat', 'mean_positivity']].astype(float)
    return records
