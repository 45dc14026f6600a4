"""
Data Loader for Sentiment EWS - BLOCK 1: Data Acquisition

This module handles:
1. Loading geotagged social-media documents (CSV or JSON lines)
2. Loading epidemiological records and deriving new hospitalizations
3. Loading the positivity lexicon

Raw acquisition (API clients, keyword subsetting) happens upstream; these
loaders only read the files that process leaves behind.
"""
import json
import warnings
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from sentiment_ews.common.errors import LexiconError
from sentiment_ews.data.records import Document, documents_from_records, is_missing
from sentiment_ews.features.lexicon import LexiconEntry


DEFAULT_EPI_COLUMNS = {
    'date': 'date',
    'new_cases': 'new_cases',
    'cumulative_hospitalizations': 'cumulative_hospitalizations',
}

DEFAULT_LEXICON_COLUMNS = {
    'word': 'word',
    'score': 'score',
    'affect_category': 'affect_category',
}


def load_documents(path: Union[str, Path]) -> List[Document]:
    """
    Load documents from a CSV or JSON-lines file.

    Args:
        path: File with columns author_id, document_id, timestamp, text,
              popularity_count, coordinates (or lng/lat)

    Returns:
        List of Documents (malformed records skipped)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Document file not found: {path}")

    if path.suffix in ('.jsonl', '.ndjson', '.json'):
        with open(path, 'r', encoding='utf-8') as f:
            records = [json.loads(line) for line in f if line.strip()]
    else:
        df = pd.read_csv(path, dtype={'author_id': str, 'document_id': str})
        records = df.to_dict(orient='records')

    documents = documents_from_records(records)
    print(f"  → {len(documents)}/{len(records)} documents loaded from {path.name}")
    return documents


def compute_new_hospitalizations(cumulative: Union[pd.Series, Sequence[float]]) -> pd.Series:
    """
    First difference of a cumulative hospitalization count.

    With a DatetimeIndex the difference is taken against the previous
    calendar day, so the first record of every contiguous run is NaN.
    Without one, consecutive positions are differenced.

    Example:
        [100, 100, 120, 115] -> [NaN, 0, 20, -5]
    """
    if not isinstance(cumulative, pd.Series):
        cumulative = pd.Series(cumulative, dtype=float)
    cumulative = pd.to_numeric(cumulative, errors='coerce').astype(float)

    if not isinstance(cumulative.index, pd.DatetimeIndex):
        return cumulative.diff()

    cumulative = cumulative.sort_index()
    previous = cumulative.shift(1, freq='D').reindex(cumulative.index)
    return cumulative - previous


def load_epi_records(
    path: Union[str, Path],
    columns: Optional[Dict[str, str]] = None
) -> pd.DataFrame:
    """
    Load epidemiological records for one location.

    Args:
        path: CSV path
        columns: Mapping from canonical names (date, new_cases,
                 cumulative_hospitalizations) to file column names

    Returns:
        DataFrame indexed by date with new_cases,
        cumulative_hospitalizations, new_hospitalizations
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Epi file not found: {path}")
    df = pd.read_csv(path)
    return prepare_epi_frame(df, columns)


def prepare_epi_frame(df: pd.DataFrame, columns: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """Standardize a raw epi table and derive new_hospitalizations."""
    columns = {**DEFAULT_EPI_COLUMNS, **(columns or {})}
    missing = [src for src in columns.values() if src not in df.columns]
    if missing:
        raise ValueError(f"Epi table missing columns: {missing}")

    df = df.rename(columns={v: k for k, v in columns.items()})

    dates = pd.to_datetime(df['date'], errors='coerce')
    n_bad = int(dates.isna().sum())
    if n_bad:
        warnings.warn(f"Dropping {n_bad} epi rows with malformed dates")
    df = df.loc[dates.notna()].copy()
    df['date'] = dates[dates.notna()].dt.normalize()

    if df['date'].duplicated().any():
        warnings.warn("Duplicate epi dates found, keeping the last record per date")
        df = df.drop_duplicates(subset='date', keep='last')

    df = df.set_index('date').sort_index()
    df['new_cases'] = pd.to_numeric(df['new_cases'], errors='coerce')
    df['cumulative_hospitalizations'] = pd.to_numeric(
        df['cumulative_hospitalizations'], errors='coerce'
    )
    df['new_hospitalizations'] = compute_new_hospitalizations(df['cumulative_hospitalizations'])

    return df[['new_cases', 'cumulative_hospitalizations', 'new_hospitalizations']]


def load_lexicon(
    path: Union[str, Path],
    columns: Optional[Dict[str, str]] = None
) -> List[LexiconEntry]:
    """
    Load the positivity lexicon (CSV, or TSV when the suffix is .tsv/.txt).

    Raises:
        LexiconError: file missing, required columns absent, or no usable rows
    """
    path = Path(path)
    columns = {**DEFAULT_LEXICON_COLUMNS, **(columns or {})}

    if not path.exists():
        raise LexiconError(f"Lexicon file not found: {path}")

    sep = '\t' if path.suffix in ('.tsv', '.txt') else ','
    try:
        df = pd.read_csv(path, sep=sep)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise LexiconError(f"Could not read lexicon {path}: {exc}") from exc

    for key in ('word', 'score'):
        if columns[key] not in df.columns:
            raise LexiconError(f"Lexicon {path} has no '{columns[key]}' column")

    words = df[columns['word']].astype(str).str.strip().str.lower()
    scores = pd.to_numeric(df[columns['score']], errors='coerce')
    categories = (
        df[columns['affect_category']]
        if columns['affect_category'] in df.columns
        else pd.Series([None] * len(df), index=df.index)
    )

    entries = [
        LexiconEntry(word=w, positivity_score=float(s), affect_category=None if is_missing(c) else str(c))
        for w, s, c in zip(words, scores, categories)
        if w and not np.isnan(s)
    ]
    if not entries:
        raise LexiconError(f"Lexicon {path} has no usable entries")

    return entries
