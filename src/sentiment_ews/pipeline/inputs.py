"""
Input resolution for command-line runs.

Data paths in the config may hold a `{location}` placeholder, filled with a
slug of the location name, so each location can have its own files:

    data:
      documents: data/raw/{location}/documents.csv
"""
import re
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pandas as pd

from sentiment_ews.common.errors import ConfigError
from sentiment_ews.config import get_data_path
from sentiment_ews.data.loader import load_documents, load_epi_records, load_lexicon
from sentiment_ews.data.records import Document
from sentiment_ews.features.lexicon import Lexicon


def location_slug(location_name: str) -> str:
    """'New York City' -> 'new_york_city'"""
    return re.sub(r'[^a-z0-9]+', '_', location_name.lower()).strip('_')


def resolve_path(cfg: Dict[str, Any], key: str, location_name: str = '') -> Path:
    data = cfg.get('data') or {}
    if key not in data:
        raise ConfigError(f"Missing required config key: data.{key}")
    return get_data_path(str(data[key]).format(location=location_slug(location_name)))


def load_shared_lexicon(cfg: Dict[str, Any]) -> Lexicon:
    path = resolve_path(cfg, 'lexicon')
    print(f"\nLoading lexicon from {path}...")
    lexicon = Lexicon(load_lexicon(path, cfg.get('lexicon_columns')))
    print(f"  → {len(lexicon)} entries")
    return lexicon


def load_location_inputs(cfg: Dict[str, Any], location_name: str) -> Tuple[List[Document], pd.DataFrame]:
    """Documents and epi frame for one location."""
    documents_path = resolve_path(cfg, 'documents', location_name)
    epi_path = resolve_path(cfg, 'epi', location_name)

    print(f"\nLoading inputs for {location_name}...")
    documents = load_documents(documents_path)
    epi = load_epi_records(epi_path, cfg.get('epi_columns'))
    print(f"  → {len(epi)} epi days ({epi.index.min().date()} to {epi.index.max().date()})"
          if len(epi) else "  → 0 epi days")
    return documents, epi


def output_dir_for(cfg: Dict[str, Any], location_name: str) -> Path:
    base = (cfg.get('data') or {}).get('output_dir', 'results')
    return get_data_path(base) / location_slug(location_name)
