"""Feature construction: text normalization, lexicon scoring, daily series."""
