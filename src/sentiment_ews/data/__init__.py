"""Data sources: documents, epidemiological records, lexicon, bounding boxes."""
