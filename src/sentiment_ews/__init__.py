# Sentiment-Driven Healthcare Demand EWS
"""
Sentiment-Driven Healthcare Demand Early Warning System
Forecasts regional hospitalizations and case counts from social-media
positivity during an epidemic.

Project Structure:
    src/sentiment_ews/
    ├── common/      - Shared errors
    ├── data/        - BLOCK 1: Document, epi and lexicon sources; bounding boxes
    ├── features/    - BLOCK 2: Text normalization, lexicon scoring, daily series
    ├── dependency/  - BLOCK 3: Correlation, mutual information, transfer entropy
    ├── models/      - BLOCK 4: Conditional ARIMA forecaster + kriging
    ├── evaluation/  - BLOCK 5: Out-of-sample forecast metrics
    └── pipeline/    - BLOCK 6: Per-location orchestration and report sink
"""

__version__ = "0.1.0"
__author__ = "Sentiment EWS Team"
