"""Evaluation module - out-of-sample forecast metrics."""

from sentiment_ews.evaluation.metrics import (
    align_forecast,
    evaluate_forecast,
    print_metrics
)

__all__ = [
    'align_forecast',
    'evaluate_forecast',
    'print_metrics'
]
