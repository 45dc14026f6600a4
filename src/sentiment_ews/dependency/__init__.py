"""Dependency module - correlation, lag search, mutual information, transfer entropy."""

from sentiment_ews.dependency.estimator import (
    DependencyResult,
    estimate_dependency,
    mutual_information_at_lag,
    pearson_correlation,
    search_optimal_lag
)

from sentiment_ews.dependency.kernel import (
    kernel_mutual_information,
    kernel_transfer_entropy
)

__all__ = [
    # Estimator
    'DependencyResult',
    'estimate_dependency',
    'mutual_information_at_lag',
    'pearson_correlation',
    'search_optimal_lag',
    # Kernel estimators
    'kernel_mutual_information',
    'kernel_transfer_entropy'
]
