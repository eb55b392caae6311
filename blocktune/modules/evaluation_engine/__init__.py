"""
Evaluation Engine
=================

Responsibility:
- Q2 (predictive R-squared) for continuous and categorical outcomes.
- Classification (error rate, accuracy) and regression (MSE, RMSE) metrics.
- Worst-case penalty metric sets for failed folds.
"""

from .metrics import (
    q2_score,
    classification_metrics,
    regression_metrics,
    penalty_metrics,
    CLASSIFICATION,
    REGRESSION,
)

__all__ = [
    'q2_score',
    'classification_metrics',
    'regression_metrics',
    'penalty_metrics',
    'CLASSIFICATION',
    'REGRESSION',
]
