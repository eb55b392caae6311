"""
Cross-Validation Engine
=======================

Responsibility:
- Train/evaluate one parameter combination across a shared fold assignment.
- Row-slice every data block with the same indices (block sets or a single matrix).
- Contain per-fold fit/predict failures with worst-case penalty metrics.
- Aggregate per-fold metrics into mean, sample sd and raw values.
"""

from .cv_engine import (
    CrossValidationEngine,
    CVResult,
    AggregatedMetric,
    aggregate_cv_results,
    run_cv,
)

__all__ = ['CrossValidationEngine', 'CVResult', 'AggregatedMetric', 'aggregate_cv_results', 'run_cv']
