"""
Tuning Engine
=============

Responsibility:
- Validate tuning inputs before any computation.
- Build one shared fold assignment and the parameter combinations.
- Cross-validate every combination (sequentially or in joblib batches) under an optional deadline.
- Assemble the result table, best configuration and diagnostics into a TuneResult.
"""

from .tuning_engine import (
    TuningEngine,
    TuningState,
    TuneStatus,
    TuneResult,
    CVSettings,
    evaluate_combination,
    tune,
)
from .validation import validate_inputs

__all__ = [
    'TuningEngine',
    'TuningState',
    'TuneStatus',
    'TuneResult',
    'CVSettings',
    'evaluate_combination',
    'tune',
    'validate_inputs',
]
