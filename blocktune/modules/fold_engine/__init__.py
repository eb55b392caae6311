"""
Fold Engine
===========

Responsibility:
- Partition sample indices into K cross-validation folds.
- Stratified (per-class round-robin) and plain shuffled-chunk sampling.
- Deterministic output for a fixed seed.
"""

from .fold_engine import FoldEngine, FoldAssignment, build_folds, validate_fold_count

__all__ = ['FoldEngine', 'FoldAssignment', 'build_folds', 'validate_fold_count']
