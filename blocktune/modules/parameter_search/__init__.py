"""
Parameter Search
================

Responsibility:
- Expand ncomp x per-block keepX candidates into parameter combinations.
- Grid search (full Cartesian product) and random search (capped sampling with replacement).
"""

from .parameter_search import (
    ParameterCombination,
    ParameterSearchEngine,
    generate_combinations,
    combinations_to_frame,
    grid_size,
)

__all__ = [
    'ParameterCombination',
    'ParameterSearchEngine',
    'generate_combinations',
    'combinations_to_frame',
    'grid_size',
]
