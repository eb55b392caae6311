"""
Results Engine
==============

Responsibility:
- Collect per-combination result records into the result table.
- Select the best configuration (min error rate or max Q2, first row wins ties).
"""

from .results_engine import (
    ResultsEngine,
    ResultRecord,
    BestConfiguration,
    build_results_table,
    select_best,
)

__all__ = ['ResultsEngine', 'ResultRecord', 'BestConfiguration', 'build_results_table', 'select_best']
