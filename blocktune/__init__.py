"""
blocktune: cross-validated tuning of the number of components and the
per-block number of selected variables for block sPLS / sPLS-DA models.
"""

from blocktune.modules.cv_engine import run_cv, aggregate_cv_results
from blocktune.modules.evaluation_engine import q2_score
from blocktune.modules.fold_engine import build_folds
from blocktune.modules.model_factory import ModelAdapter, ModelFactory, ModelKind
from blocktune.modules.parameter_search import generate_combinations
from blocktune.modules.results_engine import select_best
from blocktune.modules.tuning_engine import TuneResult, TuneStatus, TuningEngine, tune

__version__ = "0.1.0"

__all__ = [
    'tune',
    'TuneResult',
    'TuneStatus',
    'TuningEngine',
    'ModelAdapter',
    'ModelFactory',
    'ModelKind',
    'build_folds',
    'run_cv',
    'aggregate_cv_results',
    'q2_score',
    'generate_combinations',
    'select_best',
]
