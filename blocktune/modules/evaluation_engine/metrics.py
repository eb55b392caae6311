import numpy as np
import pandas as pd
from typing import Any, Dict

from blocktune.utils import constants
from blocktune.utils.blocks import is_categorical, label_array

CLASSIFICATION = "classification"
REGRESSION = "regression"


def _r2_like(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """1 - SS_res / SS_tot over pairs where neither value is missing."""
    mask = ~(np.isnan(y_true) | np.isnan(y_pred))
    t = y_true[mask]
    p = y_pred[mask]
    if t.size == 0:
        return float('-inf')

    ss_res = np.sum((t - p) ** 2)
    ss_tot = np.sum((t - np.mean(t)) ** 2)
    with np.errstate(divide='ignore', invalid='ignore'):
        q2 = 1.0 - np.float64(ss_res) / np.float64(ss_tot)

    if not np.isfinite(q2):
        return float('-inf')
    return float(q2)


def _agreement(y_true: Any, y_pred: Any) -> np.ndarray:
    t = label_array(y_true)
    p = label_array(y_pred)
    missing = pd.isna(t) | pd.isna(p)
    agreement = np.zeros(t.shape, dtype=float)
    agreement[~missing] = t[~missing] == p[~missing]
    agreement[missing] = np.nan
    return agreement


def q2_score(y_true: Any, y_pred: Any) -> float:
    """
    Compute the Q2 score (predictive R-squared).

    For continuous outcomes: ``1 - SS_res / SS_tot`` with missing values
    dropped pairwise. A perfect prediction gives exactly 1; predicting the
    mean everywhere gives 0.

    For categorical outcomes the agreement indicator (1 where the predicted
    label matches, 0 otherwise) is used as both the observed and the
    predicted series. This is an experimental adaptation: it carries little
    information (1 when labels are mixed-correct, undefined otherwise) and
    should not be read as a predictive R-squared for classifiers.

    Non-finite results (e.g. constant ``y_true``) return ``-inf``.
    """
    if is_categorical(y_true):
        agreement = _agreement(y_true, y_pred)
        return _r2_like(agreement, agreement.copy())

    t = np.asarray(y_true, dtype=float).ravel()
    p = np.asarray(y_pred, dtype=float).ravel()
    return _r2_like(t, p)


def classification_metrics(y_true: Any, y_pred: Any) -> Dict[str, float]:
    """Error rate and accuracy, ignoring pairs with a missing label."""
    agreement = _agreement(y_true, y_pred)
    valid = agreement[~np.isnan(agreement)]
    error_rate = float(1.0 - valid.mean()) if valid.size else float('nan')
    return {
        constants.ERROR_RATE: error_rate,
        constants.ACCURACY: 1.0 - error_rate,
    }


def regression_metrics(y_true: Any, y_pred: Any) -> Dict[str, float]:
    """Mean squared error and its root, ignoring missing pairs."""
    t = np.asarray(y_true, dtype=float).ravel()
    p = np.asarray(y_pred, dtype=float).ravel()
    sq = (t - p) ** 2
    sq = sq[~np.isnan(sq)]
    mse = float(np.mean(sq)) if sq.size else float('nan')
    return {
        constants.MSE: mse,
        constants.RMSE: float(np.sqrt(mse)),
    }


def penalty_metrics(task: str = CLASSIFICATION) -> Dict[str, float]:
    """Worst possible metric values, recorded for a fold that failed to fit or predict."""
    if task == REGRESSION:
        return {
            constants.MSE: float('inf'),
            constants.RMSE: float('inf'),
            constants.Q2_SCORE: float('-inf'),
        }
    return {
        constants.ERROR_RATE: 1.0,
        constants.ACCURACY: 0.0,
        constants.Q2_SCORE: float('-inf'),
    }
