import logging
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from blocktune.modules.base.base_engine import BaseEngine
from blocktune.modules.fold_engine import FoldAssignment
from blocktune.utils import constants
from blocktune.utils.blocks import n_rows, take_rows
from blocktune.utils.diagnostics import Diagnostic, DiagnosticsCollector
from blocktune.utils.exceptions import DataValidationError, PredictionError

DEFAULT_PENALTY = {constants.ERROR_RATE: 1.0, constants.Q2_SCORE: float('-inf')}


@dataclass(frozen=True)
class AggregatedMetric:
    """Mean, sample standard deviation and raw per-fold values of one metric.

    ``sd`` is None when fewer than two folds contributed.
    """
    mean: float
    sd: Optional[float]
    values: Tuple[float, ...]


@dataclass
class CVResult:
    fold_metrics: List[Dict[str, float]]
    aggregated: Dict[str, AggregatedMetric]
    n_folds: int
    failed_folds: Tuple[int, ...] = ()
    stratified: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def mean_metrics(self) -> Dict[str, float]:
        return {name: agg.mean for name, agg in self.aggregated.items()}


def aggregate_cv_results(fold_metrics: List[Mapping[str, float]],
                         diagnostics: Optional[DiagnosticsCollector] = None) -> Dict[str, AggregatedMetric]:
    """
    Compute mean and standard deviation across CV folds for each metric.

    Metric names are the union over folds in first-seen order; a fold that
    lacks a metric contributes NaN, which the mean ignores.
    """
    if not fold_metrics:
        return {}

    names: List[str] = []
    for metrics in fold_metrics:
        for name in metrics:
            if name not in names:
                names.append(name)

    aggregated = {}
    for name in names:
        values = pd.Series([m.get(name, np.nan) for m in fold_metrics], dtype=float)
        finite_count = int(values.notna().sum())
        with np.errstate(invalid='ignore'):
            mean = float(values.mean(skipna=True)) if finite_count else float('nan')
            sd = float(values.std(ddof=1, skipna=True)) if finite_count > 1 else None

        if sd is None and diagnostics is not None:
            diagnostics.info(
                constants.SD_NOT_AVAILABLE,
                f"Standard deviation of '{name}' not available with {finite_count} fold value(s).",
                metric=name,
            )
        aggregated[name] = AggregatedMetric(mean=mean, sd=sd, values=tuple(values.tolist()))
    return aggregated


def _check_prediction_length(predictions: Any, expected: int, fold_idx: int) -> None:
    got = n_rows(predictions)
    if got != expected:
        raise PredictionError(
            f"Fold {fold_idx + 1}: predictions have {got} rows, expected {expected}"
        )


def run_cv(data: Any, outcome: Any, folds: FoldAssignment,
           fit_fn: Callable, predict_fn: Callable, eval_fn: Callable,
           penalty: Optional[Mapping[str, float]] = None,
           logger: Optional[logging.Logger] = None, **fit_params) -> CVResult:
    """
    Execute cross-validation over a precomputed fold assignment.

    Args:
        data: Block set (mapping of name to 2D table) or a single 2D matrix.
        outcome: Outcome vector aligned with the rows of ``data``.
        folds: Fold assignment; each fold is the test set once.
        fit_fn: ``fit_fn(train_data, train_outcome, **fit_params) -> model``.
        predict_fn: ``predict_fn(model, test_data) -> predictions``.
        eval_fn: ``eval_fn(test_outcome, predictions) -> {metric: value}``.
        penalty: Metric set recorded for a fold whose fit, predict or
            evaluation raised.
        logger: Receives per-fold warnings.

    Returns:
        CVResult with per-fold and aggregated metrics.
    """
    diagnostics = DiagnosticsCollector(logger or logging.getLogger(__name__))
    penalty = dict(DEFAULT_PENALTY if penalty is None else penalty)

    if n_rows(outcome) != folds.n_samples:
        raise DataValidationError("Number of rows in X must match length of Y")

    fold_metrics: List[Dict[str, float]] = []
    failed: List[int] = []

    for i, (train_idx, test_idx) in enumerate(folds.split()):
        x_train = take_rows(data, train_idx)
        x_test = take_rows(data, test_idx)
        y_train = take_rows(outcome, train_idx)
        y_test = take_rows(outcome, test_idx)

        try:
            model = fit_fn(x_train, y_train, **fit_params)
            y_pred = predict_fn(model, x_test)
            _check_prediction_length(y_pred, len(test_idx), i)
            metrics = dict(eval_fn(y_test, y_pred))
        except Exception as e:
            diagnostics.warn(
                constants.FOLD_FAILED,
                f"Error in fold {i + 1}: {e}",
                fold=i, error=type(e).__name__,
            )
            metrics = dict(penalty)
            failed.append(i)

        fold_metrics.append(metrics)

    aggregated = aggregate_cv_results(fold_metrics, diagnostics)

    return CVResult(
        fold_metrics=fold_metrics,
        aggregated=aggregated,
        n_folds=folds.n_folds,
        failed_folds=tuple(failed),
        stratified=folds.stratified,
        diagnostics=list(diagnostics.records),
    )


class CrossValidationEngine(BaseEngine):
    """
    Runs cross-validation for one parameter combination.

    Fitting and prediction are delegated to the supplied callables so the
    engine works with any modelling library.
    """

    def _get_engine_directory_name(self) -> str:
        return constants.TUNING_RESULTS_DIR

    def execute(self, data: Any, outcome: Any, folds: FoldAssignment,
                fit_fn: Callable, predict_fn: Callable, eval_fn: Callable,
                penalty: Optional[Mapping[str, float]] = None, **fit_params) -> CVResult:
        result = run_cv(data, outcome, folds, fit_fn, predict_fn, eval_fn,
                        penalty=penalty, logger=self.logger, **fit_params)
        self.diagnostics.extend(result.diagnostics)
        if result.failed_folds:
            self.logger.warning(
                f"{len(result.failed_folds)}/{result.n_folds} folds failed and were penalized."
            )
        return result
