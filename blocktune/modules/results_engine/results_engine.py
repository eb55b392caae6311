import logging
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from blocktune.modules.base.base_engine import BaseEngine
from blocktune.modules.cv_engine import AggregatedMetric
from blocktune.modules.model_factory import ModelKind
from blocktune.modules.parameter_search import ParameterCombination
from blocktune.utils import constants
from blocktune.utils.exceptions import DataValidationError


@dataclass
class ResultRecord:
    """Outcome of cross-validating one parameter combination."""
    combination: ParameterCombination
    aggregated: Dict[str, AggregatedMetric]
    n_folds: int
    failed_folds: Tuple[int, ...] = ()

    def as_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = dict(self.combination.as_row())
        for name, agg in self.aggregated.items():
            row[f"{name}{constants.MEAN_SUFFIX}"] = agg.mean
            row[f"{name}{constants.SD_SUFFIX}"] = np.nan if agg.sd is None else agg.sd
        row[constants.FAILED_FOLDS_COLUMN] = len(self.failed_folds)
        return row


@dataclass
class BestConfiguration:
    ncomp: int
    keep_x: Dict[str, int]
    metrics: Dict[str, float] = field(default_factory=dict)
    row_index: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            'ncomp': self.ncomp,
            'keepX': dict(self.keep_x),
            'metrics': dict(self.metrics),
            'row_index': self.row_index,
        }


def _metric_names(records: Sequence[ResultRecord]) -> List[str]:
    names: List[str] = []
    for record in records:
        for name in record.aggregated:
            if name not in names:
                names.append(name)
    return names


def build_results_table(records: Sequence[ResultRecord],
                        block_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    One row per evaluated combination, in evaluation order.

    Columns: ``ncomp``, ``keepX_<block>``..., then ``<metric>_mean`` and
    ``<metric>_sd`` for every metric seen in any record, then ``failed_folds``.
    Undefined standard deviations appear as NaN.
    """
    if block_names is None:
        block_names = list(records[0].combination.keep_x.keys()) if records else []

    columns = [constants.NCOMP_COLUMN] + [f"{constants.KEEPX_PREFIX}{b}" for b in block_names]
    for name in _metric_names(records):
        columns += [f"{name}{constants.MEAN_SUFFIX}", f"{name}{constants.SD_SUFFIX}"]
    columns.append(constants.FAILED_FOLDS_COLUMN)

    table = pd.DataFrame([r.as_row() for r in records], columns=columns)
    int_columns = columns[:len(block_names) + 1] + [constants.FAILED_FOLDS_COLUMN]
    if not table.empty:
        table[int_columns] = table[int_columns].astype('int64')
    return table


def select_best(result_table: pd.DataFrame, method: Any,
                logger: Optional[logging.Logger] = None) -> BestConfiguration:
    """
    Pick the best row of a result table.

    Classification kinds minimise ``error_rate_mean``; regression kinds
    maximise ``q2_score_mean``. Ties go to the first row in table order and
    NaN values never win.

    Raises:
        DataValidationError: If the table is empty or lacks the criterion column.
    """
    logger = logger or logging.getLogger(__name__)
    kind = ModelKind.from_name(method)

    if result_table is None or result_table.empty:
        raise DataValidationError("Result table is empty; no parameter combination was evaluated")

    criterion = f"{kind.primary_metric}{constants.MEAN_SUFFIX}"
    if criterion not in result_table.columns:
        raise DataValidationError(
            f"Result table has no '{criterion}' column required to rank '{kind.value}' results"
        )

    values = pd.to_numeric(result_table[criterion], errors='coerce').to_numpy(dtype=float)
    if np.isnan(values).all():
        logger.warning(f"All values of '{criterion}' are NaN; selecting the first row.")
        position = 0
    elif kind.maximize:
        position = int(np.nanargmax(values))
    else:
        position = int(np.nanargmin(values))

    row = result_table.iloc[position]
    keep_x = {
        col[len(constants.KEEPX_PREFIX):]: int(row[col])
        for col in result_table.columns if col.startswith(constants.KEEPX_PREFIX)
    }
    metrics = {
        col: float(row[col])
        for col in result_table.columns if col.endswith(constants.MEAN_SUFFIX)
    }
    return BestConfiguration(
        ncomp=int(row[constants.NCOMP_COLUMN]),
        keep_x=keep_x,
        metrics=metrics,
        row_index=position,
    )


class ResultsEngine(BaseEngine):
    """Collects result records into the result table and selects the best row."""

    def _get_engine_directory_name(self) -> str:
        return constants.TUNING_RESULTS_DIR

    def execute(self, records: Sequence[ResultRecord], method: Any,
                block_names: Optional[Sequence[str]] = None) -> Tuple[pd.DataFrame, Optional[BestConfiguration]]:
        table = build_results_table(records, block_names)
        if table.empty:
            self.logger.warning("No parameter combination was evaluated; no best configuration.")
            return table, None

        best = select_best(table, method, logger=self.logger)
        criterion = f"{ModelKind.from_name(method).primary_metric}{constants.MEAN_SUFFIX}"
        self.logger.info(
            f"Best configuration: ncomp={best.ncomp}, keepX={best.keep_x} "
            f"({criterion}={best.metrics.get(criterion, float('nan')):.4f})"
        )
        return table, best
