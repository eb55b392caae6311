import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, List

from blocktune.modules.base.base_engine import BaseEngine
from blocktune.modules.tuning_engine import TuneResult
from blocktune.utils import constants
from blocktune.utils.file_io import save_dataframe, save_json


def _format_keep_x(keep_x: Dict[str, int]) -> str:
    return ", ".join(f"{block}={keep}" for block, keep in keep_x.items())


def _format_value(value: float) -> str:
    return f"{value:.4f}" if np.isfinite(value) else str(value)


def format_result(result: TuneResult) -> str:
    """Short, human-readable description of a tuning result."""
    cv = result.cv_settings
    lines = [
        f"Tuning result for {result.method}",
        f"  Search type: {result.search_type}",
        f"  Cross-validation: {cv.nfolds} folds ({'stratified' if cv.stratified else 'random'}), seed {cv.seed}",
        f"  Combinations evaluated: {len(result.result_table)}",
        f"  Status: {result.status.value}",
    ]

    best = result.best_config
    if best is None:
        lines.append("  Best configuration: none")
        return "\n".join(lines)

    lines += [
        "  Best configuration:",
        f"    ncomp: {best.ncomp}",
        f"    keepX: {_format_keep_x(best.keep_x)}",
        "  Best metric means:",
    ]
    lines += [f"    {name}: {_format_value(value)}" for name, value in best.metrics.items()]
    return "\n".join(lines)


def format_summary(result: TuneResult) -> str:
    """
    Detailed summary: the result description plus the explored parameter
    ranges and the mean +/- sd of every metric across combinations.
    """
    lines: List[str] = [format_result(result)]
    table = result.result_table
    if table.empty:
        return "\n".join(lines)

    param_columns = [constants.NCOMP_COLUMN] + [
        col for col in table.columns if col.startswith(constants.KEEPX_PREFIX)
    ]
    lines.append("Parameter ranges:")
    for col in param_columns:
        lines.append(f"  {col}: {table[col].min()} - {table[col].max()}")

    lines.append("Metric means across combinations (mean +/- sd):")
    for col in table.columns:
        if not col.endswith(constants.MEAN_SUFFIX):
            continue
        values = pd.to_numeric(table[col], errors='coerce')
        with np.errstate(invalid='ignore'):
            mean = float(values.mean())
            sd = float(values.std(ddof=1)) if len(values) > 1 else float('nan')
        lines.append(f"  {col}: {_format_value(mean)} +/- {_format_value(sd)}")

    n_failed = int((table[constants.FAILED_FOLDS_COLUMN] > 0).sum())
    if n_failed:
        lines.append(f"Combinations with failed folds: {n_failed}")
    if result.diagnostics:
        lines.append(f"Diagnostics: {len(result.diagnostics)} (codes: {sorted({d.code for d in result.diagnostics})})")
    return "\n".join(lines)


class ReportingEngine(BaseEngine):
    """
    Text summaries and on-disk artifacts for a tuning result.
    """

    def _get_engine_directory_name(self) -> str:
        return constants.TUNING_RESULTS_DIR

    def format_result(self, result: TuneResult) -> str:
        return format_result(result)

    def format_summary(self, result: TuneResult) -> str:
        return format_summary(result)

    def execute(self, result: TuneResult, run_id: str) -> Dict[str, Path]:
        """
        Save the result table, best configuration and diagnostics.

        Returns:
            Mapping of artifact name to the written path.
        """
        self.logger.info("Starting Report Generation Phase...")
        output_dir = self._setup_directories() / run_id
        excel_copy = self.config.get('outputs', {}).get('save_excel_copy', False)

        paths = {
            'results_table': save_dataframe(
                result.result_table, output_dir / constants.RESULTS_TABLE_FILE, excel_copy=excel_copy
            ),
            'best_configuration': save_json(
                {
                    'run_id': run_id,
                    'method': result.method,
                    'search_type': result.search_type,
                    'status': result.status.value,
                    'cv_settings': result.cv_settings.as_dict(),
                    'best': result.best_config.as_dict() if result.best_config else None,
                },
                output_dir / constants.BEST_CONFIGURATION_FILE,
            ),
            'diagnostics': save_json(
                [d.as_dict() for d in result.diagnostics],
                output_dir / constants.DIAGNOSTICS_FILE,
            ),
        }
        self.logger.info(f"Reports saved to {output_dir}")
        return paths
