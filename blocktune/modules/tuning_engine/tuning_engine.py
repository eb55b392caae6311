import contextlib
import logging
import time
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd
from joblib import Parallel, delayed, effective_n_jobs

from blocktune.modules.base.base_engine import BaseEngine
from blocktune.modules.cv_engine import CVResult, run_cv
from blocktune.modules.evaluation_engine import penalty_metrics, q2_score
from blocktune.modules.fold_engine import FoldAssignment, FoldEngine
from blocktune.modules.model_factory import ModelAdapter, ModelFactory, ModelKind
from blocktune.modules.parameter_search import ParameterCombination, ParameterSearchEngine
from blocktune.modules.results_engine import BestConfiguration, ResultRecord, ResultsEngine
from blocktune.modules.tuning_engine.validation import validate_inputs
from blocktune.utils import constants
from blocktune.utils.diagnostics import Diagnostic
from blocktune.utils.error_handling import handle_engine_errors
from blocktune.utils.exceptions import ConfigurationError


class TuningState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    GENERATING_COMBINATIONS = "generating_combinations"
    EVALUATING = "evaluating"
    AGGREGATING = "aggregating"
    DONE = "done"


class TuneStatus(str, Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class CVSettings:
    """Cross-validation settings actually used by a tuning run."""
    nfolds: int
    requested_nfolds: int
    stratified: bool
    seed: Optional[int]
    n_jobs: int = 1
    max_seconds: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            'nfolds': self.nfolds,
            'requested_nfolds': self.requested_nfolds,
            'stratified': self.stratified,
            'seed': self.seed,
            'n_jobs': self.n_jobs,
            'max_seconds': self.max_seconds,
        }


@dataclass
class TuneResult:
    result_table: pd.DataFrame
    best_config: Optional[BestConfiguration]
    method: str
    search_type: str
    cv_settings: CVSettings
    status: TuneStatus = TuneStatus.COMPLETE
    diagnostics: List[Diagnostic] = field(default_factory=list)
    cv_results: List[CVResult] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.status is TuneStatus.COMPLETE


def generate_seed() -> int:
    """Fresh master seed drawn from OS entropy."""
    return int(np.random.SeedSequence().generate_state(1)[0])


def _evaluate_with_q2(evaluate, y_true, y_pred) -> Dict[str, float]:
    metrics = dict(evaluate(y_true, y_pred))
    metrics[constants.Q2_SCORE] = q2_score(y_true, y_pred)
    return metrics


def evaluate_combination(blocks: Mapping[str, Any], outcome: Any, folds: FoldAssignment,
                         combination: ParameterCombination, adapter: ModelAdapter,
                         penalty: Mapping[str, float], logger: Optional[logging.Logger] = None,
                         **model_options) -> CVResult:
    """Cross-validate one parameter combination over the shared folds."""
    fit_fn = partial(adapter.fit, ncomp=combination.ncomp, keep_x=dict(combination.keep_x), **model_options)
    eval_fn = partial(_evaluate_with_q2, adapter.evaluate)
    return run_cv(blocks, outcome, folds, fit_fn, adapter.predict, eval_fn,
                  penalty=penalty, logger=logger)


class TuningEngine(BaseEngine):
    """
    Cross-validated search over ncomp and per-block keepX for block
    sPLS / sPLS-DA models.

    The fold assignment is built once and shared by every combination; each
    combination's result lands in its own slot, so combinations can be
    evaluated in any order or in parallel.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, logger: Optional[logging.Logger] = None):
        super().__init__(config, logger)
        self.state = TuningState.IDLE
        self.model_config = self.config.get('model', {})
        self.search_config = self.config.get('search', {})
        self.cv_config = self.config.get('cv', {})
        self.execution_config = self.config.get('execution', {})
        self.max_combinations = self.config.get('resources', {}).get(
            'max_combinations', constants.DEFAULT_MAX_COMBINATIONS
        )

    def _get_engine_directory_name(self) -> str:
        return constants.TUNING_RESULTS_DIR

    def _set_state(self, state: TuningState) -> None:
        self.logger.debug(f"Tuning state: {self.state.name} -> {state.name}")
        self.state = state

    def _resolve_seeds(self) -> Dict[str, Optional[int]]:
        seeds = self.config.get('_internal_seeds')
        if seeds:
            return {'master': self.cv_config.get('seed'), 'folds': seeds['folds'], 'search': seeds['search']}

        master = self.cv_config.get('seed')
        if master is None:
            master = generate_seed()
            self.logger.info(f"No seed provided; generated seed {master}.")
        return {
            'master': master,
            'folds': master + constants.FOLDS_SEED_OFFSET,
            'search': master + constants.SEARCH_SEED_OFFSET,
        }

    @handle_engine_errors("Tuning")
    def execute(self, blocks: Mapping[str, Any], outcome: Any, ncomp: Sequence[int],
                test_keep_x: Mapping[str, Sequence[int]],
                adapter: Optional[ModelAdapter] = None) -> TuneResult:
        """
        Run the full tuning workflow.

        Args:
            blocks: Mapping of block name to 2D table; rows aligned across blocks.
            outcome: Outcome vector, categorical for ``block.splsda`` and
                numeric for ``block.spls``.
            ncomp: Candidate component counts.
            test_keep_x: Candidate keepX values per block.
            adapter: Optional fit/predict/evaluate binding replacing the
                built-in estimators for the configured method.

        Returns:
            TuneResult with the result table, best configuration and diagnostics.

        Raises:
            DataValidationError: On invalid inputs, before any fold is built.
            ConfigurationError: If the search would exceed ``resources.max_combinations``.
        """
        self.state = TuningState.IDLE
        self.diagnostics.records.clear()

        # 1. Validate
        self._set_state(TuningState.VALIDATING)
        kind = ModelKind.from_name(self.model_config.get('method', ModelKind.BLOCK_SPLSDA.value))
        search_type = self.search_config.get('type', constants.SEARCH_GRID)
        n_random = self.search_config.get('n_random', constants.DEFAULT_N_RANDOM)
        validated = validate_inputs(
            blocks, outcome, ncomp, test_keep_x, kind,
            search_type, n_random, self.cv_config.get('nfolds', constants.DEFAULT_NFOLDS),
        )
        seeds = self._resolve_seeds()
        self.logger.info(
            f"Tuning {kind.value}: {len(blocks)} block(s) {validated['feature_counts']}, "
            f"{validated['nfolds']}-fold CV, {search_type} search."
        )

        # 2. Combinations
        self._set_state(TuningState.GENERATING_COMBINATIONS)
        combinations = ParameterSearchEngine(self.config, self.logger).execute(
            validated['ncomp'], validated['test_keep_x'],
            search_type=search_type, n_random=n_random, seed=seeds['search'],
        )
        if len(combinations) > self.max_combinations:
            raise ConfigurationError(
                f"Grid Explosion Detected! Total combinations ({len(combinations)}) exceeds "
                f"safety limit ({self.max_combinations}). Reduce the candidate lists or "
                f"increase 'resources.max_combinations'."
            )

        fold_engine = FoldEngine(self.config, self.logger)
        folds = fold_engine.execute(
            outcome, k=validated['nfolds'],
            stratified=self.cv_config.get('stratified', True), seed=seeds['folds'],
        )
        self.diagnostics.extend(fold_engine.diagnostics)

        # 3. Evaluate
        self._set_state(TuningState.EVALUATING)
        if adapter is None:
            adapter = ModelFactory.adapter(kind)
        penalty = dict(adapter.penalty) if adapter.penalty else penalty_metrics(kind.task)
        slots = self._evaluate_all(blocks, outcome, folds, combinations, adapter, penalty)

        # 4. Aggregate
        self._set_state(TuningState.AGGREGATING)
        records: List[ResultRecord] = []
        cv_results: List[CVResult] = []
        for combination, cv_result in zip(combinations, slots):
            if cv_result is None:
                continue
            self.diagnostics.extend(cv_result.diagnostics)
            cv_results.append(cv_result)
            records.append(ResultRecord(
                combination=combination,
                aggregated=cv_result.aggregated,
                n_folds=cv_result.n_folds,
                failed_folds=cv_result.failed_folds,
            ))

        results_engine = ResultsEngine(self.config, self.logger)
        table, best = results_engine.execute(records, kind, block_names=list(validated['test_keep_x']))

        status = TuneStatus.COMPLETE if len(records) == len(combinations) else TuneStatus.INCOMPLETE
        self._set_state(TuningState.DONE)
        self.logger.info(
            f"Tuning finished ({status.value}): {len(records)}/{len(combinations)} combinations evaluated."
        )

        return TuneResult(
            result_table=table,
            best_config=best,
            method=kind.value,
            search_type=search_type,
            cv_settings=CVSettings(
                nfolds=folds.n_folds,
                requested_nfolds=validated['nfolds'],
                stratified=folds.stratified,
                seed=seeds['master'],
                n_jobs=self.execution_config.get('n_jobs', 1),
                max_seconds=self.execution_config.get('max_seconds'),
            ),
            status=status,
            diagnostics=list(self.diagnostics.records),
            cv_results=cv_results,
        )

    def _evaluate_all(self, blocks: Mapping[str, Any], outcome: Any, folds: FoldAssignment,
                      combinations: Sequence[ParameterCombination], adapter: ModelAdapter,
                      penalty: Mapping[str, float]) -> List[Optional[CVResult]]:
        """
        Evaluate combinations into a pre-sized slot list.

        The deadline is checked before each batch; slots of combinations that
        were never started stay ``None``.
        """
        n_jobs = self.execution_config.get('n_jobs', 1)
        backend = self.execution_config.get('backend')
        max_seconds = self.execution_config.get('max_seconds')
        model_options = self.model_config.get('options', {})

        total = len(combinations)
        slots: List[Optional[CVResult]] = [None] * total
        batch_size = 1 if n_jobs == 1 else max(1, effective_n_jobs(n_jobs))
        start = time.monotonic()
        done = 0

        def run_batch(parallel, batch):
            if parallel is None:
                return [
                    evaluate_combination(blocks, outcome, folds, combinations[i], adapter, penalty,
                                         logger=self.logger, **model_options)
                    for i in batch
                ]
            return parallel(
                delayed(evaluate_combination)(blocks, outcome, folds, combinations[i], adapter, penalty,
                                              logger=self.logger, **model_options)
                for i in batch
            )

        pool = Parallel(n_jobs=n_jobs, backend=backend) if batch_size > 1 else contextlib.nullcontext()
        with pool as parallel:
            while done < total:
                if max_seconds is not None and time.monotonic() - start > max_seconds:
                    self.diagnostics.warn(
                        constants.DEADLINE_EXCEEDED,
                        f"Deadline of {max_seconds}s exceeded after {done}/{total} combinations; "
                        f"remaining combinations were not evaluated.",
                        evaluated=done, total=total,
                    )
                    break

                batch = range(done, min(done + batch_size, total))
                for i, cv_result in zip(batch, run_batch(parallel, batch)):
                    slots[i] = cv_result

                previous, done = done, batch.stop
                if done // constants.PROGRESS_LOG_EVERY > previous // constants.PROGRESS_LOG_EVERY:
                    self.logger.info(f"Processed {done}/{total} combinations...")

        return slots


def tune(blocks: Mapping[str, Any], outcome: Any, ncomp: Sequence[int],
         test_keep_x: Mapping[str, Sequence[int]], method: str = ModelKind.BLOCK_SPLSDA.value,
         search_type: str = constants.SEARCH_GRID, n_random: int = constants.DEFAULT_N_RANDOM,
         nfolds: int = constants.DEFAULT_NFOLDS, stratified: bool = True, seed: Optional[int] = None,
         n_jobs: int = 1, max_seconds: Optional[float] = None, adapter: Optional[ModelAdapter] = None,
         logger: Optional[logging.Logger] = None, backend: Optional[str] = None,
         max_combinations: int = constants.DEFAULT_MAX_COMBINATIONS, **model_options) -> TuneResult:
    """
    Tune ``ncomp`` and per-block ``keepX`` by cross-validation.

    Builds the configuration dictionary a ``TuningEngine`` expects from
    keyword arguments, so programmatic callers do not need a config file.
    Extra keyword arguments are passed to the model's fit function.

    Example:
        >>> result = tune({'mrna': X1, 'protein': X2}, y, ncomp=[1, 2],
        ...               test_keep_x={'mrna': [5, 10], 'protein': [3, 6]}, seed=42)
        >>> result.best_config.keep_x
    """
    config = {
        'model': {'method': ModelKind.from_name(method).value, 'options': model_options},
        'search': {'type': search_type, 'n_random': n_random},
        'cv': {'nfolds': nfolds, 'stratified': stratified, 'seed': seed},
        'execution': {'n_jobs': n_jobs, 'backend': backend, 'max_seconds': max_seconds},
        'resources': {'max_combinations': max_combinations},
    }
    engine = TuningEngine(config, logger or logging.getLogger('blocktune.tuning'))
    return engine.execute(blocks, outcome, ncomp, test_keep_x, adapter=adapter)
