"""
FoldEngine for the blocktune pipeline.

This module builds the fold assignment shared by every parameter combination
of a tuning run. With a categorical outcome it deals each class's shuffled
members round-robin across the folds, so every fold receives a near
proportional share of each class; otherwise it shuffles all indices once and
cuts them into contiguous, near-equal chunks.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from blocktune.modules.base.base_engine import BaseEngine
from blocktune.utils import constants
from blocktune.utils.blocks import class_labels, is_categorical, label_array, n_rows
from blocktune.utils.diagnostics import Diagnostic, DiagnosticsCollector
from blocktune.utils.exceptions import DataValidationError

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]


@dataclass(frozen=True)
class FoldAssignment:
    """
    Disjoint test-index sets covering ``0..n_samples-1`` exactly once.

    ``folds`` only holds non-empty folds, so ``n_folds`` can be smaller than
    ``requested_folds``.
    """
    folds: Tuple[np.ndarray, ...]
    n_samples: int
    requested_folds: int
    stratified: bool
    seed: Any = None
    diagnostics: Tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def n_folds(self) -> int:
        return len(self.folds)

    def split(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        """Yield ``(train_idx, test_idx)`` for each fold."""
        all_idx = np.arange(self.n_samples)
        for test_idx in self.folds:
            train_idx = np.setdiff1d(all_idx, test_idx, assume_unique=True)
            yield train_idx, test_idx

    def to_list(self) -> List[List[int]]:
        return [fold.tolist() for fold in self.folds]

    def __len__(self) -> int:
        return len(self.folds)

    def __iter__(self):
        return iter(self.folds)


def validate_fold_count(k: Any) -> int:
    if isinstance(k, bool) or not isinstance(k, (int, np.integer, float, np.floating)):
        raise DataValidationError("nfolds must be a single integer >= 2")
    if not np.isfinite(k) or int(k) != k or k < 2:
        raise DataValidationError("nfolds must be a single integer >= 2")
    return int(k)


def _stratified_folds(outcome: Any, k: int, rng: np.random.Generator) -> List[List[int]]:
    folds: List[List[int]] = [[] for _ in range(k)]
    labels = label_array(outcome)
    missing_mask = pd.isna(labels)

    for label in class_labels(outcome):
        indices = np.flatnonzero((labels == label) & ~missing_mask)
        indices = rng.permutation(indices)
        # Round-robin: i-th member of the class goes to fold i % k
        for i, idx in enumerate(indices):
            folds[i % k].append(int(idx))

    # Missing labels belong to no class; deal them like one more class.
    missing = np.flatnonzero(missing_mask)
    for i, idx in enumerate(rng.permutation(missing)):
        folds[i % k].append(int(idx))

    return folds


def _random_folds(n: int, k: int, rng: np.random.Generator) -> List[List[int]]:
    indices = rng.permutation(n)
    return [chunk.tolist() for chunk in np.array_split(indices, k)]


def build_folds(outcome: Any, k: int = constants.DEFAULT_NFOLDS, stratified: bool = True,
                seed: SeedLike = None, logger: Optional[logging.Logger] = None) -> FoldAssignment:
    """
    Partition ``len(outcome)`` sample indices into ``k`` folds.

    Args:
        outcome: Outcome vector; categorical outcomes enable stratification.
        k: Requested number of folds (>= 2). Clamped to the sample count.
        stratified: Deal each class round-robin across folds when the outcome
            is categorical. Ignored for continuous outcomes.
        seed: Integer seed, SeedSequence or an existing ``numpy`` Generator.
        logger: Logger receiving warnings; defaults to this module's logger.

    Returns:
        FoldAssignment with sorted, non-empty folds.

    Raises:
        DataValidationError: If ``k`` is not an integer >= 2 or the outcome is empty.
    """
    diagnostics = DiagnosticsCollector(logger or logging.getLogger(__name__))
    k = validate_fold_count(k)

    n = n_rows(outcome)
    if n == 0:
        raise DataValidationError("Y cannot be empty")

    requested = k
    if k > n:
        diagnostics.warn(
            constants.MORE_FOLDS_THAN_SAMPLES,
            f"More folds than samples ({k} > {n}). Setting nfolds to number of samples.",
            requested_folds=k, n_samples=n,
        )
        k = n

    rng = np.random.default_rng(seed)
    use_strata = bool(stratified) and is_categorical(outcome)
    if stratified and not use_strata:
        diagnostics.info(
            constants.STRATIFICATION_DISABLED,
            "Outcome is continuous; using non-stratified folds.",
        )

    raw_folds = _stratified_folds(outcome, k, rng) if use_strata else _random_folds(n, k, rng)

    folds = tuple(np.sort(np.asarray(f, dtype=np.int64)) for f in raw_folds if len(f) > 0)
    dropped = len(raw_folds) - len(folds)
    if dropped:
        diagnostics.warn(
            constants.EMPTY_FOLDS_DROPPED,
            f"{dropped} empty fold(s) dropped; using {len(folds)} folds.",
            dropped=dropped, n_folds=len(folds),
        )

    return FoldAssignment(
        folds=folds,
        n_samples=n,
        requested_folds=requested,
        stratified=use_strata,
        seed=seed if not isinstance(seed, np.random.Generator) else None,
        diagnostics=tuple(diagnostics.records),
    )


class FoldEngine(BaseEngine):
    """
    Builds the cross-validation fold assignment for a tuning run.

    The assignment depends only on the outcome, the fold count, the
    stratification flag and the seed, never on the parameter combination
    being evaluated.
    """

    def _get_engine_directory_name(self) -> str:
        return constants.TUNING_RESULTS_DIR

    def execute(self, outcome: Any, k: Optional[int] = None, stratified: Optional[bool] = None,
                seed: SeedLike = None) -> FoldAssignment:
        cv_config = self.config.get('cv', {})
        k = cv_config.get('nfolds', constants.DEFAULT_NFOLDS) if k is None else k
        stratified = cv_config.get('stratified', True) if stratified is None else stratified
        if seed is None:
            seed = self.config.get('_internal_seeds', {}).get('folds')

        assignment = build_folds(outcome, k, stratified=stratified, seed=seed, logger=self.logger)
        self.diagnostics.extend(assignment.diagnostics)
        sizes = [len(f) for f in assignment.folds]
        self.logger.info(
            f"Built {assignment.n_folds} folds ({'stratified' if assignment.stratified else 'random'}), sizes={sizes}"
        )
        return assignment
