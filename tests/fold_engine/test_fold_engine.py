import pytest
import numpy as np
import pandas as pd
import logging
from unittest.mock import MagicMock

from blocktune.modules.fold_engine import FoldEngine, build_folds
from blocktune.utils import constants
from blocktune.utils.exceptions import DataValidationError


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def three_class_outcome():
    # 50 samples, 20/20/10 split
    return pd.Categorical(['a'] * 20 + ['b'] * 20 + ['c'] * 10)


def _assert_exact_cover(assignment, n):
    all_idx = np.sort(np.concatenate(assignment.folds))
    np.testing.assert_array_equal(all_idx, np.arange(n))


def test_stratified_folds_cover_every_index_once(three_class_outcome, mock_logger):
    folds = build_folds(three_class_outcome, 5, stratified=True, seed=1, logger=mock_logger)

    assert folds.n_folds == 5
    assert folds.stratified
    _assert_exact_cover(folds, 50)


def test_random_folds_cover_every_index_once(mock_logger):
    y = np.arange(23, dtype=float)
    folds = build_folds(y, 4, stratified=False, seed=3, logger=mock_logger)

    _assert_exact_cover(folds, 23)
    assert sorted(len(f) for f in folds.folds) == [5, 6, 6, 6]
    assert not folds.stratified


def test_folds_are_sorted_int_arrays(three_class_outcome):
    folds = build_folds(three_class_outcome, 5, seed=0)
    for fold in folds:
        assert fold.dtype == np.int64
        assert np.all(np.diff(fold) > 0)


def test_same_seed_gives_identical_assignment(three_class_outcome):
    first = build_folds(three_class_outcome, 5, stratified=True, seed=123)
    second = build_folds(three_class_outcome, 5, stratified=True, seed=123)
    assert first.to_list() == second.to_list()

    y = np.linspace(0, 1, 40)
    assert build_folds(y, 4, False, seed=9).to_list() == build_folds(y, 4, False, seed=9).to_list()


def test_stratification_keeps_class_proportions(three_class_outcome):
    labels = np.asarray(three_class_outcome)
    overall = {c: np.mean(labels == c) for c in ['a', 'b', 'c']}

    folds = build_folds(three_class_outcome, 5, stratified=True, seed=42)
    for fold in folds:
        fold_labels = labels[fold]
        for c, proportion in overall.items():
            assert abs(np.mean(fold_labels == c) - proportion) < 0.3


def test_more_folds_than_samples_is_clamped(mock_logger):
    folds = build_folds(['a', 'b'], 5, stratified=True, seed=0, logger=mock_logger)

    assert folds.n_folds <= 2
    assert folds.requested_folds == 5
    assert constants.MORE_FOLDS_THAN_SAMPLES in [d.code for d in folds.diagnostics]
    mock_logger.warning.assert_any_call("More folds than samples (5 > 2). Setting nfolds to number of samples.")
    _assert_exact_cover(folds, 2)


def test_clamped_random_folds_use_one_sample_each():
    folds = build_folds(np.array([1.0, 2.0]), 5, stratified=False, seed=0)
    assert folds.n_folds == 2
    assert sorted(len(f) for f in folds.folds) == [1, 1]


def test_empty_folds_are_dropped(mock_logger):
    # One member per class: every class deals its only sample into fold 0.
    folds = build_folds(['x', 'y', 'z'], 3, stratified=True, seed=0, logger=mock_logger)

    assert folds.n_folds == 1
    assert constants.EMPTY_FOLDS_DROPPED in [d.code for d in folds.diagnostics]
    _assert_exact_cover(folds, 3)


def test_single_class_outcome_still_partitions():
    folds = build_folds(['only'] * 10, 3, stratified=True, seed=5)
    assert folds.n_folds == 3
    _assert_exact_cover(folds, 10)


def test_continuous_outcome_disables_stratification(mock_logger):
    folds = build_folds(np.linspace(0, 1, 12), 3, stratified=True, seed=0, logger=mock_logger)

    assert not folds.stratified
    assert constants.STRATIFICATION_DISABLED in [d.code for d in folds.diagnostics]
    _assert_exact_cover(folds, 12)


def test_missing_labels_are_still_assigned():
    y = pd.Series(['a', 'b', None, 'a', 'b', None, 'a', 'b'], dtype=object)
    folds = build_folds(y, 2, stratified=True, seed=1)
    _assert_exact_cover(folds, 8)


def test_string_dtype_with_pd_na_is_stratified():
    y = pd.Series(['a', 'b', pd.NA, 'a', 'b', 'a'], dtype='string')
    folds = build_folds(y, 2, stratified=True, seed=0)

    assert folds.stratified
    assert folds.n_folds == 2
    _assert_exact_cover(folds, 6)


def test_split_yields_disjoint_train_and_test():
    folds = build_folds(np.arange(10, dtype=float), 5, stratified=False, seed=2)
    for train_idx, test_idx in folds.split():
        assert len(np.intersect1d(train_idx, test_idx)) == 0
        assert len(train_idx) + len(test_idx) == 10


@pytest.mark.parametrize("bad_k", [1, 0, -3, 2.5, "3", True, None])
def test_invalid_fold_count_raises(bad_k):
    with pytest.raises(DataValidationError, match="nfolds"):
        build_folds(['a', 'b', 'a', 'b'], bad_k)


def test_empty_outcome_raises():
    with pytest.raises(DataValidationError, match="Y cannot be empty"):
        build_folds(np.array([]), 3)


def test_fold_engine_reads_config(mock_logger):
    y = np.linspace(0, 1, 20)
    config = {'cv': {'nfolds': 4, 'stratified': False}, '_internal_seeds': {'folds': 7}}

    engine = FoldEngine(config, mock_logger)
    folds = engine.execute(y)

    assert folds.to_list() == build_folds(y, 4, stratified=False, seed=7).to_list()
    assert mock_logger.info.called
