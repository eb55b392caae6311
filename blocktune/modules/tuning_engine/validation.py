"""
Input validation for tuning runs.

Every check raises ``DataValidationError`` naming the offending argument and
the violated constraint. Nothing here copies or modifies the caller's data.
"""

from typing import Any, Dict, List, Mapping, Sequence

import numpy as np

from blocktune.modules.fold_engine import validate_fold_count
from blocktune.modules.model_factory import ModelKind
from blocktune.utils import constants
from blocktune.utils.blocks import (
    is_block_set, is_categorical, is_continuous, is_positive_int, n_columns, n_rows,
)
from blocktune.utils.exceptions import DataValidationError


def _as_list(values: Any) -> List[Any]:
    if isinstance(values, (str, bytes)) or isinstance(values, Mapping):
        return [values]
    if np.ndim(values) == 0:
        return [values]
    if isinstance(values, np.ndarray):
        return list(values.ravel())
    return list(values)


def validate_blocks(blocks: Any) -> Dict[str, int]:
    """Check the block set and return the feature count of each block, in block order."""
    if not is_block_set(blocks) or len(blocks) == 0:
        raise DataValidationError("X must be a non-empty mapping of block name to data matrix")

    feature_counts: Dict[str, int] = {}
    row_counts = set()
    for name, block in blocks.items():
        if not isinstance(name, str) or not name:
            raise DataValidationError(f"X block names must be non-empty strings, got {name!r}")
        if block is None or np.ndim(block) != 2:
            raise DataValidationError(f"X block '{name}' must be a 2D matrix (samples x features)")
        row_counts.add(n_rows(block))
        feature_counts[name] = n_columns(block)

    if len(row_counts) != 1:
        raise DataValidationError("All blocks in X must have the same number of rows")
    if row_counts.pop() == 0:
        raise DataValidationError("X blocks must contain at least one row")
    return feature_counts


def validate_outcome(outcome: Any, expected_rows: int, kind: ModelKind) -> None:
    if outcome is None:
        raise DataValidationError("Y must be provided")
    if np.ndim(outcome) != 1:
        raise DataValidationError("Y must be a one-dimensional outcome vector")
    if n_rows(outcome) != expected_rows:
        raise DataValidationError("Length of Y must match number of rows in X blocks")

    if kind.is_classification and not is_categorical(outcome):
        raise DataValidationError(f"Y must be categorical for method '{kind.value}'")
    if not kind.is_classification and not is_continuous(outcome):
        raise DataValidationError(f"Y must be numeric for method '{kind.value}'")


def validate_ncomp(ncomp: Any) -> List[int]:
    values = _as_list(ncomp)
    if not values or not all(is_positive_int(v) for v in values):
        raise DataValidationError("ncomp must be a non-empty list of positive finite integers")
    return [int(v) for v in values]


def validate_keep_x(test_keep_x: Any, feature_counts: Mapping[str, int]) -> Dict[str, List[int]]:
    """
    Check the per-block keep candidates and return them in block order.
    """
    if not isinstance(test_keep_x, Mapping):
        raise DataValidationError("test_keep_x must be a mapping of block name to candidate keepX values")

    missing = [b for b in feature_counts if b not in test_keep_x]
    unexpected = [b for b in test_keep_x if b not in feature_counts]
    if missing or unexpected:
        raise DataValidationError(
            f"test_keep_x must have exactly one entry per block in X "
            f"(missing: {missing}, unexpected: {unexpected})"
        )

    keep_x: Dict[str, List[int]] = {}
    for block_name, max_features in feature_counts.items():
        candidates = _as_list(test_keep_x[block_name])
        if not candidates:
            raise DataValidationError(f"test_keep_x['{block_name}'] must not be empty")
        for value in candidates:
            if not is_positive_int(value):
                raise DataValidationError(
                    f"test_keep_x['{block_name}'] values must be positive integers, got {value!r}"
                )
            if value > max_features:
                raise DataValidationError(
                    f"test_keep_x['{block_name}'] value {int(value)} exceeds the block's "
                    f"{max_features} features"
                )
        keep_x[block_name] = [int(v) for v in candidates]
    return keep_x


def validate_search(search_type: Any, n_random: Any) -> None:
    if search_type not in constants.SEARCH_TYPES:
        raise DataValidationError("search_type must be either 'grid' or 'random'")
    if search_type == constants.SEARCH_RANDOM and not is_positive_int(n_random):
        raise DataValidationError("n_random must be a positive integer")


def validate_inputs(blocks: Any, outcome: Any, ncomp: Any, test_keep_x: Any, kind: ModelKind,
                    search_type: str, n_random: Any, nfolds: Any) -> Dict[str, Any]:
    """
    Run every pre-computation check.

    Returns:
        Dict with the normalised ``ncomp`` list, the block-ordered
        ``test_keep_x`` mapping, ``nfolds`` and the block ``feature_counts``.
    """
    feature_counts = validate_blocks(blocks)
    validate_outcome(outcome, n_rows(next(iter(blocks.values()))), kind)
    ncomp_values = validate_ncomp(ncomp)
    keep_x = validate_keep_x(test_keep_x, feature_counts)
    validate_search(search_type, n_random)
    nfolds = validate_fold_count(nfolds)
    return {
        'ncomp': ncomp_values,
        'test_keep_x': keep_x,
        'nfolds': nfolds,
        'feature_counts': feature_counts,
    }
