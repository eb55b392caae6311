"""
Row-subset helpers shared by the fold, cross-validation and tuning engines.

A block set is an ordered mapping of block name to a 2D table (DataFrame or
ndarray) whose rows are aligned sample-for-sample. Every helper here returns
copies; caller-owned data is never written to.
"""

import numbers
from typing import Any, Mapping

import numpy as np
import pandas as pd
from pandas.api import types as ptypes


def is_block_set(data: Any) -> bool:
    return isinstance(data, Mapping)


def n_rows(table: Any) -> int:
    """Number of samples in a table, matrix or outcome vector."""
    if isinstance(table, (pd.DataFrame, pd.Series, pd.Categorical)):
        return len(table)
    return np.shape(table)[0] if np.ndim(table) > 0 else 0


def n_columns(table: Any) -> int:
    shape = np.shape(table)
    return shape[1] if len(shape) > 1 else 1


def take_rows(data: Any, indices: np.ndarray) -> Any:
    """
    Slice rows by position without reordering.

    Mappings are sliced block by block with the same index array so every
    block keeps the same sample order.
    """
    if is_block_set(data):
        return {name: take_rows(block, indices) for name, block in data.items()}
    if isinstance(data, (pd.DataFrame, pd.Series)):
        return data.iloc[indices].copy()
    if isinstance(data, pd.Categorical):
        return data.take(indices)
    return np.take(np.asarray(data), indices, axis=0)


def _dtype_of(outcome: Any):
    dtype = getattr(outcome, 'dtype', None)
    if dtype is None:
        dtype = np.asarray(outcome).dtype
    return dtype


def is_categorical(outcome: Any) -> bool:
    """
    Categorical outcomes are those with a category, object, string or bool dtype.
    Numeric dtypes (including integers) are treated as continuous.
    """
    dtype = _dtype_of(outcome)
    if isinstance(dtype, pd.CategoricalDtype):
        return True
    return ptypes.is_string_dtype(dtype) or ptypes.is_object_dtype(dtype) or ptypes.is_bool_dtype(dtype)


def is_continuous(outcome: Any) -> bool:
    dtype = _dtype_of(outcome)
    return ptypes.is_numeric_dtype(dtype) and not ptypes.is_bool_dtype(dtype)


def class_labels(outcome: Any) -> np.ndarray:
    """Distinct labels in category order (or sorted), ignoring missing values."""
    dtype = _dtype_of(outcome)
    if isinstance(dtype, pd.CategoricalDtype):
        return np.array(list(dtype.categories), dtype=object)
    values = pd.Series(np.asarray(outcome, dtype=object))
    present = values[values.notna()]
    return np.array(sorted(present.unique(), key=str), dtype=object)


def label_array(outcome: Any) -> np.ndarray:
    """Labels as a flat object array with every missing value replaced by ``None``."""
    labels = pd.Series(np.asarray(outcome, dtype=object).ravel(), dtype=object)
    return labels.where(labels.notna(), None).to_numpy(dtype=object)


def is_positive_int(value: Any) -> bool:
    """True for integral values >= 1, including integral floats; bools are rejected."""
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        return False
    if not np.isfinite(value):
        return False
    return int(value) == value and value >= 1
