import numpy as np
import pandas as pd

from blocktune.utils.blocks import (
    class_labels,
    is_categorical,
    is_continuous,
    is_positive_int,
    label_array,
    n_columns,
    n_rows,
    take_rows,
)


def test_take_rows_slices_every_block_identically():
    blocks = {
        'a': pd.DataFrame({'x': [10, 11, 12, 13]}, index=list('pqrs')),
        'b': np.arange(8).reshape(4, 2),
    }
    sliced = take_rows(blocks, np.array([3, 1]))

    assert list(sliced['a'].index) == ['s', 'q']
    np.testing.assert_array_equal(sliced['b'], [[6, 7], [2, 3]])


def test_take_rows_returns_copies():
    frame = pd.DataFrame({'x': [1.0, 2.0, 3.0]})
    part = take_rows(frame, np.array([0, 1]))
    part.iloc[0, 0] = 99.0
    assert frame.iloc[0, 0] == 1.0

    array = np.arange(3.0)
    taken = take_rows(array, np.array([0]))
    taken[0] = 99.0
    assert array[0] == 0.0


def test_take_rows_on_categorical_keeps_categories():
    y = pd.Categorical(['a', 'b', 'c'], categories=['c', 'b', 'a'])
    part = take_rows(y, np.array([0]))
    assert list(part.categories) == ['c', 'b', 'a']


def test_shapes():
    assert n_rows(np.zeros((5, 2))) == 5
    assert n_rows(pd.Series([1, 2])) == 2
    assert n_columns(np.zeros((5, 2))) == 2
    assert n_columns(np.zeros(5)) == 1


def test_outcome_typing():
    assert is_categorical(pd.Categorical(['a']))
    assert is_categorical(['a', 'b'])
    assert is_categorical(np.array([True, False]))
    assert not is_categorical(np.array([1, 2, 3]))
    assert is_continuous(np.array([1, 2, 3]))
    assert is_continuous([0.5, 1.5])
    assert not is_continuous(np.array([True, False]))


def test_class_labels_order():
    assert list(class_labels(pd.Categorical(['b', 'a'], categories=['b', 'a']))) == ['b', 'a']
    assert list(class_labels(['z', None, 'x', 'z'])) == ['x', 'z']


def test_label_array_maps_every_missing_marker_to_none():
    labels = label_array(pd.Series(['a', pd.NA, 'b'], dtype='string'))
    assert labels.dtype == object
    assert list(labels) == ['a', None, 'b']
    assert list(label_array(['x', np.nan, None])) == ['x', None, None]


def test_is_positive_int():
    assert is_positive_int(3)
    assert is_positive_int(np.int64(2))
    assert is_positive_int(10.0)
    for value in (0, -1, 2.5, True, np.nan, float('inf'), '3', None):
        assert not is_positive_int(value)
