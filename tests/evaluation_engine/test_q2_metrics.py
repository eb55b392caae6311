import pytest
import numpy as np
import pandas as pd

from blocktune.modules.evaluation_engine import (
    CLASSIFICATION,
    REGRESSION,
    classification_metrics,
    penalty_metrics,
    q2_score,
    regression_metrics,
)


def test_q2_identity_is_one():
    y = np.array([1.0, 2.0, 3.0, 4.5, -0.5])
    assert q2_score(y, y) == 1.0


def test_q2_of_mean_prediction_is_not_positive():
    y = np.array([1.0, 2.0, 3.0, 4.5, -0.5])
    q2 = q2_score(y, np.full_like(y, y.mean()))
    assert q2 <= 0
    assert q2 == pytest.approx(0.0)


def test_q2_worse_than_mean_is_negative():
    y = np.array([1.0, 2.0, 3.0])
    assert q2_score(y, np.array([3.0, 2.0, 1.0])) < 0


def test_q2_constant_truth_returns_negative_infinity():
    y = np.array([2.0, 2.0, 2.0])
    assert q2_score(y, np.array([2.0, 2.5, 1.5])) == float('-inf')


def test_q2_drops_missing_pairs():
    y = np.array([1.0, 2.0, np.nan, 4.0])
    p = np.array([1.0, 2.0, 3.0, 4.0])
    assert q2_score(y, p) == 1.0


def test_q2_all_missing_returns_negative_infinity():
    y = np.array([np.nan, np.nan])
    assert q2_score(y, np.array([1.0, 2.0])) == float('-inf')


def test_q2_accepts_series_and_lists():
    y = pd.Series([1.0, 2.0, 3.0, 4.0])
    assert q2_score(y, [1.0, 2.0, 3.0, 4.0]) == 1.0


def test_categorical_q2_is_numeric_or_negative_infinity():
    y = pd.Categorical(['a', 'b', 'a', 'b'])
    mixed = q2_score(y, np.array(['a', 'a', 'a', 'b'], dtype=object))
    all_correct = q2_score(y, np.array(['a', 'b', 'a', 'b'], dtype=object))

    assert isinstance(mixed, float)
    assert np.isfinite(mixed) or mixed == float('-inf')
    # Agreement compared with itself: 1 when mixed, undefined when uniform.
    assert mixed == 1.0
    assert all_correct == float('-inf')


def test_classification_metrics():
    metrics = classification_metrics(['a', 'b', 'a', 'b'], np.array(['a', 'a', 'a', 'b'], dtype=object))
    assert metrics['error_rate'] == pytest.approx(0.25)
    assert metrics['accuracy'] == pytest.approx(0.75)


def test_classification_metrics_ignore_missing_labels():
    y = pd.Series(['a', None, 'b'], dtype=object)
    metrics = classification_metrics(y, np.array(['a', 'a', 'a'], dtype=object))
    assert metrics['error_rate'] == pytest.approx(0.5)


def test_classification_metrics_with_string_dtype_and_pd_na():
    y = pd.Series(['a', 'b', pd.NA, 'a'], dtype='string')
    metrics = classification_metrics(y, ['a'] * 4)
    assert metrics['error_rate'] == pytest.approx(1.0 / 3.0)
    assert metrics['accuracy'] == pytest.approx(2.0 / 3.0)


def test_categorical_q2_with_string_dtype_and_pd_na():
    y = pd.Series(['a', 'b', pd.NA, 'a'], dtype='string')
    assert q2_score(y, np.array(['a', 'a', 'a', 'a'], dtype=object)) == 1.0


def test_regression_metrics():
    metrics = regression_metrics([1.0, 2.0, 3.0], [1.0, 2.0, 5.0])
    assert metrics['mse'] == pytest.approx(4.0 / 3.0)
    assert metrics['rmse'] == pytest.approx(np.sqrt(4.0 / 3.0))


def test_penalty_metrics_are_worst_case():
    assert penalty_metrics(CLASSIFICATION) == {'error_rate': 1.0, 'accuracy': 0.0, 'q2_score': float('-inf')}

    regression = penalty_metrics(REGRESSION)
    assert regression['mse'] == float('inf')
    assert regression['q2_score'] == float('-inf')
