"""
Block sparse PLS estimators.

Each block is standardised on the training rows, reduced to its ``keep_x``
variables with the largest absolute covariance with the (dummy-coded)
outcome, and down-weighted by ``1/sqrt(keep)`` so every block contributes on
the same scale. The selected variables are then fitted jointly with
``PLSRegression``.

Classes
-------
BlockSPLS
    Regression on a continuous outcome.
BlockSPLSDA
    Discriminant analysis; predicts the class with the highest response.
"""

import numpy as np
import pandas as pd
from typing import Any, Dict, List, Mapping, Optional

from sklearn.base import BaseEstimator, ClassifierMixin, RegressorMixin
from sklearn.cross_decomposition import PLSRegression
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from blocktune.utils.blocks import label_array
from blocktune.utils.exceptions import ModelTrainingError, PredictionError


def _column_labels(block: Any) -> List[Any]:
    if isinstance(block, pd.DataFrame):
        return list(block.columns)
    return list(range(np.shape(block)[1]))


class _BlockSparsePLSBase(BaseEstimator):
    """Shared fitting logic for the block sparse PLS estimators."""

    def __init__(self, n_components: int = 2, keep_x: Optional[Dict[str, int]] = None,
                 max_iter: int = 500, tol: float = 1e-06):
        self.n_components = n_components
        self.keep_x = keep_x
        self.max_iter = max_iter
        self.tol = tol

    def _encode_y(self, y: Any) -> np.ndarray:
        raise NotImplementedError

    def _fit_blocks(self, blocks: Mapping[str, Any], y: Any):
        if not blocks:
            raise ModelTrainingError("At least one data block is required")

        Y = self._encode_y(y)
        Y_centered = Y - Y.mean(axis=0)
        keep_x = self.keep_x or {}

        self.block_names_ = list(blocks.keys())
        self.scalers_ = {}
        self.selected_ = {}
        self.weights_ = {}
        self.selected_variables_ = {}
        n_samples = None
        parts = []

        for name in self.block_names_:
            X = np.asarray(blocks[name], dtype=float)
            if X.ndim != 2:
                raise ModelTrainingError(f"Block '{name}' must be 2D, got shape {X.shape}")
            if n_samples is None:
                n_samples = X.shape[0]
            elif X.shape[0] != n_samples:
                raise ModelTrainingError("All blocks must have the same number of rows")

            scaler = StandardScaler()
            X_std = scaler.fit_transform(X)

            keep = min(int(keep_x.get(name, X.shape[1])), X.shape[1])
            covariance = np.abs(X_std.T @ Y_centered).sum(axis=1)
            # Stable sort keeps column order among ties.
            selected = np.sort(np.argsort(-covariance, kind='stable')[:keep])

            labels = _column_labels(blocks[name])
            self.scalers_[name] = scaler
            self.selected_[name] = selected
            self.weights_[name] = 1.0 / np.sqrt(keep)
            self.selected_variables_[name] = [labels[j] for j in selected]
            parts.append(X_std[:, selected] * self.weights_[name])

        X_all = np.hstack(parts)
        n_comp = max(1, min(int(self.n_components), X_all.shape[1], n_samples - 1))
        self.n_components_ = n_comp
        self.pls_ = PLSRegression(n_components=n_comp, scale=False,
                                  max_iter=self.max_iter, tol=self.tol)
        self.pls_.fit(X_all, Y)
        return self

    def _transform_blocks(self, blocks: Mapping[str, Any]) -> np.ndarray:
        missing = [name for name in self.block_names_ if name not in blocks]
        if missing:
            raise PredictionError(f"Missing blocks for prediction: {missing}")
        parts = []
        for name in self.block_names_:
            X_std = self.scalers_[name].transform(np.asarray(blocks[name], dtype=float))
            parts.append(X_std[:, self.selected_[name]] * self.weights_[name])
        return np.hstack(parts)

    def _predict_response(self, blocks: Mapping[str, Any]) -> np.ndarray:
        response = self.pls_.predict(self._transform_blocks(blocks))
        return response.reshape(response.shape[0], -1)


class BlockSPLS(RegressorMixin, _BlockSparsePLSBase):
    """Block sparse PLS regression on a single continuous outcome."""

    def _encode_y(self, y: Any) -> np.ndarray:
        return np.asarray(y, dtype=float).reshape(-1, 1)

    def fit(self, blocks: Mapping[str, Any], y: Any):
        return self._fit_blocks(blocks, y)

    def predict(self, blocks: Mapping[str, Any]) -> np.ndarray:
        return self._predict_response(blocks)[:, 0]


class BlockSPLSDA(ClassifierMixin, _BlockSparsePLSBase):
    """
    Block sparse PLS discriminant analysis.

    The outcome is dummy-coded over the classes seen in training; a sample is
    assigned the class whose predicted dummy response is largest.
    """

    def _encode_y(self, y: Any) -> np.ndarray:
        labels = label_array(y)
        labelled = ~pd.isna(labels)
        if not labelled.any():
            raise ModelTrainingError("Training outcome has no labelled samples")

        self.encoder_ = OneHotEncoder(sparse_output=False)
        dummies = self.encoder_.fit_transform(labels[labelled].reshape(-1, 1))
        self.classes_ = self.encoder_.categories_[0]
        # Unlabelled samples get an all-zero dummy row.
        Y = np.zeros((labels.shape[0], dummies.shape[1]))
        Y[labelled] = dummies
        return Y

    def fit(self, blocks: Mapping[str, Any], y: Any):
        return self._fit_blocks(blocks, y)

    def predict_scores(self, blocks: Mapping[str, Any]) -> np.ndarray:
        """Dummy-coded responses, one column per class."""
        return self._predict_response(blocks)

    def predict(self, blocks: Mapping[str, Any]) -> np.ndarray:
        return self.classes_[np.argmax(self.predict_scores(blocks), axis=1)]
