"""
Model Factory
=============

Responsibility:
- Closed set of supported model kinds (block sPLS-DA, block sPLS).
- Built-in block sparse PLS estimators on top of scikit-learn.
- Fit/predict/evaluate adapters bound per model kind.
"""

from .model_factory import ModelFactory, ModelKind, ModelAdapter
from .block_pls import BlockSPLS, BlockSPLSDA

__all__ = ['ModelFactory', 'ModelKind', 'ModelAdapter', 'BlockSPLS', 'BlockSPLSDA']
