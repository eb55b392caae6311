import inspect
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, List, Mapping

from blocktune.modules.evaluation_engine import (
    CLASSIFICATION,
    REGRESSION,
    classification_metrics,
    penalty_metrics,
    regression_metrics,
)
from blocktune.modules.model_factory.block_pls import BlockSPLS, BlockSPLSDA
from blocktune.utils import constants
from blocktune.utils.exceptions import BlockTuneException, DataValidationError, ModelTrainingError


class ModelKind(str, Enum):
    """Supported model kinds; the value is the method name used in configs and reports."""
    BLOCK_SPLSDA = "block.splsda"
    BLOCK_SPLS = "block.spls"

    @classmethod
    def from_name(cls, name: Any) -> "ModelKind":
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            supported = ", ".join(f"'{k.value}'" for k in cls)
            raise DataValidationError(
                f"Tuning method '{name}' is not supported. Currently supported methods: {supported}"
            ) from None

    @property
    def task(self) -> str:
        return CLASSIFICATION if self is ModelKind.BLOCK_SPLSDA else REGRESSION

    @property
    def is_classification(self) -> bool:
        return self.task == CLASSIFICATION

    @property
    def primary_metric(self) -> str:
        return constants.ERROR_RATE if self.is_classification else constants.Q2_SCORE

    @property
    def maximize(self) -> bool:
        """Whether larger values of the primary metric are better."""
        return not self.is_classification


@dataclass(frozen=True)
class ModelAdapter:
    """
    Fit/predict/evaluate triple bound to one modelling library.

    ``fit(train_blocks, train_outcome, ncomp, keep_x, **options) -> model``
    ``predict(model, test_blocks) -> predictions``
    ``evaluate(y_true, y_pred) -> {metric: value}``
    """
    fit: Callable[..., Any]
    predict: Callable[[Any, Mapping[str, Any]], Any]
    evaluate: Callable[[Any, Any], Dict[str, float]]
    penalty: Dict[str, float] = field(default_factory=dict)


def fit_estimator(kind: ModelKind, train_blocks: Mapping[str, Any], train_outcome: Any,
                  ncomp: int, keep_x: Mapping[str, int], **options) -> Any:
    model = ModelFactory.create(kind, ncomp, keep_x, **options)
    try:
        model.fit(train_blocks, train_outcome)
    except BlockTuneException:
        raise
    except Exception as e:
        raise ModelTrainingError(f"{kind.value} fit failed: {e}") from e
    return model


def predict_estimator(model: Any, test_blocks: Mapping[str, Any]) -> Any:
    return model.predict(test_blocks)


class ModelFactory:
    """
    Factory for the block sparse PLS estimators and their tuning adapters.
    """

    ESTIMATORS = {
        ModelKind.BLOCK_SPLSDA: BlockSPLSDA,
        ModelKind.BLOCK_SPLS: BlockSPLS,
    }

    @classmethod
    def create(cls, kind: Any, ncomp: int, keep_x: Mapping[str, int], **options) -> Any:
        """
        Create and return an unfitted estimator for ``kind``.
        Options the estimator does not accept are dropped.
        """
        kind = ModelKind.from_name(kind)
        model_class = cls.ESTIMATORS[kind]
        valid_params = cls._filter_params(model_class, options)
        return model_class(n_components=int(ncomp), keep_x=dict(keep_x), **valid_params)

    @classmethod
    def adapter(cls, kind: Any) -> ModelAdapter:
        """Built-in adapter for ``kind``."""
        kind = ModelKind.from_name(kind)
        evaluate = classification_metrics if kind.is_classification else regression_metrics
        return ModelAdapter(
            fit=partial(fit_estimator, kind),
            predict=predict_estimator,
            evaluate=evaluate,
            penalty=penalty_metrics(kind.task),
        )

    @classmethod
    def get_available_models(cls) -> List[str]:
        """Return list of all supported method names."""
        return [kind.value for kind in cls.ESTIMATORS]

    @staticmethod
    def _filter_params(model_class, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `model_class` constructor.
        """
        sig = inspect.signature(model_class.__init__)

        valid_keys = [
            p.name for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]
        reserved = {'self', 'n_components', 'keep_x'}

        return {k: v for k, v in params.items() if k in valid_keys and k not in reserved}
