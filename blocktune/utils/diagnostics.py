"""
Structured diagnostics.

Recoverable conditions (clamped fold counts, failed folds, undefined
standard deviations, deadlines) are logged as warnings and also collected as
``Diagnostic`` records so callers can inspect them without installing log
handlers.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class Diagnostic:
    """A single non-fatal condition raised during tuning."""
    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'message': self.message, 'context': dict(self.context)}


class DiagnosticsCollector:
    """Collects diagnostics and mirrors each one to a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.records: List[Diagnostic] = []

    def warn(self, code: str, message: str, **context) -> Diagnostic:
        diagnostic = Diagnostic(code, message, context)
        self.records.append(diagnostic)
        self.logger.warning(message)
        return diagnostic

    def info(self, code: str, message: str, **context) -> Diagnostic:
        diagnostic = Diagnostic(code, message, context)
        self.records.append(diagnostic)
        self.logger.info(message)
        return diagnostic

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        """Add records produced elsewhere without logging them again."""
        self.records.extend(diagnostics)

    def codes(self) -> List[str]:
        return [d.code for d in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)
