import logging
from unittest.mock import MagicMock

from blocktune.utils.diagnostics import Diagnostic, DiagnosticsCollector


def test_collector_logs_and_records():
    logger = MagicMock(spec=logging.Logger)
    collector = DiagnosticsCollector(logger)

    collector.warn("FoldFailed", "Error in fold 1: boom", fold=0)
    collector.info("SdNotAvailable", "sd missing")

    assert collector.codes() == ["FoldFailed", "SdNotAvailable"]
    assert len(collector) == 2
    logger.warning.assert_called_once_with("Error in fold 1: boom")
    logger.info.assert_called_once_with("sd missing")


def test_extend_does_not_log_again():
    logger = MagicMock(spec=logging.Logger)
    collector = DiagnosticsCollector(logger)
    collector.extend([Diagnostic("X", "already logged")])

    assert collector.codes() == ["X"]
    logger.warning.assert_not_called()


def test_as_dict():
    assert Diagnostic("C", "msg", {'fold': 2}).as_dict() == {'code': "C", 'message': "msg", 'context': {'fold': 2}}
