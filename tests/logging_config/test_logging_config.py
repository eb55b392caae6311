import pytest
import logging
from pathlib import Path

from colorama import Fore
from blocktune.modules.logging_config import ColoredFormatter, LoggingConfigurator


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    old_handlers, old_level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = old_handlers
    root.setLevel(old_level)


def test_logger_writes_to_file(tmp_path):
    log_dir = tmp_path / "logs"
    config = {'logging': {'level': 'DEBUG', 'log_dir': str(log_dir), 'log_to_console': False}}
    lc = LoggingConfigurator(config)
    lc.setup()

    logger = lc.get_logger('test_mod')
    logger.info("Test message")
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_file = log_dir / "blocktune.log"
    assert log_file.exists()
    content = log_file.read_text(encoding='utf-8')
    assert "Test message" in content
    assert "[INFO]" in content


def test_setup_replaces_existing_handlers(tmp_path):
    config = {'logging': {'log_dir': str(tmp_path / "logs")}}
    LoggingConfigurator(config).setup()
    LoggingConfigurator(config).setup()

    assert len(logging.getLogger().handlers) == 2


def test_level_from_config(tmp_path):
    config = {'logging': {'level': 'warning', 'log_to_file': False}}
    LoggingConfigurator(config).setup()
    assert logging.getLogger().level == logging.WARNING


def test_no_file_handler_when_disabled(tmp_path):
    config = {'logging': {'log_dir': str(tmp_path / "logs"), 'log_to_file': False}}
    LoggingConfigurator(config).setup()

    assert not (tmp_path / "logs").exists()
    assert len(logging.getLogger().handlers) == 1


def test_colored_formatter_leaves_record_untouched():
    formatter = ColoredFormatter('%(levelname)s %(message)s')
    record = logging.LogRecord('x', logging.WARNING, __file__, 1, "careful", None, None)

    output = formatter.format(record)

    assert Fore.YELLOW in output
    assert "careful" in output
    assert record.levelname == "WARNING"
