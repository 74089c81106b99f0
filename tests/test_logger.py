"""Tests for logging setup."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from ava_shell.logger import current_log_file, setup_logger


@pytest.fixture
def logger_name():
    name = "ava_shell_test_logger"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def test_console_only(logger_name):
    logger = setup_logger(logger_name, verbose=False, log_file=False)
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
    assert not logger.propagate
    assert current_log_file() is None


def test_file_handler_records_info(logger_name, tmp_path):
    log_path = tmp_path / "logs" / "shell.log"
    logger = setup_logger(logger_name, verbose=False, log_file=log_path)
    file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert current_log_file() == log_path
    assert logger.level == logging.INFO
    assert file_handlers[0].level == logging.INFO

    logger.info("hello from the shell")
    file_handlers[0].flush()
    assert "hello from the shell" in log_path.read_text()


def test_repeated_setup_replaces_handlers(logger_name):
    setup_logger(logger_name, verbose=True, log_file=False)
    logger = setup_logger(logger_name, verbose=True, log_file=False)
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO


def test_http_loggers_are_quieted(logger_name):
    logging.getLogger("urllib3").setLevel(logging.DEBUG)
    setup_logger(logger_name, log_file=False)
    assert logging.getLogger("urllib3").level == logging.WARNING
    assert logging.getLogger("requests").level == logging.WARNING
