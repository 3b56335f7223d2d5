"""Tests for logging setup."""

import logging
import logging.handlers

import pytest

from ponyknows.common.logger import setup_logger


@pytest.fixture
def clean_logger():
    name = "ponyknows-test-logger"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_console_only_by_default(clean_logger):
    logger = setup_logger(clean_logger, level="debug")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)


def test_file_handler_rotates(clean_logger, tmp_path):
    logger = setup_logger(clean_logger, log_dir=str(tmp_path / "logs"), console_logging=False)
    logger.info("hello")

    handler = logger.handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    handler.flush()
    assert "hello" in (tmp_path / "logs" / f"{clean_logger}.log").read_text()


def test_repeated_setup_does_not_duplicate_handlers(clean_logger):
    setup_logger(clean_logger)
    logger = setup_logger(clean_logger)
    assert len(logger.handlers) == 1


def test_invalid_level(clean_logger):
    with pytest.raises(ValueError):
        setup_logger(clean_logger, level="LOUD")


def test_repeated_setup_updates_level(clean_logger):
    setup_logger(clean_logger, level="INFO")
    logger = setup_logger(clean_logger, level="WARNING")
    assert logger.level == logging.WARNING
