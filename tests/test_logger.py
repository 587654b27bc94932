"""
Tests for the logging helpers.
"""

import logging

import pytest

from ordination_tools import log_print, setup_logger
from ordination_tools.logger import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def test_setup_logger_writes_file(tmp_path):
    log_file = tmp_path / 'run.log'
    logger = setup_logger(log_file=str(log_file), log_level='DEBUG')

    assert logger.level == logging.DEBUG
    log_print("graph built", level="debug")

    for handler in logger.handlers:
        handler.flush()
    contents = log_file.read_text()
    assert 'graph built' in contents
    assert 'DEBUG' in contents


def test_setup_logger_replaces_handlers():
    setup_logger()
    logger = setup_logger(log_level='WARNING')
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_setup_logger_rejects_unknown_level():
    with pytest.raises(ValueError):
        setup_logger(log_level='LOUD')


def test_log_print_unknown_level_warns(caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        log_print("hello", level="shout")
    assert "Unknown log level 'shout'" in caplog.text
