from __future__ import annotations

import logging
from io import StringIO

from excel_merge.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    reset_logging,
    set_debug,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    reset_logging()
    logger = setup_logging()

    assert logger.name == LOGGER_NAME == "excel_merge"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False
    assert logging.getLevelName(SUMMARY_LEVEL) == "SUMMARY"


def test_setup_logging_is_idempotent():
    reset_logging()
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(second.handlers) == 1
    assert get_logger() is first


def test_labeled_prefixes():
    reset_logging()
    captured = StringIO()
    logger = setup_logging(stream=captured)

    logger.info("Test info message")
    logger.warning("Test warning message")
    logger.error("Test error message")
    log_summary("files=1 sheets=1 rows=0 warnings=0 elapsed_sec=0")

    lines = captured.getvalue().strip().split("\n")
    assert lines == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY files=1 sheets=1 rows=0 warnings=0 elapsed_sec=0",
    ]


def test_module_loggers_share_handler(capsys):
    reset_logging()
    setup_logging()
    logging.getLogger("excel_merge.services.orchestrator").info("merge start")
    log_summary("files=1")
    out = capsys.readouterr().out
    assert "INFO merge start" in out
    assert "SUMMARY files=1" in out


def test_set_debug(capsys):
    reset_logging()
    logger = setup_logging()
    set_debug(True)
    assert logger.level == logging.DEBUG
    logger.debug("details")
    assert "DEBUG details" in capsys.readouterr().out
    set_debug(False)
    assert logger.level == logging.INFO


def test_reset_logging_restores_propagation():
    setup_logging()
    reset_logging()
    logger = logging.getLogger(LOGGER_NAME)
    assert logger.handlers == []
    assert logger.propagate is True
