import logging

import pytest

from transaction_dedup import logging_setup
from transaction_dedup.logging_setup import configure_logging, get_logger


@pytest.fixture()
def pkg_logger(monkeypatch):
    logger = logging.getLogger("transaction_dedup")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers.clear()
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def test_library_is_silent_until_configured(pkg_logger):
    get_logger("transaction_dedup.scoring")
    assert [type(h) for h in pkg_logger.handlers] == [logging.NullHandler]


def test_configure_replaces_null_handler_once(pkg_logger, monkeypatch):
    monkeypatch.setenv("TRANSACTION_DEDUP_LOG_LEVEL", "debug")
    get_logger("transaction_dedup.scan")
    configure_logging()
    configure_logging()

    assert len(pkg_logger.handlers) == 1
    assert not isinstance(pkg_logger.handlers[0], logging.NullHandler)
    assert pkg_logger.level == logging.DEBUG
    assert pkg_logger.propagate is False


def test_unknown_level_falls_back_to_info(pkg_logger, monkeypatch):
    monkeypatch.setenv("TRANSACTION_DEDUP_LOG_LEVEL", "loud")
    configure_logging()
    assert pkg_logger.level == logging.INFO


def test_records_go_to_current_stderr(pkg_logger, capsys):
    configure_logging()
    get_logger("transaction_dedup.api").info("range scan done")
    assert "transaction_dedup.api INFO range scan done" in capsys.readouterr().err
