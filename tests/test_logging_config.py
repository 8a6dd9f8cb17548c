"""Logging setup tests."""

import logging

import pytest
from pythonjsonlogger.json import JsonFormatter

from src.logging_config import QUIET_LOGGERS, SERVER_LOGGERS, setup_logging

WATCHED = ("", *SERVER_LOGGERS, *QUIET_LOGGERS)


@pytest.fixture(autouse=True)
def restore_loggers():
    loggers = [logging.getLogger(name) for name in WATCHED]
    saved = [(lg, lg.handlers[:], lg.level, lg.propagate) for lg in loggers]
    yield
    for target, handlers, level, propagate in saved:
        target.handlers[:] = handlers
        target.setLevel(level)
        target.propagate = propagate


def test_root_logs_json_at_requested_level():
    setup_logging("debug")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonFormatter)


def test_server_loggers_share_the_root_handler():
    setup_logging()

    root_handler = logging.getLogger().handlers[0]
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        assert server_logger.handlers == [root_handler]
        assert server_logger.propagate is False


def test_http_client_request_logs_stay_quiet_at_debug():
    setup_logging("DEBUG")

    assert not logging.getLogger("httpx").isEnabledFor(logging.INFO)
    assert logging.getLogger("httpx").isEnabledFor(logging.WARNING)


def test_quiet_loggers_follow_a_stricter_level():
    setup_logging("ERROR")
    assert logging.getLogger("httpx").level == logging.ERROR


def test_unknown_level_falls_back_to_info():
    setup_logging("chatty")
    assert logging.getLogger().level == logging.INFO
