"""Structured JSON log output on stdout."""

import logging
import sys
from collections.abc import Iterable

from pythonjsonlogger.json import JsonFormatter

SERVER_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")

# httpx logs every request URL at INFO, and search URLs carry the API key
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def json_formatter() -> JsonFormatter:
    return JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


def setup_logging(log_level: str = "INFO", quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """Send every log record to stdout as one JSON object per line.

    Server loggers get the same handler and stop propagating, so uvicorn
    lines are not printed twice. Loggers named in ``quiet`` are held at
    WARNING or above whatever ``log_level`` says.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(json_formatter())

    root = logging.getLogger()
    root.handlers[:] = [stdout]
    root.setLevel(level)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers[:] = [stdout]
        server_logger.propagate = False

    for name in quiet:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
