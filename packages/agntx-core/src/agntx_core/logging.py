from __future__ import annotations

import json
import logging
import sys
from typing import TextIO

ROOT_LOGGER = "agntx"

_TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record, for machine-read stderr."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": record.created,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(
    level: str = "WARNING",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure and return the root agntx logger.

    Each call replaces the previous handler, so a process that runs several
    commands logs to the stderr that is current for each of them.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger under the agntx namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
