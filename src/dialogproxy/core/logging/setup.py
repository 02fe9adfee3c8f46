from __future__ import annotations

import logging
import os
import sys

from .json_formatter import JSONFormatter

_LOGGER_NAME = "dialogproxy"
_CONFIGURED_ATTR = "_dialogproxy_json_logging"


def _parse_level(raw: str) -> int:
    normalized = raw.strip().upper()
    return getattr(logging, normalized, logging.INFO)


def configure_logging(debug: bool = False) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    if debug:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(_parse_level(os.getenv("DIALOGPROXY_LOG_LEVEL", "INFO")))
    logger.propagate = False

    if not any(getattr(handler, _CONFIGURED_ATTR, False) for handler in logger.handlers):
        stdout_handler = logging.StreamHandler(stream=sys.stdout)
        stdout_handler.setFormatter(JSONFormatter())
        setattr(stdout_handler, _CONFIGURED_ATTR, True)
        logger.addHandler(stdout_handler)

    return logger
