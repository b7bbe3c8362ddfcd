"""Shared loguru logger for the alarm services.

Modules call ``setup_logging()`` once at import time and log through
``logger.bind(tag=TAG)``. Sinks come from the ``log`` section of the merged
config. If that config cannot be read (a broken ``data/.config.yaml``, an
unreadable log directory) the engine still logs, to stdout only.
"""

from __future__ import annotations

import os
import sys

import yaml
from loguru import logger

_PLAIN_FORMAT = "{time:HH:mm:ss} | {level:<8} | {extra[tag]} | {message}"

_configured = None


def _stdout_only(reason: Exception):
    logger.remove()
    logger.configure(extra={"tag": "alarm_clock"})
    logger.add(sys.stdout, format=_PLAIN_FORMAT, level=os.environ.get("LOG_LEVEL", "INFO"))
    logger.bind(tag=__name__).warning(f"Log config unavailable ({reason}); logging to stdout only")
    return logger


def setup_logging():
    global _configured
    if _configured is None:
        from alarm_clock.config.logger import setup_logging as configure_from_config

        try:
            _configured = configure_from_config()
        except (OSError, ValueError, yaml.YAMLError) as exc:
            _configured = _stdout_only(exc)
    return _configured
