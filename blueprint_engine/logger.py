"""
Structured Logger

Thin wrapper around Python logging for structured event output.
Every engine operation reports one event per call.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from blueprint_engine.config import LOG_LEVEL

_LEVEL_MAP = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_logger = logging.getLogger("blueprint_engine")
if not _logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(handler)
    _logger.setLevel(_LEVEL_MAP.get(LOG_LEVEL, logging.INFO))


def log(event: str, level: str = "info", **kwargs):
    """
    Emit a structured log line as JSON.

    Args:
        event:  Dot-separated event name (e.g. "validator.complete")
        level:  Log level string (debug, info, warning, error, critical)
        **kwargs: Additional key-value data to include
    """
    py_level = _LEVEL_MAP.get(level, logging.INFO)
    if not _logger.isEnabledFor(py_level):
        return
    entry = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "level": level,
    }
    entry.update(kwargs)
    _logger.log(py_level, json.dumps(entry, default=str))
