"""Opt-in JSON debug logging.

When ``VIBIUM_DEBUG`` is ``1`` or ``true`` the ``vibium.debug`` logger emits
one JSON object per record on stderr. It is additive: errors are still
returned to callers whether or not it is enabled.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from typing import Any

from .config import VibiumConfig

_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}

_lock = threading.Lock()
_configured = False


def is_enabled() -> bool:
    return VibiumConfig.from_env().debug


class JsonFormatter(logging.Formatter):
    """Render a record plus its ``extra`` fields as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def get_logger() -> logging.Logger:
    """Return the debug logger, wiring its stderr handler on first use."""
    global _configured
    logger = logging.getLogger("vibium.debug")
    with _lock:
        if not _configured:
            if is_enabled():
                handler = logging.StreamHandler(sys.stderr)
                handler.setFormatter(JsonFormatter())
                logger.addHandler(handler)
                logger.setLevel(logging.DEBUG)
            else:
                logger.setLevel(logging.CRITICAL + 1)
            logger.propagate = False
            _configured = True
    return logger


def reset() -> None:
    """Forget handler wiring so the next ``get_logger`` re-reads the environment."""
    global _configured
    logger = logging.getLogger("vibium.debug")
    with _lock:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        _configured = False


def debug(msg: str, **fields: Any) -> None:
    logger = get_logger()
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(msg, extra=fields)
