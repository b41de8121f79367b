"""
Application logging utilities.

The root logger gets one stdout handler whose formatter emits a JSON object per
line. Context passed through ``extra=`` (record_id, tier, inserted_count, ...)
lands as top-level keys next to ts/level/logger/message.
"""

import logging
import sys
from typing import Any, Dict

import orjson

from .config import get_settings

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS and not k.startswith("_")}


class _JsonLineFormatter(logging.Formatter):
    """One JSON object per record; extras are merged in, never nested."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        payload.update(_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str, option=orjson.OPT_NON_STR_KEYS).decode("utf-8")


def _configure_root_logger() -> None:
    """Configure the root logger exactly once."""
    root = logging.getLogger()
    if getattr(root, "_configured_by_record_search", False):
        return

    # Drop handlers installed by earlier imports/reloads
    for h in list(root.handlers):
        root.removeHandler(h)

    settings = get_settings()
    root.setLevel(getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO))

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(_JsonLineFormatter())
    root.addHandler(handler)

    setattr(root, "_configured_by_record_search", True)


# PUBLIC_INTERFACE
def get_logger(name: str = "record_search") -> logging.Logger:
    """Return a named logger, configuring the root logger on first use."""
    _configure_root_logger()
    return logging.getLogger(name)
