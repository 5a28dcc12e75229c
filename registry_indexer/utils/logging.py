"""
Log setup for the indexer processes.

`registry-indexer sync`, `follow` and `serve` call `configure_logging` once at
startup. Records carry sync context through `extra=`: the block range being
applied (`from_block`, `to_block`), the contract `family`, the event counts of
a `RangeReport` and the profile of a cycle. The console format keeps those
fields out of the line; the JSON format lifts them to top-level keys so a log
shipper can filter on, say, `family="validation"`.

    log = get_logger(__name__)
    log.info("Range applied", extra={"from_block": 10, "to_block": 42})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else was passed through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra", "taskName"}


def _json_formatter(record: logging.LogRecord) -> str:
    """Serialize a record and its sync context fields into one JSON line."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    for key, value in vars(record).items():
        if key not in _RESERVED_ATTRS and not key.startswith("_"):
            payload[key] = value
    if hasattr(record, "extra") and isinstance(record.extra, dict):
        payload.update(record.extra)
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """Formatter selected by `LOG_JSON=true`."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
) -> None:
    """
    Install the indexer's root handler.

    Safe to call again; the last call wins. httpx is held at WARNING because
    it logs every `eth_getLogs` round trip at INFO.

    Parameters
    ----------
    level : str
        Level name from `LOG_LEVEL`, e.g. "DEBUG" to see skipped logs.
    json_logs : bool
        `LOG_JSON`. When True every record is one JSON object with the
        sync context from `extra=` as top-level keys.
    """
    formatter_name = "json" if json_logs else "console"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter_name,
                    "level": level.upper(),
                }
            },
            "root": {
                "handlers": ["default"],
                "level": level.upper(),
            },
            "loggers": {
                # httpx logs each request at INFO.
                "httpx": {"level": "WARNING"},
            },
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Module logger; the root logger when `name` is None.
    """
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter"]
