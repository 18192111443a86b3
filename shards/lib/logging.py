"""Logging setup for the shards toolkit.

The library itself only ever calls ``logging.getLogger(__name__)``; this
module is for applications (and the CLI) that want a ready-made handler
configuration, optionally emitting JSON lines for log aggregation.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from shards.lib.errors import ShardingError

__all__ = ["JSONFormatter", "setup_logging"]

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    A logged ShardingError is attached as ``error`` (its ``to_dict()``), so
    the federation and details survive into the log pipeline.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "DEBUG",
         "logger": "shards.lib.router", "message": "Switched to federation root"}
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
            error = record.exc_info[1]
            if isinstance(error, ShardingError):
                entry["error"] = error.to_dict()

        extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure the root logger for the CLI.

    Args:
        verbose: DEBUG level, which shows every USE FEDERATION switch
        json_format: Emit JSON lines instead of text
        log_file: Also write to this file
    """
    level = logging.DEBUG if verbose else logging.INFO
    formatter = (
        JSONFormatter()
        if json_format
        else logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    # stderr keeps stdout free for DDL and query output
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger("dotenv").setLevel(logging.WARNING)
