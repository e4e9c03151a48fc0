"""Logging setup for server processes.

Stdout carries the MCP transport, so log records go to stderr or to the
configured file, never to stdout.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from toolserve.config.schema import LoggingConfig

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(config: LoggingConfig, level: str | None = None) -> logging.Handler:
    """Install a single handler on the ``toolserve`` logger and return it.

    *level* overrides ``config.level`` (the CLI ``--log-level`` flag).
    Calling this again replaces the previous handler.
    """
    name = (level or config.level).upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        msg = f"Unknown log level: {name}"
        raise ValueError(msg)

    handler: logging.Handler
    if config.file:
        path = Path(config.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if config.structured else logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger("toolserve")
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    root.addHandler(handler)
    root.setLevel(numeric)
    root.propagate = False
    return handler
