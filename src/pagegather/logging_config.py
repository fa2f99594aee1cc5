"""Process-wide logging setup for CLI and adapter entry points."""

from __future__ import annotations

import json as _json
import logging
import sys

_NOISY_LOGGERS = ("httpx", "httpcore", "websockets")

# Level names accepted in addition to the stdlib ones.
_LEVEL_ALIASES = {"silent": "CRITICAL", "verbose": "DEBUG"}


class JsonFormatter(logging.Formatter):
    """Format a log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return _json.dumps(entry, default=str)


def resolve_level(level: str | int) -> int:
    """Map a level name (``error``, ``info``, ``verbose``...) to a ``logging`` level."""
    if isinstance(level, int):
        return level
    name = level.strip().lower()
    name = _LEVEL_ALIASES.get(name, name).upper()
    return getattr(logging, name, logging.ERROR)


def configure_logging(level: str | int = "error", *, json_format: bool = False) -> None:
    """Configure the root logger on stderr and quiet chatty transport libraries."""
    resolved = resolve_level(level)
    if json_format:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
        logging.root.handlers.clear()
        logging.root.addHandler(handler)
        logging.root.setLevel(resolved)
    else:
        logging.basicConfig(
            level=resolved,
            format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            stream=sys.stderr,
        )
        logging.root.setLevel(resolved)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
