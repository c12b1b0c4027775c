"""
Structured JSON logging for hook processing.

Each hook event is handled by a short-lived process, so a log line is
only useful afterwards if it names the session, agent and profile it
belongs to. Lines are written to stderr as one JSON object each; stdout
is left to the hook protocol.
"""

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import datetime, timezone
from typing import Any, TextIO

PACKAGE_LOGGER = "agent_session_sync"

# Attributes every LogRecord carries; anything else came from ``extra``
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
}


class StructuredJsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Fixed keys come first (timestamp in UTC ISO 8601, level, logger,
    message), then an ``exception`` traceback if present, then any
    context passed through ``extra``. Context values that JSON cannot
    encode are stringified.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(_context_fields(record))
        return json.dumps(entry, default=str)


def _context_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str | None = PACKAGE_LOGGER,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Route a logger's output through the JSON formatter.

    Calling this again replaces the previous handler rather than adding
    a second one.

    Args:
        level: Minimum level to emit
        logger_name: Logger to configure (None for the root logger)
        stream: Destination (default: stderr)

    Returns:
        The configured logger
    """
    target = logging.getLogger(logger_name)
    for handler in list(target.handlers):
        target.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(StructuredJsonFormatter())
    target.addHandler(handler)
    target.setLevel(level)
    return target


def get_sync_logger(component: str) -> logging.Logger:
    """Logger for a package component, e.g. ``get_sync_logger("hooks")``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{component}")


class SessionLoggerAdapter(logging.LoggerAdapter):
    """
    Stamps session context onto every record.

    The adapter's context (typically session_id, agent, profile) is merged
    under any ``extra`` given at the call site, so per-call values win.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs
