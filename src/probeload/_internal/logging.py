"""Logging for probeload: one stderr handler, human or JSON lines.

Records may carry run context (``scenario``, ``vu_id``, ``address``),
attached through :func:`bind`. The JSON formatter emits it as extra keys;
the human formatter appends it as ``key=value`` pairs.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

_ROOT = "probeload"

# Run-context attributes a record may carry, in output order.
_CONTEXT_FIELDS = ("scenario", "vu_id", "address")

_HUMAN_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_HUMAN_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: getattr(record, key)
        for key in _CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class _JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp, level, logger, message, any run context present on
    the record, and exception when the record has exc_info.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_context(record))
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class _HumanFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(_HUMAN_FORMAT, datefmt=_HUMAN_DATEFMT)

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        line = super().formatMessage(record)
        context = _context(record)
        if context:
            line += " (" + " ".join(f"{k}={v}" for k, v in context.items()) + ")"
        return line


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure the ``probeload`` logger and return it.

    Each call replaces the handler installed by the previous one, so the
    level, the format and the target stream (the current ``sys.stderr``)
    always reflect the latest call. Records do not propagate to the root
    logger.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``).
        json_format: Emit one JSON object per line instead of plain text.

    Returns:
        The ``probeload`` logger.
    """
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)

    for old in [h for h in logger.handlers if getattr(h, "_probeload", False)]:
        logger.removeHandler(old)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_JsonFormatter() if json_format else _HumanFormatter())
    handler._probeload = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the child logger ``probeload.<name>``.

    Example: ``get_logger("engine.session")`` is
    ``logging.getLogger("probeload.engine.session")``.
    """
    return logging.getLogger(f"{_ROOT}.{name}")


def bind(logger: logging.Logger, **context: Any) -> logging.LoggerAdapter[logging.Logger]:
    """Return an adapter that attaches run context to every record.

    Args:
        logger: Logger to wrap.
        **context: Values for ``scenario``, ``vu_id`` or ``address``.

    Returns:
        A ``LoggerAdapter`` passing *context* as the record's extra.
    """
    unknown = set(context) - set(_CONTEXT_FIELDS)
    if unknown:
        msg = f"unknown log context fields: {sorted(unknown)}"
        raise ValueError(msg)
    return logging.LoggerAdapter(logger, context)
