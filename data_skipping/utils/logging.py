"""Logging setup for translation and pruning runs.

Translation code logs through ``get_contextual_logger`` so that every record
of one translation carries the same context fields (a translation id). Both
formatters render those fields: the JSON formatter as top-level keys, the
human formatter as a ``[key=value ...]`` suffix.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CONTEXT_ATTRIBUTE = "context"

# Loggers of the libraries we drive; their DEBUG output is not ours
_QUIET_LOGGERS = ("sqlglot", "duckdb", "pyarrow")


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, CONTEXT_ATTRIBUTE, None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string with context fields merged in
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        log_data.update(_record_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable lines with the record's context appended."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _record_context(record)
        if not context:
            return line
        fields = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{line} [{fields}]"


def setup_logging(
    level: str = "INFO",
    structured: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Set up logging configuration.

    Console output goes to stderr so that command output on stdout stays
    machine readable.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        structured: Use structured JSON logging if True
        log_file: Optional log file path
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = StructuredFormatter() if structured else StandardFormatter()

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Attach a fixed context to every record, alongside any per-call context."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(kwargs.get("extra") or {})
        extra[CONTEXT_ATTRIBUTE] = {**self.extra, **extra.get(CONTEXT_ATTRIBUTE, {})}
        kwargs["extra"] = extra
        return msg, kwargs


def get_contextual_logger(name: str, context: Dict[str, Any]) -> ContextLoggerAdapter:
    """Get a logger whose records carry ``context``.

    Example:
        >>> logger = get_contextual_logger(__name__, {"translation_id": "1f0c"})
        >>> logger.debug("Translated filter")  # Record carries translation_id
    """
    return ContextLoggerAdapter(logging.getLogger(name), context)
