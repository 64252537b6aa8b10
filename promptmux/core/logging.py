"""Structured logging configuration for PromptMux.

Records are written as ``key=value`` pairs on stdout. Stream and workspace
code attach correlation keys (the stream prefix or the project id) through
``log_with_context`` so one stream or one project can be grepped out.
"""

import logging
import sys
from typing import Any

# Extra fields promoted right after the message, in this order
CORRELATION_KEYS = ("prefix", "project_id")


class StructuredFormatter(logging.Formatter):
    """key=value structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        context: dict[str, Any] = dict(getattr(record, "context", {}))
        for key in CORRELATION_KEYS:
            if key in context:
                fields[key] = context.pop(key)
        fields.update(context)

        if record.exc_info:
            fields["exc"] = self.formatException(record.exc_info).replace("\n", " | ")

        return " ".join(f"{k}={v}" for k, v in fields.items())


def _level_for_env() -> int:
    # Lazy import; settings can be unreadable in sandboxed environments
    try:
        from promptmux.core.config import get_settings

        env = get_settings().PROMPTMUX_ENV
    except Exception:
        return logging.INFO
    return logging.DEBUG if env == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger writing structured lines to stdout
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_for_env())

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **context: Any) -> None:
    """Log ``msg`` with extra key=value fields, e.g. ``prefix="refine"``."""
    logger.log(level, msg, extra={"context": context})
