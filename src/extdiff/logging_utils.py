"""Logging configuration utilities for extdiff."""

import logging
import os
from typing import Optional

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Attributes every LogRecord has; anything else came in through ``extra=``
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Appends the fields passed via ``extra=`` as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value for key, value in vars(record).items() if key not in _RESERVED
        }
        if not context:
            return line
        pairs = " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))
        return f"{line} | {pairs}"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure application-wide logging once.

    ``level`` wins over the ``LOG_LEVEL`` environment variable; INFO otherwise.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    log_level = level or os.getenv("LOG_LEVEL", "INFO")
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(_LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(log_level.upper())
