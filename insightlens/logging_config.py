"""
Centralized logging configuration.

Provides structured JSON logging for long-running consumers and
human-readable output for scripts and local development.  Call
``setup_logging`` once, early, before building an
``InsightLensClient``.
"""

from __future__ import annotations

import logging
import sys


def setup_logging(
    level: str = "INFO",
    *,
    json_format: bool = False,
) -> None:
    """
    Configure the root logger for the client.

    The JSON format includes a ``session`` field that callers can
    populate through ``extra={"session": ...}``; records without
    one are tagged ``"-"``.

    Args:
        level: Logging level name (e.g. ``"INFO"``, ``"DEBUG"``).
        json_format: If ``True``, emit structured JSON lines.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        fmt = (
            '{"time":"%(asctime)s",'
            '"level":"%(levelname)s",'
            '"logger":"%(name)s",'
            '"session":"%(session)s",'
            '"message":"%(message)s"}'
        )
    else:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | " "%(message)s"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(_SessionFilter())

    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid duplicate handlers on repeated calls
    root.handlers.clear()
    root.addHandler(handler)

    _silence_noisy_loggers(log_level)


class _SessionFilter(logging.Filter):
    """Inject a default ``session`` attribute into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add ``session`` to *record* when missing.

        Args:
            record: The log record to augment.

        Returns:
            Always ``True`` (never suppress records).
        """
        if not hasattr(record, "session"):
            record.session = "-"  # type: ignore[attr-defined]
        return True


def _silence_noisy_loggers(app_level: int) -> None:
    """
    Reduce verbosity of the HTTP stack.

    Args:
        app_level: The client's configured log level.
    """
    for name in ("httpx", "httpcore", "urllib3"):
        logging.getLogger(name).setLevel(
            max(app_level, logging.WARNING),
        )
