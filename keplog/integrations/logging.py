"""Logging integration for Keplog SDK."""

from __future__ import annotations

import logging
from typing import Any

from keplog.client import add_breadcrumb, capture_exception, capture_message
from keplog.types import BreadcrumbLevel, BreadcrumbType, Level

# Records from the SDK's own loggers are never reported back to it.
_SDK_LOGGER = "keplog"


class KeplogLoggingHandler(logging.Handler):
    """
    Logging handler that sends records to Keplog.

    Records at or above ``breadcrumb_level`` become breadcrumbs.
    Records at ERROR/CRITICAL level with exceptions are captured as exceptions.
    Records at ERROR/CRITICAL level without exceptions are captured as messages.

    Usage:
        import logging
        import keplog
        from keplog.integrations.logging import KeplogLoggingHandler

        keplog.init(ingest_key="...")

        logger = logging.getLogger()
        logger.addHandler(KeplogLoggingHandler())
    """

    def __init__(
        self,
        level: int = logging.DEBUG,
        breadcrumb_level: int = logging.INFO,
        capture_errors: bool = True,
        add_breadcrumbs: bool = True,
    ) -> None:
        super().__init__(level=level)
        self.breadcrumb_level = breadcrumb_level
        self.capture_errors = capture_errors
        self.add_breadcrumbs = add_breadcrumbs

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a record."""
        if record.name == _SDK_LOGGER or record.name.startswith(_SDK_LOGGER + "."):
            return
        try:
            self._handle_record(record)
        except Exception:
            self.handleError(record)

    def _handle_record(self, record: logging.LogRecord) -> None:
        """Handle a logging record."""
        if self.add_breadcrumbs and record.levelno >= self.breadcrumb_level:
            self._add_breadcrumb(record)

        if self.capture_errors and record.levelno >= logging.ERROR:
            context = {
                "tags": {"logger": record.name},
                "logger": {
                    "name": record.name,
                    "level": record.levelname,
                    "pathname": record.pathname,
                    "lineno": record.lineno,
                },
            }
            if record.exc_info and record.exc_info[1]:
                capture_exception(
                    record.exc_info[1],
                    context=context,
                    level=map_level(record.levelno),
                )
            else:
                capture_message(
                    self.format(record),
                    level=map_level(record.levelno),
                    context=context,
                )

    def _add_breadcrumb(self, record: logging.LogRecord) -> None:
        """Add a logging record as breadcrumb."""
        data: dict[str, Any] = {
            "logger": record.name,
        }

        if record.pathname:
            data["pathname"] = record.pathname
        if record.lineno:
            data["lineno"] = record.lineno

        add_breadcrumb(
            {
                "type": BreadcrumbType.DEFAULT.value,
                "category": "logging",
                "message": record.getMessage(),
                "data": data,
                "level": map_breadcrumb_level(record.levelno).value,
                "timestamp": int(record.created),
            }
        )


def map_level(levelno: int) -> Level:
    """Map logging level to Keplog Level."""
    if levelno >= logging.CRITICAL:
        return Level.CRITICAL
    if levelno >= logging.ERROR:
        return Level.ERROR
    if levelno >= logging.WARNING:
        return Level.WARNING
    if levelno >= logging.INFO:
        return Level.INFO
    return Level.DEBUG


def map_breadcrumb_level(levelno: int) -> BreadcrumbLevel:
    """Map logging level to Keplog BreadcrumbLevel."""
    return BreadcrumbLevel(map_level(levelno).value)
