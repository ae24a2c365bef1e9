"""Integrations module for Keplog SDK."""

from keplog.integrations.excepthook import install_excepthook, uninstall_excepthook
from keplog.integrations.logging import KeplogLoggingHandler

__all__ = ["install_excepthook", "uninstall_excepthook", "KeplogLoggingHandler"]
