"""Environment detection helpers."""

import os
import socket


def detect_environment() -> str:
    """Return ``APP_ENV`` if set, else ``"production"``."""
    return os.environ.get("APP_ENV") or "production"


def detect_server_name() -> str:
    """Return the host name, or ``"unknown"`` when it cannot be determined."""
    try:
        return socket.gethostname() or "unknown"
    except OSError:
        return "unknown"


def detect_release() -> str | None:
    """Return ``APP_VERSION`` if set."""
    return os.environ.get("APP_VERSION") or None
