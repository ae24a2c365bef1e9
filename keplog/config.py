"""Configuration handling for Keplog SDK."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from keplog.environment import detect_environment, detect_release, detect_server_name
from keplog.errors import ConfigError
from keplog.types import KeplogOptions

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_TIMEOUT = 5.0
MAX_TIMEOUT = 10.0
MAX_CONNECT_TIMEOUT = 5.0

INGEST_PATH = "/api/ingest/v1/events"

RECOGNIZED_OPTIONS = frozenset(
    {
        "ingest_key",
        "base_url",
        "environment",
        "release",
        "server_name",
        "max_breadcrumbs",
        "enabled",
        "debug",
        "timeout",
        "before_send",
    }
)


def build_options(
    ingest_key: str | None = None,
    base_url: str = DEFAULT_BASE_URL,
    environment: str | None = None,
    release: str | None = None,
    server_name: str | None = None,
    max_breadcrumbs: int = 100,
    enabled: bool = True,
    debug: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
    before_send: Any = None,
) -> KeplogOptions:
    """
    Validate configuration values and fill in defaults.

    Args:
        ingest_key: Credential sent with every event (required)
        base_url: Ingest API base URL
        environment: Defaults to ``APP_ENV``, else ``"production"``
        release: Application release, sent when set
        server_name: Defaults to the host name, else ``"unknown"``
        max_breadcrumbs: Breadcrumb trail capacity
        enabled: Whether capture calls do anything
        debug: Emit diagnostic logging
        timeout: Delivery timeout in seconds, capped at 10
        before_send: Optional ``event -> event | None`` hook

    Returns:
        KeplogOptions ready to build a client

    Raises:
        ConfigError: If a value is missing or invalid
    """
    if not ingest_key:
        raise ConfigError("Keplog ingest key is required")

    if not base_url:
        raise ConfigError("base_url must not be empty")

    if max_breadcrumbs < 0:
        raise ConfigError(f"max_breadcrumbs must be >= 0, got: {max_breadcrumbs}")

    if timeout <= 0:
        raise ConfigError(f"timeout must be positive, got: {timeout}")

    if before_send is not None and not callable(before_send):
        raise ConfigError("before_send must be callable")

    return KeplogOptions(
        ingest_key=ingest_key,
        base_url=base_url.rstrip("/"),
        environment=environment if environment is not None else detect_environment(),
        release=release if release is not None else detect_release(),
        server_name=server_name if server_name is not None else detect_server_name(),
        max_breadcrumbs=max_breadcrumbs,
        enabled=enabled,
        debug=debug,
        timeout=min(float(timeout), MAX_TIMEOUT),
        before_send=before_send,
    )


def options_from_mapping(config: Mapping[str, Any]) -> KeplogOptions:
    """Build options from a plain mapping such as a loaded settings file."""
    unknown = sorted(set(config) - RECOGNIZED_OPTIONS)
    if unknown:
        raise ConfigError(f"Unrecognized option(s): {', '.join(unknown)}")
    return build_options(**config)


def build_ingest_url(base_url: str) -> str:
    """Build the event ingest URL from the base URL."""
    return f"{base_url.rstrip('/')}{INGEST_PATH}"


def connect_timeout(timeout: float) -> float:
    """Connect-phase budget for a delivery attempt."""
    return min(timeout, MAX_CONNECT_TIMEOUT)
