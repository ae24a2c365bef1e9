"""Main Keplog client for Python SDK."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from keplog.breadcrumbs.buffer import BreadcrumbBuffer
from keplog.config import build_options
from keplog.errors import ConfigError, DeliveryError, FilterError, ValidationError
from keplog.scope import Scope
from keplog.serializer import serialize_exception, serialize_message
from keplog.transport.base import BaseTransport
from keplog.transport.http import create_http_transport
from keplog.types import CaptureState, Event, KeplogOptions, Level
from keplog.validator import validate_event

logger = logging.getLogger(__name__)

# Global client instance
_client: KeplogClient | None = None


class KeplogClient:
    """Main Keplog client implementation.

    Capture calls never raise: any failure while building, filtering or
    sending an event is logged (in debug mode) and reported as ``None``.
    """

    def __init__(
        self,
        options: KeplogOptions,
        transport: BaseTransport | None = None,
    ) -> None:
        if not options.ingest_key:
            raise ConfigError("Keplog ingest key is required")

        self.options = options
        self._enabled = options.enabled
        self._state = CaptureState.IDLE

        self._breadcrumbs = BreadcrumbBuffer(max_size=options.max_breadcrumbs)
        self._scope = Scope()

        self._transport = transport or create_http_transport(
            base_url=options.base_url,
            ingest_key=options.ingest_key,
            timeout=options.timeout,
            debug=options.debug,
        )

        self._debug(
            "Client initialized: environment=%s server_name=%s release=%s",
            options.environment,
            options.server_name,
            options.release,
        )

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def breadcrumbs(self) -> BreadcrumbBuffer:
        return self._breadcrumbs

    @property
    def state(self) -> CaptureState:
        return self._state

    def capture_exception(
        self,
        error: BaseException,
        context: Mapping[str, Any] | None = None,
        level: Level | str = Level.ERROR,
    ) -> str | None:
        """
        Capture an exception.

        Args:
            error: The exception to report
            context: Context for this event only; may carry ``tags``,
                ``user``, ``request`` and ``queries`` overrides
            level: Severity level

        Returns:
            Event id if the event was accepted, otherwise None
        """
        if not self._enabled:
            return None

        # An error raised while this client is already capturing must not be
        # captured again, or a failing pipeline would loop forever.
        if self._state is CaptureState.CAPTURING:
            self._debug("Recursion detected: SDK error will not be captured")
            return None

        with self._capturing():
            return self._process(
                lambda: serialize_exception(
                    error,
                    level,
                    self._scope,
                    self._breadcrumbs.get_all(),
                    local_context=context,
                    environment=self.options.environment,
                    server_name=self.options.server_name,
                    release=self.options.release,
                ),
                kind="exception",
            )

    def capture_message(
        self,
        message: str,
        level: Level | str = Level.INFO,
        context: Mapping[str, Any] | None = None,
    ) -> str | None:
        """Capture a message (without stack trace)."""
        if not self._enabled:
            return None

        return self._process(
            lambda: serialize_message(
                message,
                level,
                self._scope,
                self._breadcrumbs.get_all(),
                local_context=context,
                environment=self.options.environment,
                server_name=self.options.server_name,
                release=self.options.release,
            ),
            kind="message",
        )

    @contextmanager
    def _capturing(self) -> Iterator[None]:
        """Hold the CAPTURING state for the duration of one capture."""
        self._state = CaptureState.CAPTURING
        try:
            yield
        finally:
            self._state = CaptureState.IDLE

    def _process(self, build: Callable[[], Event], kind: str) -> str | None:
        """Build, filter, validate and send one event."""
        try:
            event = build()

            filtered = self._apply_before_send(event)
            if not filtered:
                self._debug("Event dropped by before_send")
                return None

            event_id = self._transport.send(
                validate_event(filtered, debug=self.options.debug)
            )
        except FilterError as e:
            self._debug("before_send callback raised: %s", e.__cause__)
            return None
        except ValidationError as e:
            self._debug("Invalid event: %s", e)
            return None
        except DeliveryError as e:
            self._log_delivery_failure(e)
            return None
        except Exception as e:
            self._debug("Failed to capture %s: %s", kind, e)
            return None

        self._debug("Captured %s: %s", kind, event_id)
        return event_id

    def _apply_before_send(self, event: Event) -> Event | None:
        before_send = self.options.before_send
        if before_send is None:
            return event
        try:
            return before_send(event)
        except Exception as e:
            raise FilterError("before_send callback raised") from e

    def _log_delivery_failure(self, error: DeliveryError) -> None:
        if not self.options.debug:
            return

        if error.status_code == 401:
            logger.warning("Invalid ingest key - please check your configuration")
        elif error.status_code == 400:
            logger.warning("Validation error: %s", _error_detail(error.body))
        else:
            logger.warning("Failed to deliver event: %s", error)

    def add_breadcrumb(self, breadcrumb: Mapping[str, Any]) -> None:
        """Add a breadcrumb."""
        if not self._enabled:
            return

        self._breadcrumbs.add(breadcrumb)
        self._debug("Breadcrumb added: %s", breadcrumb)

    def set_context(self, key: str, value: Any) -> None:
        """Set a context value. Raises ReservedKeyError for SDK-managed keys."""
        self._scope.set_context(key, value)

    def set_tag(self, key: str, value: str) -> None:
        """Set a tag."""
        self._scope.set_tag(key, value)

    def set_tags(self, tags: Mapping[str, str]) -> None:
        """Set multiple tags."""
        self._scope.set_tags(tags)

    def set_user(self, user: Mapping[str, Any] | None) -> None:
        """Set user context."""
        self._scope.set_user(user)
        self._debug("User set: %s", user.get("id") if user else None)

    def clear_scope(self) -> None:
        """Clear scope data and breadcrumbs."""
        self._scope.clear()
        self._breadcrumbs.clear()
        self._debug("Scope cleared")

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable error tracking."""
        self._enabled = enabled
        self._debug("Tracking %s", "enabled" if enabled else "disabled")

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def close(self) -> None:
        """Close the client."""
        self._transport.close()
        self._debug("Client closed")

    def _debug(self, msg: str, *args: Any) -> None:
        if self.options.debug:
            logger.debug(msg, *args)


def _error_detail(body: str | None) -> str:
    try:
        data = json.loads(body or "")
    except ValueError:
        return "Unknown error"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return "Unknown error"


def init(
    ingest_key: str | None = None,
    base_url: str = "http://localhost:8080",
    environment: str | None = None,
    release: str | None = None,
    server_name: str | None = None,
    max_breadcrumbs: int = 100,
    enabled: bool = True,
    debug: bool = False,
    timeout: float = 5.0,
    before_send: Callable[[Event], Event | None] | None = None,
) -> KeplogClient:
    """Initialize the Keplog SDK."""
    global _client

    options = build_options(
        ingest_key=ingest_key,
        base_url=base_url,
        environment=environment,
        release=release,
        server_name=server_name,
        max_breadcrumbs=max_breadcrumbs,
        enabled=enabled,
        debug=debug,
        timeout=timeout,
        before_send=before_send,
    )

    if _client:
        _client.close()

    _client = KeplogClient(options)
    return _client


def get_client() -> KeplogClient | None:
    """Get the current client."""
    return _client


def capture_exception(
    error: BaseException,
    context: Mapping[str, Any] | None = None,
    level: Level | str = Level.ERROR,
) -> str | None:
    """Capture an exception."""
    if not _client:
        return None
    return _client.capture_exception(error, context=context, level=level)


def capture_message(
    message: str,
    level: Level | str = Level.INFO,
    context: Mapping[str, Any] | None = None,
) -> str | None:
    """Capture a message."""
    if not _client:
        return None
    return _client.capture_message(message, level=level, context=context)


def add_breadcrumb(breadcrumb: Mapping[str, Any]) -> None:
    """Add a breadcrumb."""
    if not _client:
        return
    _client.add_breadcrumb(breadcrumb)


def set_context(key: str, value: Any) -> None:
    """Set a context value."""
    if not _client:
        return
    _client.set_context(key, value)


def set_tag(key: str, value: str) -> None:
    """Set a tag."""
    if not _client:
        return
    _client.set_tag(key, value)


def set_tags(tags: Mapping[str, str]) -> None:
    """Set multiple tags."""
    if not _client:
        return
    _client.set_tags(tags)


def set_user(user: Mapping[str, Any] | None) -> None:
    """Set user context."""
    if not _client:
        return
    _client.set_user(user)


def clear_scope() -> None:
    """Clear scope data and breadcrumbs."""
    if not _client:
        return
    _client.clear_scope()


def close() -> None:
    """Close the SDK."""
    global _client
    if not _client:
        return
    client = _client
    _client = None
    client.close()
