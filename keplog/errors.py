"""Exception types raised by Keplog SDK.

Only ``ConfigError`` and ``ReservedKeyError`` ever reach application code.
The rest are raised inside a capture call and contained by the client.
"""

from __future__ import annotations


class KeplogError(Exception):
    """Base class for all Keplog SDK errors."""


class ConfigError(KeplogError, ValueError):
    """Client configuration is missing or invalid."""


class ReservedKeyError(KeplogError, ValueError):
    """User code tried to write an SDK-managed context key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"'{key}' is a reserved context key and cannot be set directly")
        self.key = key


class ValidationError(KeplogError):
    """Event is structurally invalid and cannot be sent."""


class FilterError(KeplogError):
    """The before_send hook raised."""


class DeliveryError(KeplogError):
    """Event could not be delivered to the ingest API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
