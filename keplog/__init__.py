"""
Keplog SDK for Python

Error tracking for your Python applications.

Usage:
    import keplog

    # Initialize with your ingest key
    keplog.init(ingest_key="kep_ingest_abc123", environment="production")

    # Capture exceptions
    try:
        risky_operation()
    except Exception as e:
        keplog.capture_exception(e, context={"order_id": "123"})

    # Capture messages
    keplog.capture_message("User logged in", level="info")

    # Set user context
    keplog.set_user({"id": "user-123", "email": "user@example.com"})

    # Leave a trail
    keplog.add_breadcrumb({"category": "auth", "message": "Login attempt"})
"""

from keplog.client import (
    KeplogClient,
    init,
    capture_exception,
    capture_message,
    add_breadcrumb,
    set_context,
    set_tag,
    set_tags,
    set_user,
    clear_scope,
    close,
    get_client,
)
from keplog.errors import (
    ConfigError,
    DeliveryError,
    FilterError,
    KeplogError,
    ReservedKeyError,
    ValidationError,
)
from keplog.scope import Scope
from keplog.types import (
    KeplogOptions,
    Level,
    BreadcrumbType,
    BreadcrumbLevel,
    RESERVED_CONTEXT_KEYS,
)

__version__ = "0.1.0"
__all__ = [
    # Core
    "KeplogClient",
    "init",
    "capture_exception",
    "capture_message",
    "add_breadcrumb",
    "set_context",
    "set_tag",
    "set_tags",
    "set_user",
    "clear_scope",
    "close",
    "get_client",
    # Scope
    "Scope",
    # Errors
    "KeplogError",
    "ConfigError",
    "ReservedKeyError",
    "ValidationError",
    "FilterError",
    "DeliveryError",
    # Types
    "KeplogOptions",
    "Level",
    "BreadcrumbType",
    "BreadcrumbLevel",
    "RESERVED_CONTEXT_KEYS",
]
