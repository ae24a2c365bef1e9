"""Type definitions for Keplog SDK."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

# Events travel as plain dicts so before_send hooks can add or drop any field.
Event = dict[str, Any]

# Context keys owned by the SDK's own instrumentation. User code may not set them.
RESERVED_CONTEXT_KEYS = frozenset(
    {"exception_class", "frames", "queries", "request", "breadcrumbs"}
)

# Reserved keys a capture call may still pass as structured overrides.
LOCAL_OVERRIDE_KEYS = frozenset({"user", "request", "queries"})

# Keys routed into the event's "context"; everything else goes to "extra_context".
SYSTEM_CONTEXT_KEYS = RESERVED_CONTEXT_KEYS | {"user"}


class Level(str, Enum):
    """Event severity levels accepted by the ingest API."""

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"


VALID_LEVELS = frozenset(level.value for level in Level)


class BreadcrumbType(str, Enum):
    """Types of breadcrumbs."""

    HTTP = "http"
    NAVIGATION = "navigation"
    QUERY = "query"
    ERROR = "error"
    DEFAULT = "default"


class BreadcrumbLevel(str, Enum):
    """Breadcrumb severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class CaptureState(str, Enum):
    """Capture state of a client instance."""

    IDLE = "idle"
    CAPTURING = "capturing"


@dataclass
class StackFrame:
    """A single stack frame."""

    file: str
    line: int
    function: str | None = None
    class_name: str | None = None
    call_type: str | None = None
    code_snippet: dict[int, str] | None = None
    is_vendor: bool = False

    @property
    def is_application(self) -> bool:
        return not self.is_vendor

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "file": self.file,
            "line": self.line,
            "function": self.function,
            "class": self.class_name,
            "type": self.call_type,
        }
        if self.code_snippet is not None:
            result["code_snippet"] = self.code_snippet
        result["is_vendor"] = self.is_vendor
        result["is_application"] = self.is_application
        return result


@dataclass
class KeplogOptions:
    """Configuration options for Keplog SDK.

    Construct through :func:`keplog.config.build_options` (or ``keplog.init``),
    which validates values and fills the environment-derived defaults.
    """

    ingest_key: str
    base_url: str = "http://localhost:8080"
    environment: str = "production"
    release: str | None = None
    server_name: str = "unknown"
    max_breadcrumbs: int = 100
    enabled: bool = True
    debug: bool = False
    timeout: float = 5.0
    before_send: Callable[[Event], Event | None] | None = field(
        default=None, repr=False
    )
