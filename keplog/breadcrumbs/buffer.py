"""Ring buffer for breadcrumbs."""

from __future__ import annotations

import copy
import time
from collections import deque
from collections.abc import Mapping
from typing import Any

from keplog.types import BreadcrumbLevel, BreadcrumbType


class BreadcrumbBuffer:
    """
    Ring buffer for breadcrumbs.

    Automatically removes oldest entries when capacity is reached.
    """

    def __init__(self, max_size: int = 100) -> None:
        self._max_size = max(0, max_size)
        self._buffer: deque[dict[str, Any]] = deque()

    def add(self, breadcrumb: Mapping[str, Any]) -> None:
        """Add a deep copy of a breadcrumb, stamping ``timestamp`` if missing or None."""
        crumb = copy.deepcopy(dict(breadcrumb))
        if crumb.get("timestamp") is None:
            crumb["timestamp"] = int(time.time())
        self._buffer.append(crumb)

        # Remove oldest if over capacity
        while len(self._buffer) > self._max_size:
            self._buffer.popleft()

    def get_all(self) -> list[dict[str, Any]]:
        """Get all breadcrumbs (oldest first)."""
        return copy.deepcopy(list(self._buffer))

    def clear(self) -> None:
        """Clear all breadcrumbs."""
        self._buffer.clear()

    @property
    def count(self) -> int:
        """Get current count."""
        return len(self._buffer)

    @property
    def capacity(self) -> int:
        """Get max capacity."""
        return self._max_size


def create_http_breadcrumb(
    method: str,
    url: str,
    status_code: int | None = None,
    duration_ms: float | None = None,
) -> dict[str, Any]:
    """Create an HTTP breadcrumb."""
    level = BreadcrumbLevel.ERROR if status_code and status_code >= 400 else BreadcrumbLevel.INFO

    data: dict[str, Any] = {
        "method": method,
        "url": url,
    }
    if status_code is not None:
        data["status_code"] = status_code
    if duration_ms is not None:
        data["duration_ms"] = duration_ms

    return {
        "type": BreadcrumbType.HTTP.value,
        "category": "http",
        "message": f"{method} {url}",
        "data": data,
        "level": level.value,
    }


def create_query_breadcrumb(
    query: str,
    duration_ms: float | None = None,
    rows_affected: int | None = None,
) -> dict[str, Any]:
    """Create a database query breadcrumb."""
    data: dict[str, Any] = {"query": query}
    if duration_ms is not None:
        data["duration_ms"] = duration_ms
    if rows_affected is not None:
        data["rows_affected"] = rows_affected

    return {
        "type": BreadcrumbType.QUERY.value,
        "category": "db.query",
        "message": query[:100] + "..." if len(query) > 100 else query,
        "data": data,
        "level": BreadcrumbLevel.INFO.value,
    }
