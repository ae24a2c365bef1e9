"""Scope management for Keplog SDK."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from keplog.errors import ReservedKeyError
from keplog.types import LOCAL_OVERRIDE_KEYS, RESERVED_CONTEXT_KEYS


def check_reserved_keys(keys: Iterable[str], allowed: Iterable[str] = ()) -> None:
    """Raise ReservedKeyError for the first reserved key not in ``allowed``."""
    allowed = frozenset(allowed)
    for key in keys:
        if key in RESERVED_CONTEXT_KEYS and key not in allowed:
            raise ReservedKeyError(key)


@dataclass
class Scope:
    """
    Scope manages contextual data for events.

    Includes free-form context, tags and user info. Context keys owned by the
    SDK (see ``RESERVED_CONTEXT_KEYS``) cannot be set here.
    """

    context: dict[str, Any] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    user: dict[str, Any] | None = None

    def set_context(self, key: str, value: Any) -> None:
        """Set a context value."""
        check_reserved_keys([key])
        self.context[key] = value

    def set_tag(self, key: str, value: str) -> None:
        """Set a tag."""
        self.tags[key] = value

    def set_tags(self, tags: Mapping[str, str]) -> None:
        """Set multiple tags."""
        self.tags.update(tags)

    def set_user(self, user: Mapping[str, Any] | None) -> None:
        """Set user context, replacing any previous user."""
        self.user = dict(user) if user is not None else None

    def clear(self) -> None:
        """Clear all scope data."""
        self.context = {}
        self.tags = {}
        self.user = None

    def clone(self) -> Scope:
        """Clone scope for isolation."""
        return Scope(
            context=copy.deepcopy(self.context),
            tags=dict(self.tags),
            user=copy.deepcopy(self.user),
        )

    def merge(self, local_context: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """
        Layer a capture call's local context on top of this scope.

        Local values win over scope values, for plain keys as well as for
        individual tags and user fields. ``tags`` and ``user`` are only present
        in the result when there is something to put in them.

        Args:
            local_context: Context passed at capture time. May carry ``tags``,
                ``user``, ``request`` and ``queries`` overrides.

        Returns:
            A new merged context dict sharing no objects with the scope

        Raises:
            ReservedKeyError: If ``local_context`` names any other reserved key
        """
        local = dict(local_context or {})
        check_reserved_keys(local, allowed=LOCAL_OVERRIDE_KEYS)

        local_tags = local.pop("tags", None) or {}
        local_user = local.pop("user", None) or {}

        merged = {**self.context, **local}

        if self.tags or local_tags:
            merged["tags"] = {**self.tags, **local_tags}

        if self.user is not None or local_user:
            merged["user"] = {**(self.user or {}), **local_user}

        return copy.deepcopy(merged)
