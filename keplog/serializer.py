"""Turn exceptions and messages into Keplog events."""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from keplog.scope import Scope
from keplog.stacktrace import Fault, format_stack_trace
from keplog.types import SYSTEM_CONTEXT_KEYS, Event, Level

UNKNOWN_ERROR_MESSAGE = "Unknown error"


def serialize_exception(
    error: BaseException,
    level: Level | str,
    scope: Scope,
    breadcrumbs: Sequence[Mapping[str, Any]],
    local_context: Mapping[str, Any] | None = None,
    environment: str | None = None,
    server_name: str | None = None,
    release: str | None = None,
) -> Event:
    """Serialize an exception into an event."""
    return serialize_fault(
        Fault.from_exception(error),
        level,
        scope,
        breadcrumbs,
        local_context=local_context,
        environment=environment,
        server_name=server_name,
        release=release,
    )


def serialize_fault(
    fault: Fault,
    level: Level | str,
    scope: Scope,
    breadcrumbs: Sequence[Mapping[str, Any]],
    local_context: Mapping[str, Any] | None = None,
    environment: str | None = None,
    server_name: str | None = None,
    release: str | None = None,
) -> Event:
    """
    Serialize a fault into an event.

    Merges the scope with ``local_context`` and splits the result into
    SDK-managed ``context`` and user-defined ``extra_context``. The fault's
    class, structured frames and an (empty unless provided) ``queries`` list
    are added to ``context``.

    Args:
        fault: The fault to report
        level: Severity level
        scope: Client scope (context, tags, user)
        breadcrumbs: Breadcrumbs recorded so far, oldest first
        local_context: Context for this capture only
        environment: Sent when not None
        server_name: Sent when not None
        release: Sent when not None

    Returns:
        The event dict
    """
    system_context, extra_context = _split_context(scope.merge(local_context))

    system_context["exception_class"] = fault.type_name
    system_context["frames"] = [frame.to_dict() for frame in fault.frames]
    system_context.setdefault("queries", [])

    event: Event = {
        "message": fault.message or UNKNOWN_ERROR_MESSAGE,
        "level": _level_value(level),
    }

    stack_trace = format_stack_trace(fault)
    if stack_trace is not None:
        event["stack_trace"] = stack_trace

    return _finish_event(
        event, system_context, extra_context, breadcrumbs, environment, server_name, release
    )


def serialize_message(
    message: str,
    level: Level | str,
    scope: Scope,
    breadcrumbs: Sequence[Mapping[str, Any]],
    local_context: Mapping[str, Any] | None = None,
    environment: str | None = None,
    server_name: str | None = None,
    release: str | None = None,
) -> Event:
    """Serialize a message (no stack trace) into an event."""
    system_context, extra_context = _split_context(scope.merge(local_context))

    event: Event = {
        "message": message,
        "level": _level_value(level),
    }

    return _finish_event(
        event, system_context, extra_context, breadcrumbs, environment, server_name, release
    )


def _split_context(merged: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    system_context: dict[str, Any] = {}
    extra_context: dict[str, Any] = {}
    for key, value in merged.items():
        if key in SYSTEM_CONTEXT_KEYS:
            system_context[key] = value
        else:
            extra_context[key] = value
    return system_context, extra_context


def _finish_event(
    event: Event,
    system_context: dict[str, Any],
    extra_context: dict[str, Any],
    breadcrumbs: Sequence[Mapping[str, Any]],
    environment: str | None,
    server_name: str | None,
    release: str | None,
) -> Event:
    if breadcrumbs:
        system_context["breadcrumbs"] = [copy.deepcopy(dict(crumb)) for crumb in breadcrumbs]

    event["context"] = system_context
    event["timestamp"] = format_timestamp(datetime.now(timezone.utc))

    if extra_context:
        event["extra_context"] = extra_context

    if environment is not None:
        event["environment"] = environment

    if server_name is not None:
        event["server_name"] = server_name

    if release is not None:
        event["release"] = release

    return event


def _level_value(level: Level | str) -> str:
    return level.value if isinstance(level, Level) else level


def format_timestamp(moment: datetime) -> str:
    """UTC timestamp with second precision, e.g. ``2024-01-01T12:00:00Z``."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
