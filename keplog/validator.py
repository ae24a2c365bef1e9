"""Size and schema checks applied to events before delivery."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from keplog.errors import ValidationError
from keplog.types import VALID_LEVELS, Event, Level

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 10_000
MAX_STACK_TRACE_LENGTH = 500_000
MAX_CONTEXT_SIZE = 256_000

MESSAGE_TRUNCATION_SUFFIX = "...[truncated]"
STACK_TRACE_TRUNCATION_SUFFIX = "\n...[truncated]"
CONTEXT_TRUNCATED_ERROR = "Context too large and was truncated"


def encode_json(value: Any) -> bytes:
    """Compact UTF-8 JSON, as sent on the wire."""
    return json.dumps(
        value, separators=(",", ":"), ensure_ascii=False, default=str
    ).encode("utf-8")


def validate_event(event: Mapping[str, Any], debug: bool = False) -> Event:
    """
    Validate an event and truncate oversized fields.

    Works on a copy; the input is left untouched. Oversized fields are
    truncated rather than rejected.

    Args:
        event: The event to check
        debug: Log each truncation

    Returns:
        The validated, normalized event

    Raises:
        ValidationError: If the message is missing/empty or the level is unknown
    """
    result: Event = dict(event)

    message = result.get("message")
    if not message or not isinstance(message, str):
        raise ValidationError("Event message is required")

    if len(message) > MAX_MESSAGE_LENGTH:
        result["message"] = message[:MAX_MESSAGE_LENGTH] + MESSAGE_TRUNCATION_SUFFIX
        if debug:
            logger.debug("Message truncated to %d characters", MAX_MESSAGE_LENGTH)

    stack_trace = result.get("stack_trace")
    if isinstance(stack_trace, str) and len(stack_trace) > MAX_STACK_TRACE_LENGTH:
        result["stack_trace"] = stack_trace[:MAX_STACK_TRACE_LENGTH] + STACK_TRACE_TRUNCATION_SUFFIX
        if debug:
            logger.debug("Stack trace truncated to %d characters", MAX_STACK_TRACE_LENGTH)

    if "context" in result:
        context_size = len(encode_json(result["context"]))
        if context_size > MAX_CONTEXT_SIZE:
            result["context"] = {
                "_error": CONTEXT_TRUNCATED_ERROR,
                "_original_size": context_size,
                "_max_size": MAX_CONTEXT_SIZE,
            }
            if debug:
                logger.debug(
                    "Context of %d bytes replaced, limit is %d", context_size, MAX_CONTEXT_SIZE
                )

    level = result.get("level")
    if isinstance(level, Level):
        level = result["level"] = level.value
    if level not in VALID_LEVELS:
        raise ValidationError(
            f"Invalid level: {level}. Must be one of: {', '.join(sorted(VALID_LEVELS))}"
        )

    return normalize_event(result)


def normalize_event(event: Event) -> Event:
    """Make an empty context serialize as a JSON object, never an array or null."""
    if "context" in event and not event["context"]:
        event["context"] = {}
    return event
