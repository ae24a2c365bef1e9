"""Stack trace extraction and formatting."""

from __future__ import annotations

import linecache
import traceback
from dataclasses import dataclass, field
from types import FrameType, TracebackType
from typing import Any

from keplog.types import StackFrame

VENDOR_SEGMENTS = ("/vendor/", "/site-packages/", "/dist-packages/")

DEFAULT_CONTEXT_LINES = 3


@dataclass(frozen=True)
class Fault:
    """
    Read-only description of a raised exception.

    The serializer works from this rather than from the live exception, so
    events can be built for faults that did not come from this interpreter.
    """

    type_name: str
    message: str
    file: str | None = None
    line: int | None = None
    frames: list[StackFrame] = field(default_factory=list)
    trace_text: str | None = None

    @classmethod
    def from_exception(
        cls,
        error: BaseException,
        context_lines: int = DEFAULT_CONTEXT_LINES,
    ) -> Fault:
        """Build a Fault from an exception and its traceback."""
        entries = _walk_traceback(error.__traceback__)

        file: str | None = None
        line: int | None = None
        if entries:
            origin, origin_line = entries[-1]
            file = origin.f_code.co_filename
            line = origin_line

        # Most recent call first
        frames = [
            parse_frame(frame, lineno, context_lines)
            for frame, lineno in reversed(entries)
        ]

        trace_text = "".join(traceback.format_tb(error.__traceback__)).rstrip("\n")

        return cls(
            type_name=exception_type_name(error),
            message=str(error),
            file=file,
            line=line,
            frames=frames,
            trace_text=trace_text or None,
        )


def _walk_traceback(tb: TracebackType | None) -> list[tuple[FrameType, int]]:
    entries: list[tuple[FrameType, int]] = []
    while tb is not None:
        entries.append((tb.tb_frame, tb.tb_lineno))
        tb = tb.tb_next
    return entries


def exception_type_name(error: BaseException) -> str:
    """Qualified type name; builtins are left unqualified."""
    exc_type = type(error)
    module = exc_type.__module__
    if module in ("builtins", "__main__"):
        return exc_type.__qualname__
    return f"{module}.{exc_type.__qualname__}"


def format_stack_trace(fault: Fault) -> str | None:
    """
    Render a human-readable stack trace.

    Format::

        <Type>: <message> in <file>:<line>

        Stack trace:
        <formatted frames>

    Returns None when the fault carries no stack.
    """
    if not fault.trace_text:
        return None

    return (
        f"{fault.type_name}: {fault.message} in {fault.file}:{fault.line}"
        f"\n\nStack trace:\n{fault.trace_text}"
    )


def parse_frame(
    frame: FrameType,
    lineno: int,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> StackFrame:
    """Build a structured StackFrame from a live frame."""
    filename = frame.f_code.co_filename
    class_name, call_type = _frame_owner(frame.f_locals)

    return StackFrame(
        file=filename or "unknown",
        line=lineno,
        function=frame.f_code.co_name,
        class_name=class_name,
        call_type=call_type,
        code_snippet=extract_code_snippet(filename, lineno, context_lines, frame.f_globals),
        is_vendor=is_vendor_frame(filename),
    )


def _frame_owner(f_locals: dict[str, Any]) -> tuple[str | None, str | None]:
    if "self" in f_locals:
        return type(f_locals["self"]).__name__, "instance"
    owner = f_locals.get("cls")
    if isinstance(owner, type):
        return owner.__name__, "class"
    return None, None


def extract_code_snippet(
    filename: str,
    lineno: int,
    context_lines: int = DEFAULT_CONTEXT_LINES,
    module_globals: dict[str, Any] | None = None,
) -> dict[int, str] | None:
    """
    Source lines around ``lineno``, keyed by 1-based line number.

    Returns None when the source cannot be read.
    """
    if not filename or lineno < 1:
        return None

    lines = linecache.getlines(filename, module_globals)
    if not lines:
        return None

    start = max(0, lineno - context_lines - 1)
    end = min(len(lines), lineno + context_lines)
    snippet = {i + 1: lines[i].rstrip("\r\n") for i in range(start, end)}
    return snippet or None


def is_vendor_frame(filename: str | None) -> bool:
    """Check if a frame comes from third-party code."""
    if not filename:
        return False

    normalized = filename.replace("\\", "/")
    return any(segment in normalized for segment in VENDOR_SEGMENTS)
