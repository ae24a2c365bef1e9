"""Report uncaught exceptions through ``sys.excepthook``."""

from __future__ import annotations

import sys
from types import TracebackType
from typing import Any

from keplog.client import get_client
from keplog.types import Level

_previous_hook: Any = None


def _report_uncaught(
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_tb: TracebackType | None,
) -> None:
    client = get_client()
    # Ctrl-C is a user action, not an application fault
    if client is not None and not issubclass(exc_type, KeyboardInterrupt):
        client.capture_exception(exc_value, level=Level.CRITICAL)

    if _previous_hook is not None:
        _previous_hook(exc_type, exc_value, exc_tb)


def install_excepthook() -> None:
    """Route uncaught exceptions to the active client, then to the previous hook.

    Calling it again while installed does nothing.
    """
    global _previous_hook

    if _previous_hook is not None:
        return

    _previous_hook = sys.excepthook
    sys.excepthook = _report_uncaught


def uninstall_excepthook() -> None:
    """Restore the hook that was active before :func:`install_excepthook`."""
    global _previous_hook

    if _previous_hook is None:
        return

    sys.excepthook = _previous_hook
    _previous_hook = None
