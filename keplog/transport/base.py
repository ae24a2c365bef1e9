"""Base transport for Keplog SDK."""

import secrets
import time
from abc import ABC, abstractmethod
from typing import Any

from keplog.config import MAX_TIMEOUT


class BaseTransport(ABC):
    """Abstract base class for transports.

    A transport makes exactly one delivery attempt per event. ``send`` returns
    an event id on acceptance and raises ``DeliveryError`` otherwise.
    """

    def __init__(
        self,
        url: str,
        ingest_key: str,
        timeout: float = 5.0,
        debug: bool = False,
    ) -> None:
        self.url = url
        self.ingest_key = ingest_key
        self.timeout = min(timeout, MAX_TIMEOUT)
        self.debug = debug

    @abstractmethod
    def send(self, event: dict[str, Any]) -> str:
        """Deliver one validated event. Must be implemented by subclasses."""

    def close(self) -> None:
        """Release any resources held by the transport."""


def generate_event_id() -> str:
    """Local event id: ``evt_<unix-seconds>_<8 hex chars>``."""
    return f"evt_{int(time.time())}_{secrets.token_hex(4)}"
