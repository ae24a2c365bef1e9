"""Shared fixtures for Keplog SDK tests."""

from typing import Any, Callable

import pytest

import keplog.client as client_module
from keplog.client import KeplogClient
from keplog.config import build_options
from keplog.transport.base import BaseTransport


class RecordingTransport(BaseTransport):
    """Transport that records events instead of sending them."""

    def __init__(self, event_id: str = "evt_1700000000_deadbeef") -> None:
        super().__init__(
            url="http://localhost:8080/api/ingest/v1/events",
            ingest_key="kep_ingest_test",
        )
        self.event_id = event_id
        self.events: list[dict[str, Any]] = []
        self.error: Exception | None = None
        self.closed = False

    def send(self, event: dict[str, Any]) -> str:
        self.events.append(event)
        if self.error is not None:
            raise self.error
        return self.event_id

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def reset_global_client():
    """Reset the global client before each test to avoid stale state."""
    client_module._client = None
    yield
    client_module._client = None


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def make_client(
    transport: RecordingTransport, monkeypatch: pytest.MonkeyPatch
) -> Callable[..., KeplogClient]:
    """Build a client wired to the recording transport."""
    monkeypatch.delenv("APP_VERSION", raising=False)

    def _make(**overrides: Any) -> KeplogClient:
        options = {
            "ingest_key": "kep_ingest_test",
            "environment": "testing",
            "server_name": "test-host",
        }
        options.update(overrides)
        return KeplogClient(build_options(**options), transport=transport)

    return _make


@pytest.fixture
def client(make_client: Callable[..., KeplogClient]) -> KeplogClient:
    return make_client()
