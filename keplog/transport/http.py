"""HTTP transport for Keplog SDK."""

import logging
from typing import Any

import httpx

from keplog.config import build_ingest_url, connect_timeout
from keplog.errors import DeliveryError
from keplog.transport.base import BaseTransport, generate_event_id
from keplog.validator import encode_json

logger = logging.getLogger(__name__)

ACCEPTED_STATUS = 202


class HttpTransport(BaseTransport):
    """HTTP transport - posts each event to the ingest API."""

    def __init__(
        self,
        url: str,
        ingest_key: str,
        timeout: float = 5.0,
        debug: bool = False,
    ) -> None:
        super().__init__(
            url=url,
            ingest_key=ingest_key,
            timeout=timeout,
            debug=debug,
        )
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout, connect=connect_timeout(self.timeout))
            )
        return self._client

    def send(self, event: dict[str, Any]) -> str:
        """Send event via HTTP POST."""
        client = self._get_client()

        if self.debug:
            logger.debug("Sending event to %s", self.url)

        try:
            response = client.post(
                self.url,
                content=encode_json(event),
                headers={
                    "Content-Type": "application/json",
                    "X-Ingest-Key": self.ingest_key,
                },
            )
        except httpx.HTTPError as e:
            raise DeliveryError(f"Failed to send event: {e}") from e

        if response.status_code != ACCEPTED_STATUS:
            raise DeliveryError(
                f"Unexpected response status: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        if self.debug:
            logger.debug("Event queued successfully: %s", response.text)

        return generate_event_id()

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None


def create_http_transport(
    base_url: str,
    ingest_key: str,
    timeout: float = 5.0,
    debug: bool = False,
) -> HttpTransport:
    """Create HTTP transport pointed at the ingest endpoint of ``base_url``."""
    return HttpTransport(
        url=build_ingest_url(base_url),
        ingest_key=ingest_key,
        timeout=timeout,
        debug=debug,
    )
