"""Transport module for Keplog SDK."""

from keplog.transport.base import BaseTransport, generate_event_id
from keplog.transport.http import HttpTransport, create_http_transport

__all__ = ["BaseTransport", "HttpTransport", "create_http_transport", "generate_event_id"]
