"""
Exception taxonomy for push gateways.

None of these escape PushDispatcher.push(); they exist so the adapter
and decoder code can route failures into a DeliveryStatus.
"""

from typing import Optional


class PushError(Exception):
    """Base class for pushbridge errors."""


class TransportError(PushError):
    """No response was obtained from the gateway.

    Attributes:
        message: Error message from the HTTP client
        kind: "timeout", "connect" or "http"
    """

    TIMEOUT = "timeout"
    CONNECT = "connect"
    HTTP = "http"

    def __init__(self, message: str, kind: str = HTTP):
        super().__init__(message)
        self.message = message
        self.kind = kind

    @property
    def is_timeout(self) -> bool:
        return self.kind == self.TIMEOUT


class BatchProtocolError(PushError):
    """A response was obtained but violates the gateway's wire contract."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigurationError(PushError):
    """A dispatcher cannot be built from the supplied configuration."""
