"""
Shared models for push notification gateways.

DeliveryStatus is the common currency between every gateway decoder and
the caller. TransportResponse is the gateway-agnostic view of one HTTP
answer (or of its absence).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel, Field, field_validator


class DeliveryStatus(str, Enum):
    """Unified per-endpoint delivery status."""

    SUCCESS = "success"
    ERROR = "error"  # Permanent, not endpoint specific (bad request, auth)
    TEMPORARY_ERROR = "temporary_error"  # Retryable (rate limit, overload, timeout)
    INVALID_ENDPOINT = "invalid_endpoint"  # Token/address permanently unusable
    CLIENT_ERROR = "client_error"  # Accepted by gateway, client precondition failed
    UNKNOWN = "unknown"  # No information, including never queried

    @property
    def is_retryable(self) -> bool:
        """True when the caller may re-drive the push later."""
        return self is DeliveryStatus.TEMPORARY_ERROR

    @property
    def is_permanent(self) -> bool:
        """True when re-driving the same push cannot succeed."""
        return self in (DeliveryStatus.ERROR, DeliveryStatus.INVALID_ENDPOINT)


def status_for_http_code(status_code: Optional[int]) -> DeliveryStatus:
    """
    Batch-level fallback from an HTTP status code to a DeliveryStatus.

    Gateways refine this with their own reason codes; 404 only means an
    invalid endpoint for gateways that address the device in the URL.

    Args:
        status_code: HTTP status, or None when no response was obtained

    Returns:
        DeliveryStatus for every endpoint of the batch
    """
    if status_code is None:
        return DeliveryStatus.UNKNOWN
    if status_code in (400, 401, 403):
        return DeliveryStatus.ERROR
    if status_code == 404:
        return DeliveryStatus.INVALID_ENDPOINT
    if status_code in (406, 412, 429) or status_code >= 500:
        return DeliveryStatus.TEMPORARY_ERROR
    return DeliveryStatus.UNKNOWN


@dataclass
class TransportResponse:
    """
    One gateway HTTP response.

    A placeholder with status_code None stands in for "no answer" when the
    transport failed; status_code 500 is forced for timeouts.

    Attributes:
        status_code: HTTP status code or None
        body: Raw response body
        headers: Case-insensitive response headers
        url: URL the request was sent to
        transport_error: Message of the transport failure for placeholders
    """

    status_code: Optional[int] = None
    body: bytes = b""
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    url: str = ""
    transport_error: Optional[str] = None

    @property
    def success(self) -> bool:
        """True for a 2xx answer."""
        return self.status_code is not None and 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def is_placeholder(self) -> bool:
        """True when this stands in for a failed request (already logged)."""
        return self.transport_error is not None

    @classmethod
    def placeholder(
        cls,
        url: str,
        error: str,
        status_code: Optional[int] = None,
    ) -> "TransportResponse":
        """Build the stand-in response used after a transport failure."""
        return cls(status_code=status_code, url=url, transport_error=error)


class APNSConfig(BaseModel):
    """Configuration for the APNS dispatcher.

    Attributes:
        key_file: Path to the .p8 auth key file
        key_id: 10-character key identifier from Apple Developer Portal
        team_id: 10-character team identifier
        bundle_id: App bundle identifier, sent as apns-topic
        use_sandbox: Whether to use sandbox environment (development)
    """

    key_file: str = Field(..., description="Path to .p8 auth key file")
    key_id: str = Field(..., min_length=10, max_length=10, description="10-character key ID")
    team_id: str = Field(..., min_length=10, max_length=10, description="10-character team ID")
    bundle_id: str = Field(..., description="App bundle identifier")
    use_sandbox: bool = Field(default=False, description="Use sandbox environment")

    @field_validator("key_id", "team_id")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Validate that identifiers are alphanumeric."""
        if not v.isalnum():
            raise ValueError("Must be alphanumeric")
        return v.upper()
