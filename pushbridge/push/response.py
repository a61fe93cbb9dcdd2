"""
Batch and aggregate push results.

A BatchResult decodes one wire response into per-endpoint statuses.
A PushResponse merges every BatchResult of one push() call and is what
callers query.
"""

import logging
from typing import Dict, Iterable, List, Sequence, Union

from pushbridge.push.models import DeliveryStatus

logger = logging.getLogger(__name__)


class BatchResult:
    """
    Base class for gateway response decoders.

    Subclasses compute statuses in __init__. Gateways that need a second
    round-trip override ensure_decoded() instead.

    Attributes:
        endpoints: Endpoints of the batch, in the order they were sent
        payload: Raw payload that was sent, kept for diagnostics
    """

    gateway_name = "push"

    def __init__(self, endpoints: Sequence[str], payload: Union[str, bytes]):
        self.endpoints = tuple(endpoints)
        self.payload = payload
        self._statuses: Dict[str, DeliveryStatus] = {}

    async def ensure_decoded(self) -> None:
        """Complete any deferred decoding. Decoding is eager by default."""
        return None

    def get_status(self, endpoint: str) -> DeliveryStatus:
        """
        Get notification delivery status for an endpoint.

        Returns:
            The decoded status, or UNKNOWN for endpoints without one
        """
        return self._statuses.get(endpoint, DeliveryStatus.UNKNOWN)

    @property
    def statuses(self) -> Dict[str, DeliveryStatus]:
        """Status of every endpoint of the batch (UNKNOWN where unset)."""
        return {endpoint: self.get_status(endpoint) for endpoint in self.endpoints}

    def _set_statuses(
        self,
        endpoints: Iterable[str],
        status: DeliveryStatus,
        overwrite: bool = True,
    ) -> None:
        for endpoint in endpoints:
            if overwrite or endpoint not in self._statuses:
                self._statuses[endpoint] = status

    def _report_batch_error(
        self,
        status: DeliveryStatus,
        error_message: str,
        overwrite: bool = True,
        log: bool = True,
    ) -> None:
        """
        Assign one status to the whole batch and log a single warning.

        log is False when the dispatcher already logged the transport
        failure that produced a placeholder response.
        """
        self._set_statuses(self.endpoints, status, overwrite=overwrite)

        if not log:
            return

        logger.warning(
            f"Dispatching {self.gateway_name} notification failed: {error_message}",
            extra={
                "error": error_message,
                "endpoint_count": len(self.endpoints),
            }
        )

    def _report_endpoint_error(
        self,
        endpoint: str,
        status: DeliveryStatus,
        error_message: str,
    ) -> None:
        """Assign a status to one endpoint and log it."""
        self._statuses[endpoint] = status

        logger.warning(
            f"Dispatching {self.gateway_name} notification failed for endpoint {endpoint}: {error_message}",
            extra={
                "endpoint": endpoint,
                "error": error_message,
            }
        )


class PushResponse:
    """
    Aggregated result of one push() call across all its batches.

    Usage:
        response = await dispatcher.push(payload, tokens)
        if response.get_status(token) == DeliveryStatus.INVALID_ENDPOINT:
            ...

    Attributes:
        gateway: Gateway name the push went to
        batch_results: BatchResult of every batch, in submission order
    """

    def __init__(self, gateway: str = "push"):
        self.gateway = gateway
        self.batch_results: List[BatchResult] = []
        self._statuses: Dict[str, DeliveryStatus] = {}

    def add_batch_result(self, result: BatchResult, batch_endpoints: Sequence[str]) -> None:
        """
        Merge one batch's statuses.

        Batches of one push never overlap; if they did, the later batch
        wins.
        """
        self.batch_results.append(result)
        for endpoint in batch_endpoints:
            self._statuses[endpoint] = result.get_status(endpoint)

    def get_status(self, endpoint: str) -> DeliveryStatus:
        """Delivery status for an endpoint, UNKNOWN if it was never submitted."""
        return self._statuses.get(endpoint, DeliveryStatus.UNKNOWN)

    @property
    def statuses(self) -> Dict[str, DeliveryStatus]:
        """Copy of the endpoint to status mapping."""
        return dict(self._statuses)

    def endpoints_with_status(self, status: DeliveryStatus) -> List[str]:
        """Endpoints that resolved to the given status, in submission order."""
        return [endpoint for endpoint, value in self._statuses.items() if value == status]

    def summary(self) -> Dict[str, int]:
        """Count of endpoints per status value."""
        counts = {status.value: 0 for status in DeliveryStatus}
        for status in self._statuses.values():
            counts[status.value] += 1
        return counts

    @property
    def all_succeeded(self) -> bool:
        """True if every submitted endpoint succeeded."""
        return bool(self._statuses) and all(
            status == DeliveryStatus.SUCCESS for status in self._statuses.values()
        )

    def __contains__(self, endpoint: object) -> bool:
        return endpoint in self._statuses

    def __len__(self) -> int:
        return len(self._statuses)
