"""
Common dispatcher interface for all push gateways.

A dispatcher splits endpoints into gateway-sized batches, sends each
batch, decodes the answer into a BatchResult and merges everything into
one PushResponse. No gateway or transport failure escapes push().
"""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from pushbridge.core.config import settings
from pushbridge.core.logging_config import clear_push_id, set_push_id
from pushbridge.core.metrics import (
    record_batch_sent,
    record_push_deliveries,
    record_transport_error,
)
from pushbridge.push.exceptions import TransportError
from pushbridge.push.models import DeliveryStatus, TransportResponse
from pushbridge.push.response import BatchResult, PushResponse
from pushbridge.push.splitter import EndpointBatches
from pushbridge.push.transport import HTTPTransport

logger = logging.getLogger(__name__)


class FailedBatchResult(BatchResult):
    """Stand-in for a batch whose send raised unexpectedly; every endpoint is UNKNOWN."""

    def __init__(self, endpoints: Sequence[str], error: str):
        super().__init__(endpoints, "")
        self.error = error
        self._set_statuses(self.endpoints, DeliveryStatus.UNKNOWN)


class PushDispatcher(ABC):
    """
    Abstract base class for gateway dispatchers.

    Subclasses set gateway_name and BATCH_SIZE and implement _push_batch().
    Credentials are configured through setters before concurrent use and
    are read-only while a push is in flight.

    Attributes:
        transport: Injected HTTP transport
        max_concurrent_batches: Batches sent in parallel (1 = sequential)
    """

    gateway_name = "push"

    # Maximum number of endpoints allowed in one wire request
    BATCH_SIZE = 1

    def __init__(
        self,
        transport: Optional[HTTPTransport],
        max_concurrent_batches: Optional[int] = None,
    ):
        self.transport = transport
        self.max_concurrent_batches = max(
            1, max_concurrent_batches or settings.MAX_CONCURRENT_BATCHES
        )

    async def push(self, payload: Any, endpoints: Sequence[str]) -> PushResponse:
        """
        Push the notification to all endpoints.

        Args:
            payload: Gateway payload model
            endpoints: Endpoints to send to, in order

        Returns:
            PushResponse covering every submitted endpoint
        """
        response = PushResponse(self.gateway_name)
        batches = EndpointBatches(endpoints, self.BATCH_SIZE)
        semaphore = asyncio.Semaphore(self.max_concurrent_batches)
        token = set_push_id(str(uuid.uuid4()))
        start_time = time.time()

        async def send_with_semaphore(batch: List[str]) -> BatchResult:
            async with semaphore:
                result = await self._push_batch(payload, batch)
                record_batch_sent(self.gateway_name)
                await result.ensure_decoded()
                return result

        try:
            results = await asyncio.gather(
                *[send_with_semaphore(batch) for batch in batches],
                return_exceptions=True,
            )

            # Single reducer: merge in submission order once all batches are done
            for batch, result in zip(batches, results):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, Exception):
                    logger.error(
                        f"{self.gateway_name} batch dispatch raised unexpectedly: {result}",
                        exc_info=result,
                        extra={"endpoint_count": len(batch)},
                    )
                    result = FailedBatchResult(batch, str(result))
                response.add_batch_result(result, batch)
        finally:
            self._reset()
            duration = time.time() - start_time
            clear_push_id(token)

        summary = response.summary()
        record_push_deliveries(self.gateway_name, summary, duration)
        logger.info(
            f"{self.gateway_name} push complete",
            extra={
                "total": len(response),
                "batches": len(batches),
                "duration_ms": int(duration * 1000),
                **summary,
            }
        )

        return response

    @abstractmethod
    async def _push_batch(self, payload: Any, endpoints: List[str]) -> BatchResult:
        """Send one batch and decode the answer. Must not raise TransportError."""

    def _reset(self) -> None:
        """Clear single-use per-push state. Called after every push."""
        return None

    def _failed_request_response(
        self,
        error: TransportError,
        url: str,
        endpoints: Sequence[str],
    ) -> TransportResponse:
        """
        Log a transport failure and build the placeholder response.

        Timeouts are reported as status 500 so decoders classify the batch
        as a temporary error instead of an unknown one.
        """
        record_transport_error(self.gateway_name, error.kind)
        self._log_transport_failure(error.message, endpoints)

        return TransportResponse.placeholder(
            url,
            error.message,
            status_code=500 if error.is_timeout else None,
        )

    def _log_transport_failure(self, message: str, endpoints: Sequence[str]) -> None:
        """Log the single warning for a request that produced no response."""
        if len(endpoints) == 1:
            logger.warning(
                f"Dispatching {self.gateway_name} notification to {endpoints[0]} failed: {message}",
                extra={"endpoint": endpoints[0], "error": message}
            )
        else:
            logger.warning(
                f"Dispatching {self.gateway_name} notification(s) failed: {message}",
                extra={"endpoints": list(endpoints), "error": message}
            )
