"""
JPush dispatcher.

The send response only carries a message id. Per-endpoint delivery status
comes from the report API and is fetched lazily, at most once per batch,
the first time the batch is decoded.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pushbridge.push.base import PushDispatcher
from pushbridge.push.constants import (
    JPUSH_BATCH_SIZE,
    JPUSH_HTTP_ERRORS,
    JPUSH_REPORT_CODES,
    JPUSH_REPORT_URL,
    JPUSH_SEND_URL,
)
from pushbridge.push.exceptions import TransportError
from pushbridge.push.models import DeliveryStatus, TransportResponse
from pushbridge.push.payloads import JPushPayload
from pushbridge.push.response import BatchResult
from pushbridge.push.transport import HTTPTransport

logger = logging.getLogger(__name__)


def _upstream_message(response: TransportResponse) -> Optional[str]:
    """error.message from a JPush error body, if there is one."""
    if not response.body:
        return None
    try:
        body = json.loads(response.body)
    except ValueError:
        return None
    if not isinstance(body, dict) or not isinstance(body.get("error"), dict):
        return None
    return body["error"].get("message")


class JPushBatchResult(BatchResult):
    """
    Decoded answer of one JPush send request.

    Statuses are keyed by registration id in the report response. Until
    ensure_decoded() has run, every endpoint reports UNKNOWN.
    PushDispatcher.push() awaits ensure_decoded() inside the batch task, so
    the report is fetched during the push rather than on the first query.

    Attributes:
        message_id: msg_id returned by the send request, None if it failed
        response: Transport response (or placeholder) of the send
    """

    gateway_name = "JPush"

    def __init__(
        self,
        transport: HTTPTransport,
        headers: Mapping[str, str],
        endpoints: Sequence[str],
        payload: str,
        response: TransportResponse,
    ):
        super().__init__(endpoints, payload)
        self.transport = transport
        self.headers = dict(headers)
        self.response = response
        self.message_id: Optional[int] = None
        self._decoded = False
        self._lock = asyncio.Lock()

        if not response.success:
            self._report_error(response)
            return

        try:
            body = json.loads(response.body)
            self.message_id = int(body["msg_id"])
        except (ValueError, TypeError, KeyError):
            self._report_error(response)

    @property
    def decoded(self) -> bool:
        return self._decoded

    async def ensure_decoded(self) -> None:
        """Fetch the delivery report once. Concurrent callers share one fetch."""
        if self._decoded:
            return

        async with self._lock:
            if self._decoded:
                return
            try:
                if self.message_id is not None:
                    await self._fetch_report()
            finally:
                self._decoded = True

    def get_status(self, endpoint: str) -> DeliveryStatus:
        if not self._decoded:
            return DeliveryStatus.UNKNOWN
        return super().get_status(endpoint)

    async def _fetch_report(self) -> None:
        body = json.dumps({
            "msg_id": self.message_id,
            "registration_ids": list(self.endpoints),
        })

        try:
            report = await self.transport.post(JPUSH_REPORT_URL, headers=self.headers, content=body)
        except TransportError as e:
            self._set_statuses(self.endpoints, DeliveryStatus.ERROR)
            logger.warning(
                f"Dispatching JPush notification failed: {e.message}",
                extra={"error": e.message}
            )
            return

        if not report.success:
            self._report_error(report)
            return

        try:
            results = json.loads(report.body)
        except ValueError as e:
            self._report_batch_error(DeliveryStatus.UNKNOWN, f"Malformed report body: {e}")
            return

        if not isinstance(results, dict):
            self._report_batch_error(DeliveryStatus.UNKNOWN, "Malformed report body")
            return

        for endpoint, result in results.items():
            self._decode_report_item(endpoint, result)

    def _decode_report_item(self, endpoint: str, result: Any) -> None:
        code = result.get("status") if isinstance(result, dict) else None

        if code == 0:
            self._statuses[endpoint] = DeliveryStatus.SUCCESS
            return

        status, reason = JPUSH_REPORT_CODES.get(code, (DeliveryStatus.UNKNOWN, str(code)))
        self._report_endpoint_error(endpoint, status, reason)

    def _report_error(self, response: TransportResponse) -> None:
        """Map a failed send or report response onto the whole batch."""
        upstream = _upstream_message(response)
        status_code = response.status_code

        if status_code is not None and status_code >= 500:
            status, message = DeliveryStatus.TEMPORARY_ERROR, "Internal error"
        else:
            status, message = JPUSH_HTTP_ERRORS.get(
                status_code, (DeliveryStatus.UNKNOWN, "Unknown error")
            )

        self._report_batch_error(
            status,
            upstream or message,
            log=not response.is_placeholder,
        )


class JPushDispatcher(PushDispatcher):
    """
    Dispatcher for the JPush v3 push API.

    Usage:
        dispatcher = JPushDispatcher(transport)
        dispatcher.set_auth_token(base64_app_key_and_secret)
        response = await dispatcher.push(JPushNotificationPayload(...), ids)
    """

    gateway_name = "JPush"
    BATCH_SIZE = JPUSH_BATCH_SIZE

    def __init__(
        self,
        transport: HTTPTransport,
        auth_token: str = "",
        max_concurrent_batches: Optional[int] = None,
    ):
        super().__init__(transport, max_concurrent_batches)
        self.auth_token = auth_token

    def set_auth_token(self, auth_token: str) -> None:
        """Set the base64 encoded "appKey:masterSecret" token."""
        self.auth_token = auth_token

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self.auth_token}",
        }

    async def _push_batch(self, payload: JPushPayload, endpoints: List[str]) -> JPushBatchResult:
        wire = payload.to_wire()
        wire["audience"]["registration_id"] = list(endpoints)
        body = json.dumps(wire)
        headers = self.headers

        try:
            response = await self.transport.post(JPUSH_SEND_URL, headers=headers, content=body)
        except TransportError as e:
            response = self._failed_request_response(e, JPUSH_SEND_URL, endpoints)

        return JPushBatchResult(self.transport, headers, endpoints, body, response)
