"""
MPNS (Microsoft Push Notification Service) dispatcher.

Windows Phone channel URIs are posted to directly, one per request. The
outcome is reported in the X-Notificationstatus, X-Deviceconnectionstatus
and X-Subscriptionstatus response headers.
"""

import logging
from typing import Dict, List, Optional, Sequence

from pushbridge.push.base import PushDispatcher
from pushbridge.push.constants import (
    HEADER_NOT_APPLICABLE,
    MPNS_DEVICE_STATUS_HEADER,
    MPNS_HEADERLESS_STATUS_CODES,
    MPNS_NOTIFICATION_STATUS_HEADER,
    MPNS_SUBSCRIPTION_STATUS_HEADER,
)
from pushbridge.push.exceptions import TransportError
from pushbridge.push.models import DeliveryStatus, TransportResponse
from pushbridge.push.payloads import MPNSPayload
from pushbridge.push.response import BatchResult

logger = logging.getLogger(__name__)

_STATUS_HEADERS = (
    MPNS_NOTIFICATION_STATUS_HEADER,
    MPNS_DEVICE_STATUS_HEADER,
    MPNS_SUBSCRIPTION_STATUS_HEADER,
)


class MPNSBatchResult(BatchResult):
    """
    Decoded answer of one MPNS request.

    Attributes:
        response: Transport response (or placeholder)
        status: Status of the single endpoint
        headers: Status headers, "N/A" where MPNS does not send them
    """

    gateway_name = "MPNS"

    def __init__(
        self,
        endpoints: Sequence[str],
        payload: str,
        response: TransportResponse,
    ):
        super().__init__(endpoints, payload)
        self.response = response
        self.headers = self._status_headers(response)
        self.status = self._decode(response.status_code)

        self._set_statuses(self.endpoints, self.status)

        if response.status_code is None or response.is_placeholder:
            return

        if self.status is not DeliveryStatus.SUCCESS:
            self._log_status()

    @staticmethod
    def _status_headers(response: TransportResponse) -> Dict[str, Optional[str]]:
        headers = {name: response.headers.get(name) for name in _STATUS_HEADERS}

        if response.status_code in MPNS_HEADERLESS_STATUS_CODES:
            headers = {name: HEADER_NOT_APPLICABLE for name in _STATUS_HEADERS}
        elif response.status_code == 412:
            headers[MPNS_SUBSCRIPTION_STATUS_HEADER] = HEADER_NOT_APPLICABLE

        return headers

    def _decode(self, status_code: Optional[int]) -> DeliveryStatus:
        if status_code is None:
            return DeliveryStatus.ERROR

        if status_code == 200:
            notification_status = self.headers[MPNS_NOTIFICATION_STATUS_HEADER]
            if notification_status == "Received":
                return DeliveryStatus.SUCCESS
            if notification_status == "QueueFull":
                return DeliveryStatus.TEMPORARY_ERROR
            return DeliveryStatus.CLIENT_ERROR

        if status_code == 404:
            return DeliveryStatus.INVALID_ENDPOINT
        if status_code in (400, 401, 405):
            return DeliveryStatus.ERROR
        if status_code in (406, 412, 500, 503):
            return DeliveryStatus.TEMPORARY_ERROR
        return DeliveryStatus.UNKNOWN

    def _log_status(self) -> None:
        endpoint = self.endpoints[0] if self.endpoints else self.response.url
        nstatus = self.headers[MPNS_NOTIFICATION_STATUS_HEADER]
        dstatus = self.headers[MPNS_DEVICE_STATUS_HEADER]
        sstatus = self.headers[MPNS_SUBSCRIPTION_STATUS_HEADER]

        logger.warning(
            f"MPNS notification delivery status for endpoint {endpoint}: "
            f"{nstatus}, device {dstatus}, subscription {sstatus}",
            extra={
                "endpoint": endpoint,
                "nstatus": nstatus,
                "dstatus": dstatus,
                "sstatus": sstatus,
            }
        )


class MPNSDispatcher(PushDispatcher):
    """Dispatcher for MPNS. Needs no credentials."""

    gateway_name = "MPNS"

    @staticmethod
    def _build_headers(payload: MPNSPayload) -> Dict[str, str]:
        headers = {
            "Content-Type": "text/xml",
            "Accept": "application/*",
            "X-NotificationClass": str(payload.priority),
        }
        if payload.target is not None:
            headers["X-WindowsPhone-Target"] = payload.target
        return headers

    async def _push_batch(self, payload: MPNSPayload, endpoints: List[str]) -> MPNSBatchResult:
        endpoint = endpoints[0]
        body = payload.to_wire()

        try:
            response = await self.transport.post(endpoint, headers=self._build_headers(payload), content=body)
        except TransportError as e:
            response = self._failed_request_response(e, endpoint, endpoints)

        return MPNSBatchResult(endpoints, body, response)
