"""
WNS (Windows Push Notification Services) dispatcher.

WNS accepts one channel URI per request and reports the outcome in
response headers. Requests are authenticated with an OAuth access token
obtained with the app's client credentials.
"""

import json
import logging
from typing import Dict, List, Optional, Sequence

from pushbridge.push.base import PushDispatcher
from pushbridge.push.constants import (
    HEADER_NOT_APPLICABLE,
    WNS_DEBUG_TRACE_HEADER,
    WNS_DEVICE_STATUS_HEADER,
    WNS_ERROR_DESCRIPTION_HEADER,
    WNS_HEADERLESS_STATUS_CODES,
    WNS_NOTIFICATION_SCOPE,
    WNS_STATUS_HEADER,
    WNS_TOKEN_URL,
    WNS_TYPE_RAW,
    WNS_TYPES,
)
from pushbridge.push.exceptions import TransportError
from pushbridge.push.models import DeliveryStatus, TransportResponse
from pushbridge.push.payloads import WNSPayload
from pushbridge.push.response import BatchResult
from pushbridge.push.transport import HTTPTransport

logger = logging.getLogger(__name__)


class WNSBatchResult(BatchResult):
    """
    Decoded answer of one WNS request.

    Attributes:
        response: Transport response (or placeholder)
        status: Status of the single endpoint
        headers: Status headers, forced to "N/A" where WNS sends none
    """

    gateway_name = "WNS"

    def __init__(
        self,
        endpoints: Sequence[str],
        payload: str,
        response: TransportResponse,
    ):
        super().__init__(endpoints, payload)
        self.response = response
        self.headers = self._status_headers(response)
        self.status = self._decode(response)

        self._set_statuses(self.endpoints, self.status)

        # No answer means the dispatcher already logged why
        if response.status_code is None or response.is_placeholder:
            return

        if self.status is not DeliveryStatus.SUCCESS:
            self._log_status()

    @staticmethod
    def _status_headers(response: TransportResponse) -> Dict[str, Optional[str]]:
        names = (
            WNS_STATUS_HEADER,
            WNS_DEVICE_STATUS_HEADER,
            WNS_ERROR_DESCRIPTION_HEADER,
            WNS_DEBUG_TRACE_HEADER,
        )
        if response.status_code in WNS_HEADERLESS_STATUS_CODES:
            return {
                WNS_STATUS_HEADER: HEADER_NOT_APPLICABLE,
                WNS_DEVICE_STATUS_HEADER: HEADER_NOT_APPLICABLE,
                WNS_ERROR_DESCRIPTION_HEADER: response.headers.get(WNS_ERROR_DESCRIPTION_HEADER),
                WNS_DEBUG_TRACE_HEADER: response.headers.get(WNS_DEBUG_TRACE_HEADER),
            }
        return {name: response.headers.get(name) for name in names}

    def _decode(self, response: TransportResponse) -> DeliveryStatus:
        status_code = response.status_code

        if status_code is None:
            return DeliveryStatus.ERROR

        if status_code == 200:
            notification_status = self.headers[WNS_STATUS_HEADER]
            if notification_status == "received":
                return DeliveryStatus.SUCCESS
            if notification_status == "channelthrottled":
                return DeliveryStatus.TEMPORARY_ERROR
            return DeliveryStatus.CLIENT_ERROR

        if status_code in (404, 410):
            return DeliveryStatus.INVALID_ENDPOINT
        if status_code in (400, 401, 403, 405, 413):
            return DeliveryStatus.ERROR
        if status_code in (406, 500, 503):
            return DeliveryStatus.TEMPORARY_ERROR
        return DeliveryStatus.UNKNOWN

    def _log_status(self) -> None:
        endpoint = self.endpoints[0] if self.endpoints else self.response.url
        nstatus = self.headers[WNS_STATUS_HEADER]
        dstatus = self.headers[WNS_DEVICE_STATUS_HEADER]

        logger.warning(
            f"WNS notification delivery status for endpoint {endpoint}: {nstatus}, device {dstatus}",
            extra={
                "endpoint": endpoint,
                "nstatus": nstatus,
                "dstatus": dstatus,
                "error_description": self.headers[WNS_ERROR_DESCRIPTION_HEADER],
                "error_trace": self.headers[WNS_DEBUG_TRACE_HEADER],
            }
        )


class WNSDispatcher(PushDispatcher):
    """
    Dispatcher for WNS.

    Usage:
        dispatcher = WNSDispatcher(transport)
        dispatcher.set_client_id(client_id)
        dispatcher.set_client_secret(client_secret)
        token = await dispatcher.get_oauth_token()
        if token:
            dispatcher.set_oauth_token(token)
        response = await dispatcher.push(WNSToastPayload(text=["Hi"]), [channel_uri])
    """

    gateway_name = "WNS"

    def __init__(
        self,
        transport: HTTPTransport,
        max_concurrent_batches: Optional[int] = None,
    ):
        super().__init__(transport, max_concurrent_batches)
        self.client_id: Optional[str] = None
        self.client_secret: Optional[str] = None
        self.oauth_token: Optional[str] = None
        self._type = WNS_TYPE_RAW

    @property
    def type(self) -> str:
        """Notification type of the push in flight (raw between pushes)."""
        return self._type

    def set_type(self, wns_type: str) -> None:
        """Set the notification type. Unknown types are ignored."""
        if wns_type in WNS_TYPES:
            self._type = wns_type

    def set_client_id(self, client_id: str) -> None:
        self.client_id = client_id

    def set_client_secret(self, client_secret: str) -> None:
        self.client_secret = client_secret

    def set_oauth_token(self, token: str) -> None:
        self.oauth_token = token

    async def get_oauth_token(self) -> Optional[str]:
        """
        Request an access token with the configured client credentials.

        Returns:
            The access token, or None when it could not be obtained
        """
        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id or "",
            "client_secret": self.client_secret or "",
            "scope": WNS_NOTIFICATION_SCOPE,
        }

        try:
            response = await self.transport.post(
                WNS_TOKEN_URL,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data=data,
            )
        except TransportError as e:
            logger.warning("Requesting token failed: No response", extra={"error": e.message})
            return None

        try:
            body = json.loads(response.body)
        except ValueError:
            logger.warning("Requesting token failed: Malformed JSON response")
            return None

        if not isinstance(body, dict) or "access_token" not in body:
            logger.warning("Requesting token failed: Not a valid JSON response")
            return None

        return body["access_token"]

    def _reset(self) -> None:
        self._type = WNS_TYPE_RAW

    def _build_headers(self) -> Dict[str, str]:
        return {
            "X-WNS-Type": f"wns/{self._type}",
            "Accept": "application/*",
            "Authorization": f"Bearer {self.oauth_token}",
            "X-WNS-RequestForStatus": "true",
            "Content-Type": "application/octet-stream" if self._type == WNS_TYPE_RAW else "text/xml",
        }

    async def _push_batch(self, payload: WNSPayload, endpoints: List[str]) -> WNSBatchResult:
        endpoint = endpoints[0]

        if self.oauth_token is None:
            logger.warning(
                f"Tried to push WNS notification to {endpoint} but wasn't authenticated",
                extra={"endpoint": endpoint}
            )
            return WNSBatchResult(endpoints, "", TransportResponse(url=endpoint))

        self.set_type(payload.wns_type)
        body = payload.to_wire()

        try:
            response = await self.transport.post(endpoint, headers=self._build_headers(), content=body)
        except TransportError as e:
            response = self._failed_request_response(e, endpoint, endpoints)

        return WNSBatchResult(endpoints, body, response)
