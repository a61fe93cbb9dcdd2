"""
FCM (Firebase Cloud Messaging) legacy HTTP dispatcher.

Sends one JSON request per batch of up to 1000 registration tokens and
decodes the positional "results" array into per-token statuses.

Features:
- registration_ids for multi-token batches, to for a single token
- Full legacy error taxonomy mapping
- Canonical registration ids are recorded, never acted upon
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from pushbridge.push.base import PushDispatcher
from pushbridge.push.constants import (
    FCM_BATCH_SIZE,
    FCM_ERROR_CODES,
    FCM_SEND_URL,
)
from pushbridge.push.exceptions import BatchProtocolError, TransportError
from pushbridge.push.models import DeliveryStatus, TransportResponse
from pushbridge.push.payloads import FCMPayload
from pushbridge.push.response import BatchResult
from pushbridge.push.transport import HTTPTransport

logger = logging.getLogger(__name__)


class FCMBatchResult(BatchResult):
    """
    Decoded answer of one FCM send request.

    Results are positional: results[i] belongs to endpoints[i]. Endpoints
    without a matching result item stay UNKNOWN.

    Attributes:
        response: Transport response (or placeholder) of the send
        canonical_ids: endpoint -> replacement registration id reported by FCM
    """

    gateway_name = "FCM"

    def __init__(
        self,
        endpoints: Sequence[str],
        payload: str,
        response: TransportResponse,
    ):
        super().__init__(endpoints, payload)
        self.response = response
        self.canonical_ids: Dict[str, str] = {}

        try:
            results = self._parse(response)
        except BatchProtocolError as e:
            self._report_batch_error(
                self._batch_status(e.status_code),
                e.message,
                log=not response.is_placeholder,
            )
            return

        for endpoint, item in zip(self.endpoints, results):
            self._decode_item(endpoint, item)

    @staticmethod
    def _batch_status(status_code: Optional[int]) -> DeliveryStatus:
        if status_code in (400, 401):
            return DeliveryStatus.ERROR
        if status_code is not None and status_code >= 500:
            return DeliveryStatus.TEMPORARY_ERROR
        return DeliveryStatus.UNKNOWN

    @staticmethod
    def _parse(response: TransportResponse) -> List[Dict[str, Any]]:
        """Extract the results array or raise BatchProtocolError."""
        status_code = response.status_code

        if status_code != 200:
            if status_code == 400:
                message = "Invalid JSON"
            elif status_code == 401:
                message = "Error with authentication"
            elif status_code is not None and status_code >= 500:
                message = "Internal error"
            else:
                message = "Unknown error"
            raise BatchProtocolError(message, status_code)

        try:
            body = json.loads(response.body)
        except ValueError as e:
            raise BatchProtocolError(f"Malformed response body: {e}", status_code) from e

        results = body.get("results") if isinstance(body, dict) else None
        if not isinstance(results, list):
            raise BatchProtocolError("Response contains no results", status_code)
        return results

    def _decode_item(self, endpoint: str, item: Any) -> None:
        if not isinstance(item, dict):
            return

        error = item.get("error")
        if error is None:
            self._statuses[endpoint] = DeliveryStatus.SUCCESS
            canonical_id = item.get("registration_id")
            if canonical_id:
                self.canonical_ids[endpoint] = canonical_id
                logger.debug(
                    f"FCM returned a canonical registration id for {endpoint}",
                    extra={"endpoint": endpoint, "canonical_id": canonical_id}
                )
            return

        status, reason = FCM_ERROR_CODES.get(error, (DeliveryStatus.UNKNOWN, error))
        self._report_endpoint_error(endpoint, status, reason)


class FCMDispatcher(PushDispatcher):
    """
    Dispatcher for the FCM legacy HTTP API.

    Usage:
        dispatcher = FCMDispatcher(transport)
        dispatcher.set_auth_token(server_key)
        response = await dispatcher.push(FCMPayload(data={"k": "v"}), tokens)
    """

    gateway_name = "FCM"
    BATCH_SIZE = FCM_BATCH_SIZE

    def __init__(
        self,
        transport: HTTPTransport,
        auth_token: str = "",
        max_concurrent_batches: Optional[int] = None,
    ):
        super().__init__(transport, max_concurrent_batches)
        self.auth_token = auth_token

    def set_auth_token(self, auth_token: str) -> None:
        """Set the FCM server key."""
        self.auth_token = auth_token

    def _build_body(self, payload: FCMPayload, endpoints: List[str]) -> str:
        wire = payload.to_wire()
        if len(endpoints) > 1:
            wire["registration_ids"] = list(endpoints)
        else:
            wire["to"] = endpoints[0]
        return json.dumps(wire)

    async def _push_batch(self, payload: FCMPayload, endpoints: List[str]) -> FCMBatchResult:
        body = self._build_body(payload, endpoints)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"key={self.auth_token}",
        }

        try:
            response = await self.transport.post(
                FCM_SEND_URL,
                headers=headers,
                content=body,
            )
        except TransportError as e:
            response = self._failed_request_response(e, FCM_SEND_URL, endpoints)

        return FCMBatchResult(endpoints, body, response)
