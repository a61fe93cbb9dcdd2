"""
PAP (BlackBerry Push Access Protocol 2.1) dispatcher.

Each push is a multipart/related request holding the PAP control XML and
the JSON payload. The gateway answers with a PAP XML document whose
result code decides the delivery status.
"""

import json
import logging
import time
from typing import List, Optional, Sequence

from lxml import etree

from pushbridge.push.base import PushDispatcher
from pushbridge.push.constants import (
    PAP_BOUNDARY,
    PAP_ERROR_CODES,
    PAP_INVALID_ENDPOINT_CODES,
    PAP_SUCCESS_CODES,
    PAP_URL_TEMPLATE,
)
from pushbridge.push.exceptions import BatchProtocolError, TransportError
from pushbridge.push.models import DeliveryStatus, TransportResponse, status_for_http_code
from pushbridge.push.payloads import PAPPayload, escape_xml
from pushbridge.push.response import BatchResult
from pushbridge.push.transport import HTTPTransport

logger = logging.getLogger(__name__)

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)


def status_for_pap_code(code: int) -> DeliveryStatus:
    """Map a PAP result code to a DeliveryStatus."""
    if code in PAP_SUCCESS_CODES:
        return DeliveryStatus.SUCCESS
    if code in PAP_INVALID_ENDPOINT_CODES:
        return DeliveryStatus.INVALID_ENDPOINT
    if code in PAP_ERROR_CODES:
        return DeliveryStatus.ERROR
    if 3000 <= code < 4000 or code in (4000, 4001):
        return DeliveryStatus.TEMPORARY_ERROR
    return DeliveryStatus.UNKNOWN


class PAPBatchResult(BatchResult):
    """
    Decoded answer of one PAP request.

    Attributes:
        response: Transport response (or placeholder)
        code: PAP result code, None when none could be read
        description: desc attribute of the result element
    """

    gateway_name = "PAP"

    def __init__(
        self,
        endpoints: Sequence[str],
        payload: str,
        response: TransportResponse,
    ):
        super().__init__(endpoints, payload)
        self.response = response
        self.code: Optional[int] = None
        self.description: Optional[str] = None

        if response.status_code != 200:
            self._report_batch_error(
                status_for_http_code(response.status_code),
                f"HTTP error {response.status_code}",
                log=not response.is_placeholder,
            )
            return

        endpoint = self.endpoints[0]

        try:
            self.code, self.description = self._parse(response.body)
        except BatchProtocolError as e:
            self._set_statuses(self.endpoints, DeliveryStatus.UNKNOWN)
            logger.warning(
                f"Parsing response of PAP notification to {endpoint} failed: {e.message}",
                extra={"endpoint": endpoint, "error": e.message}
            )
            return

        status = status_for_pap_code(self.code)
        if status is DeliveryStatus.SUCCESS:
            self._set_statuses(self.endpoints, status)
        else:
            self._report_endpoint_error(endpoint, status, self.description or str(self.code))

    @staticmethod
    def _parse(body: bytes):
        """Return (code, description) of the response-result element."""
        try:
            root = etree.fromstring(body, parser=_PARSER)
        except etree.XMLSyntaxError as e:
            raise BatchProtocolError(str(e)) from e

        result = root.find(".//response-result")
        if result is None:
            result = root.find(".//badmessage-response")
        if result is None:
            raise BatchProtocolError("No result element in response")

        try:
            code = int(result.get("code"))
        except (TypeError, ValueError) as e:
            raise BatchProtocolError(f"Invalid result code: {result.get('code')}") from e

        return code, result.get("desc")


class PAPDispatcher(PushDispatcher):
    """
    Dispatcher for BlackBerry PAP.

    Attributes:
        auth_token: Application id, used as basic auth user and source-reference
        password: Basic auth password
        cid: Content provider id, part of the gateway host name
        push_id: Id of the last request in flight, empty between pushes
    """

    gateway_name = "PAP"

    def __init__(
        self,
        transport: HTTPTransport,
        max_concurrent_batches: Optional[int] = None,
    ):
        super().__init__(transport, max_concurrent_batches)
        self.auth_token = ""
        self.password = ""
        self.cid = ""
        self.push_id = ""

    def set_auth_token(self, auth_token: str) -> None:
        self.auth_token = auth_token

    def set_password(self, password: str) -> None:
        self.password = password

    def set_content_provider_id(self, cid: str) -> None:
        self.cid = cid

    @property
    def url(self) -> str:
        return PAP_URL_TEMPLATE.format(cid=self.cid)

    def _reset(self) -> None:
        self.push_id = ""

    def construct_pap_control_xml(self, payload: PAPPayload, endpoint: str, push_id: str) -> str:
        push_id = escape_xml(push_id)
        source = escape_xml(self.auth_token)
        deliver_before = escape_xml(payload.deliver_before or "")
        address = escape_xml(endpoint)

        xml = '<?xml version="1.0"?>\n'
        xml += (
            '<!DOCTYPE pap PUBLIC "-//WAPFORUM//DTD PAP 2.1//EN" '
            '"http://www.openmobilealliance.org/tech/DTD/pap_2.1.dtd">\n'
        )
        xml += "<pap>\n"
        xml += (
            f'<push-message push-id="{push_id}" source-reference="{source}" '
            f'deliver-before-timestamp="{deliver_before}">\n'
        )
        xml += f'<address address-value="{address}"/>\n'
        xml += '<quality-of-service delivery-method="unconfirmed"/>\n'
        xml += "</push-message>\n</pap>\n"
        return xml

    def construct_pap_data(self, payload: PAPPayload, endpoint: str, push_id: str) -> str:
        """Build the multipart body with the push id injected into the payload."""
        message = payload.to_wire()
        message["id"] = push_id

        data = f"--{PAP_BOUNDARY}\r\n"
        data += "Content-Type: application/xml; charset=UTF-8\r\n\r\n"
        data += self.construct_pap_control_xml(payload, endpoint, push_id)
        data += f"\r\n--{PAP_BOUNDARY}\r\n"
        data += "Content-Type: text/plain\r\n"
        data += f"Push-Message-ID: {push_id}\r\n\r\n"
        data += json.dumps(message)
        data += f"\r\n--{PAP_BOUNDARY}--\n\r"
        return data

    async def _push_batch(self, payload: PAPPayload, endpoints: List[str]) -> PAPBatchResult:
        endpoint = endpoints[0]
        push_id = f"{endpoint}{time.time()}"
        self.push_id = push_id

        body = self.construct_pap_data(payload, endpoint, push_id)
        headers = {
            "Content-Type": f"multipart/related; boundary={PAP_BOUNDARY}; type=application/xml",
            "Accept": "text/html, image/gif, image/jpeg, *; q=.2, */*; q=.2",
            "Connection": "keep-alive",
        }
        url = self.url

        try:
            response = await self.transport.post(
                url,
                headers=headers,
                content=body,
                auth=(self.auth_token, self.password),
            )
        except TransportError as e:
            response = self._failed_request_response(e, url, endpoints)

        return PAPBatchResult(endpoints, body, response)
