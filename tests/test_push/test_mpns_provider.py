"""
Tests for the MPNS dispatcher and its response decoder.
"""
import logging

import pytest

from pushbridge.push.exceptions import TransportError
from pushbridge.push.models import DeliveryStatus, TransportResponse
from pushbridge.push.mpns_provider import MPNSBatchResult, MPNSDispatcher
from pushbridge.push.payloads import MPNSRawPayload, MPNSTilePayload, MPNSToastPayload
from tests.mocks.http_mocks import create_mock_transport, create_transport_response

CHANNEL = "http://sn1.notify.live.net/throttledthirdparty/01.00/AAFRQHgiiMWNTYrRDXAHQtz"


def mpns_response(status_code=200, notification=None, device=None, subscription=None):
    headers = {}
    if notification is not None:
        headers["X-NotificationStatus"] = notification
    if device is not None:
        headers["X-DeviceConnectionStatus"] = device
    if subscription is not None:
        headers["X-SubscriptionStatus"] = subscription
    return create_transport_response(status_code, headers=headers, url=CHANNEL)


class TestMPNSPayloads:
    """Tests for the MPNS payload models."""

    def test_toast_xml(self):
        xml = MPNSToastPayload(title="Front Door", message="R&D", deeplink="/Page.xaml?id=1").to_wire()

        assert "<wp:Text1>Front Door</wp:Text1>" in xml
        assert "<wp:Text2>R&amp;D</wp:Text2>" in xml
        assert "<wp:Param>/Page.xaml?id=1</wp:Param>" in xml

    def test_toast_deeplink_truncated(self, caplog):
        caplog.set_level(logging.INFO, logger="pushbridge")

        xml = MPNSToastPayload(deeplink="/" + "x" * 400).to_wire()

        param = xml.split("<wp:Param>")[1].split("</wp:Param>")[0]
        assert len(param) == 256
        assert "Truncated" in caplog.text

    def test_tile_xml_skips_unset(self):
        xml = MPNSTilePayload(title="Camera", count=3).to_wire()

        assert "<wp:Count>3</wp:Count>" in xml
        assert "<wp:Title>Camera</wp:Title>" in xml
        assert "BackTitle" not in xml

    def test_priority_validation(self):
        with pytest.raises(ValueError):
            MPNSToastPayload(priority=4)


class TestMPNSBatchResult:
    """Tests for MPNSBatchResult."""

    @pytest.mark.parametrize("response,expected", [
        (mpns_response(notification="Received", device="Connected", subscription="Active"),
         DeliveryStatus.SUCCESS),
        (mpns_response(notification="QueueFull", device="Connected", subscription="Active"),
         DeliveryStatus.TEMPORARY_ERROR),
        (mpns_response(notification="Suppressed", device="Connected", subscription="Active"),
         DeliveryStatus.CLIENT_ERROR),
        (mpns_response(404, notification="Dropped", device="Connected", subscription="Expired"),
         DeliveryStatus.INVALID_ENDPOINT),
        (mpns_response(400), DeliveryStatus.ERROR),
        (mpns_response(401), DeliveryStatus.ERROR),
        (mpns_response(405), DeliveryStatus.ERROR),
        (mpns_response(406, notification="Dropped", device="Connected", subscription="Active"),
         DeliveryStatus.TEMPORARY_ERROR),
        (mpns_response(412, notification="Dropped", device="Inactive"), DeliveryStatus.TEMPORARY_ERROR),
        (mpns_response(500), DeliveryStatus.TEMPORARY_ERROR),
        (mpns_response(503), DeliveryStatus.TEMPORARY_ERROR),
        (mpns_response(418), DeliveryStatus.UNKNOWN),
    ])
    def test_status_decoding(self, response, expected):
        result = MPNSBatchResult([CHANNEL], "", response)

        assert result.get_status(CHANNEL) is expected

    def test_headerless_codes_forced_not_applicable(self):
        result = MPNSBatchResult([CHANNEL], "", mpns_response(503, notification="Received"))

        assert set(result.headers.values()) == {"N/A"}

    def test_precondition_failed_has_no_subscription_status(self, push_warnings):
        result = MPNSBatchResult(
            [CHANNEL], "", mpns_response(412, notification="Dropped", device="Inactive")
        )

        assert result.headers["X-Subscriptionstatus"] == "N/A"
        record = push_warnings()[0]
        assert record.getMessage() == (
            f"MPNS notification delivery status for endpoint {CHANNEL}: Dropped, device Inactive, subscription N/A"
        )
        assert record.nstatus == "Dropped"
        assert record.dstatus == "Inactive"
        assert record.sstatus == "N/A"

    def test_success_not_logged(self, push_warnings):
        MPNSBatchResult(
            [CHANNEL], "", mpns_response(notification="Received", device="Connected", subscription="Active")
        )

        assert push_warnings() == []

    def test_placeholder_not_logged_again(self, push_warnings):
        placeholder = TransportResponse.placeholder(CHANNEL, "connection refused")

        result = MPNSBatchResult([CHANNEL], "", placeholder)

        assert result.get_status(CHANNEL) is DeliveryStatus.ERROR
        assert push_warnings() == []


class TestMPNSDispatcher:
    """Tests for MPNSDispatcher."""

    def test_toast_headers(self):
        headers = MPNSDispatcher._build_headers(MPNSToastPayload(title="x", priority=2))

        assert headers == {
            "Content-Type": "text/xml",
            "Accept": "application/*",
            "X-NotificationClass": "2",
            "X-WindowsPhone-Target": "toast",
        }

    def test_tile_target(self):
        headers = MPNSDispatcher._build_headers(MPNSTilePayload(title="x"))

        assert headers["X-WindowsPhone-Target"] == "token"

    def test_raw_has_no_target(self):
        headers = MPNSDispatcher._build_headers(MPNSRawPayload(data="x", priority=3))

        assert "X-WindowsPhone-Target" not in headers
        assert headers["X-NotificationClass"] == "3"

    @pytest.mark.asyncio
    async def test_push(self):
        transport = create_mock_transport(
            mpns_response(notification="Received", device="Connected", subscription="Active")
        )
        dispatcher = MPNSDispatcher(transport)
        payload = MPNSToastPayload(title="Front Door")

        response = await dispatcher.push(payload, [CHANNEL, CHANNEL + "2"])

        assert response.all_succeeded
        assert transport.post.await_count == 2
        assert transport.post.call_args.kwargs["content"] == payload.to_wire()

    @pytest.mark.asyncio
    async def test_push_timeout(self, push_warnings):
        transport = create_mock_transport(side_effect=TransportError("timed out", TransportError.TIMEOUT))
        dispatcher = MPNSDispatcher(transport)

        response = await dispatcher.push(MPNSRawPayload(data="x"), [CHANNEL])

        assert response.get_status(CHANNEL) is DeliveryStatus.TEMPORARY_ERROR
        warnings = push_warnings()
        assert len(warnings) == 1
        assert warnings[0].getMessage() == f"Dispatching MPNS notification to {CHANNEL} failed: timed out"
