"""
Tests for the JPush dispatcher and its deferred report decoding.
"""
import asyncio
import json

import pytest

from pushbridge.push.constants import JPUSH_REPORT_URL, JPUSH_SEND_URL
from pushbridge.push.exceptions import TransportError
from pushbridge.push.jpush_provider import JPushBatchResult, JPushDispatcher
from pushbridge.push.models import DeliveryStatus
from pushbridge.push.payloads import JPushMessagePayload, JPushNotificationPayload
from tests.mocks.http_mocks import (
    create_error_response,
    create_json_response,
    create_mock_transport,
)

HEADERS = {"Authorization": "Basic token"}


@pytest.fixture
def sample_payload():
    return JPushNotificationPayload(
        notification={"alert": "Hello", "android": {"title": "Hi"}},
        message={"msg_content": "dropped"},
        options={"time_to_live": 60},
    )


def make_result(transport, endpoints, send_response):
    return JPushBatchResult(transport, HEADERS, endpoints, "{}", send_response)


class TestJPushPayload:
    """Tests for JPush payload variants."""

    def test_notification_payload_drops_message(self, sample_payload):
        wire = sample_payload.to_wire()

        assert wire["platform"] == "all"
        assert wire["notification"]["alert"] == "Hello"
        assert "message" not in wire
        assert wire["audience"] == {}
        assert wire["options"] == {"time_to_live": 60}

    def test_message_payload_drops_notification(self):
        payload = JPushMessagePayload(
            notification={"alert": "dropped"},
            message={"msg_content": "Hello", "title": "Hi"},
        )

        wire = payload.to_wire()

        assert "notification" not in wire
        assert wire["message"]["msg_content"] == "Hello"
        assert "options" not in wire


class TestJPushBatchResult:
    """Tests for JPushBatchResult."""

    @pytest.mark.asyncio
    async def test_report_statuses(self, push_warnings):
        transport = create_mock_transport(create_json_response({
            "a": {"status": 0},
            "b": {"status": 2},
            "c": {"status": 4},
        }))

        result = make_result(transport, ["a", "b", "c", "d"], create_json_response({"msg_id": "123"}))
        await result.ensure_decoded()

        assert result.message_id == 123
        assert result.get_status("a") is DeliveryStatus.SUCCESS
        assert result.get_status("b") is DeliveryStatus.INVALID_ENDPOINT
        assert result.get_status("c") is DeliveryStatus.TEMPORARY_ERROR
        assert result.get_status("d") is DeliveryStatus.UNKNOWN
        assert len(push_warnings()) == 2

    @pytest.mark.asyncio
    async def test_report_request(self):
        transport = create_mock_transport(create_json_response({}))

        result = make_result(transport, ["a", "b"], create_json_response({"msg_id": 42}))
        await result.ensure_decoded()

        args, kwargs = transport.post.call_args
        assert args[0] == JPUSH_REPORT_URL
        assert kwargs["headers"] == HEADERS
        assert json.loads(kwargs["content"]) == {"msg_id": 42, "registration_ids": ["a", "b"]}

    @pytest.mark.parametrize("code,expected,message", [
        (1, DeliveryStatus.UNKNOWN, "Not delivered"),
        (2, DeliveryStatus.INVALID_ENDPOINT, "Registration_id does not belong to the application"),
        (3, DeliveryStatus.ERROR, "Registration_id belongs to the application, but it is not the target of the message"),
        (4, DeliveryStatus.TEMPORARY_ERROR, "The system is abnormal"),
        (9, DeliveryStatus.UNKNOWN, "9"),
    ])
    @pytest.mark.asyncio
    async def test_report_codes(self, push_warnings, code, expected, message):
        transport = create_mock_transport(create_json_response({"a": {"status": code}}))

        result = make_result(transport, ["a"], create_json_response({"msg_id": 1}))
        await result.ensure_decoded()

        assert result.get_status("a") is expected
        assert push_warnings()[0].error == message

    @pytest.mark.asyncio
    async def test_undecoded_result_is_unknown(self):
        transport = create_mock_transport(create_json_response({"a": {"status": 0}}))

        result = make_result(transport, ["a"], create_json_response({"msg_id": 1}))

        assert result.get_status("a") is DeliveryStatus.UNKNOWN
        transport.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_report_fetched_once(self):
        transport = create_mock_transport(create_json_response({"a": {"status": 0}}))
        result = make_result(transport, ["a"], create_json_response({"msg_id": 1}))

        await asyncio.gather(*[result.ensure_decoded() for _ in range(5)])
        await result.ensure_decoded()

        assert transport.post.await_count == 1
        assert [result.get_status("a") for _ in range(3)] == [DeliveryStatus.SUCCESS] * 3

    @pytest.mark.parametrize("code,expected,message", [
        (400, DeliveryStatus.ERROR, "Invalid request"),
        (401, DeliveryStatus.ERROR, "Error with authentication"),
        (403, DeliveryStatus.ERROR, "Error with configuration"),
        (404, DeliveryStatus.UNKNOWN, "Unknown error"),
        (500, DeliveryStatus.TEMPORARY_ERROR, "Internal error"),
    ])
    @pytest.mark.asyncio
    async def test_send_failure(self, push_warnings, code, expected, message):
        transport = create_mock_transport()

        result = make_result(transport, ["a", "b"], create_error_response(code))
        await result.ensure_decoded()

        assert result.get_status("a") is expected
        assert result.get_status("b") is expected
        assert push_warnings()[0].error == message
        transport.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_upstream_message_refines_error(self, push_warnings):
        result = make_result(
            create_mock_transport(),
            ["a"],
            create_error_response(400, error_message="Missing parameter", error_code=1002),
        )
        await result.ensure_decoded()

        assert result.get_status("a") is DeliveryStatus.ERROR
        assert push_warnings()[0].error == "Missing parameter"

    @pytest.mark.asyncio
    async def test_missing_msg_id(self, push_warnings):
        result = make_result(create_mock_transport(), ["a"], create_json_response({"sendno": "0"}))
        await result.ensure_decoded()

        assert result.get_status("a") is DeliveryStatus.UNKNOWN
        assert len(push_warnings()) == 1

    @pytest.mark.asyncio
    async def test_report_http_failure(self, push_warnings):
        transport = create_mock_transport(create_error_response(401))

        result = make_result(transport, ["a", "b"], create_json_response({"msg_id": 1}))
        await result.ensure_decoded()

        assert result.get_status("a") is DeliveryStatus.ERROR
        assert result.get_status("b") is DeliveryStatus.ERROR
        assert len(push_warnings()) == 1

    @pytest.mark.asyncio
    async def test_report_transport_failure(self, push_warnings):
        transport = create_mock_transport(side_effect=TransportError("connection reset"))

        result = make_result(transport, ["a", "b"], create_json_response({"msg_id": 1}))
        await result.ensure_decoded()

        assert result.get_status("a") is DeliveryStatus.ERROR
        assert result.get_status("b") is DeliveryStatus.ERROR
        warnings = push_warnings()
        assert len(warnings) == 1
        assert warnings[0].getMessage() == "Dispatching JPush notification failed: connection reset"


class TestJPushDispatcher:
    """Tests for JPushDispatcher.push()."""

    @pytest.mark.asyncio
    async def test_push(self, sample_payload):
        transport = create_mock_transport(side_effect=[
            create_json_response({"sendno": "0", "msg_id": "99"}),
            create_json_response({"a": {"status": 0}, "b": {"status": 2}}),
        ])
        dispatcher = JPushDispatcher(transport)
        dispatcher.set_auth_token("dG9rZW4=")

        response = await dispatcher.push(sample_payload, ["a", "b"])

        # Send and report requests both happen inside push()
        assert transport.post.await_count == 2

        assert response.get_status("a") is DeliveryStatus.SUCCESS
        assert response.get_status("b") is DeliveryStatus.INVALID_ENDPOINT

        send_call = transport.post.call_args_list[0]
        assert send_call.args[0] == JPUSH_SEND_URL
        assert send_call.kwargs["headers"]["Authorization"] == "Basic dG9rZW4="
        assert json.loads(send_call.kwargs["content"])["audience"] == {"registration_id": ["a", "b"]}

    @pytest.mark.asyncio
    async def test_send_timeout(self, sample_payload, push_warnings):
        transport = create_mock_transport(side_effect=TransportError("timed out", TransportError.TIMEOUT))
        dispatcher = JPushDispatcher(transport, auth_token="token")

        response = await dispatcher.push(sample_payload, ["a", "b"])

        assert response.get_status("a") is DeliveryStatus.TEMPORARY_ERROR
        assert response.get_status("b") is DeliveryStatus.TEMPORARY_ERROR
        assert len(push_warnings()) == 1
        assert transport.post.await_count == 1
