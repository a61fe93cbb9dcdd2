"""
Unit tests for logging configuration
"""
import json
import logging
import uuid

from pushbridge.core.logging_config import (
    setup_logging,
    set_push_id,
    get_push_id,
    clear_push_id,
    sanitize_log_value,
    CustomJsonFormatter,
    PushIdFilter,
    SanitizingFilter,
)


def make_record(msg="Test message", args=(), name="test"):
    return logging.LogRecord(
        name=name,
        level=logging.WARNING,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None
    )


class TestPushIdContext:
    """Test push ID context variable functionality"""

    def test_set_and_get_push_id(self):
        """push_id should be retrievable after setting"""
        test_id = str(uuid.uuid4())
        token = set_push_id(test_id)

        assert get_push_id() == test_id

        clear_push_id(token)

    def test_clear_push_id_resets_context(self):
        """clear_push_id should reset to previous value"""
        original_id = str(uuid.uuid4())
        token1 = set_push_id(original_id)

        token2 = set_push_id("nested")
        assert get_push_id() == "nested"

        clear_push_id(token2)
        assert get_push_id() == original_id

        clear_push_id(token1)


class TestPushIdFilter:
    """Test push ID logging filter"""

    def test_filter_adds_push_id_to_record(self):
        record = make_record()
        token = set_push_id("push-123")

        assert PushIdFilter().filter(record) is True
        assert record.push_id == "push-123"

        clear_push_id(token)

    def test_filter_uses_dash_when_no_push_id(self):
        record = make_record()
        token = set_push_id(None)

        PushIdFilter().filter(record)

        assert record.push_id == "-"
        clear_push_id(token)


class TestSanitizingFilter:
    """Test log sanitization filter"""

    def test_filter_removes_newlines(self):
        """Gateway bodies with newlines must not split log lines"""
        record = make_record(msg="Line 1\nLine 2\r\nLine 3")

        SanitizingFilter().filter(record)

        assert record.msg == "Line 1 Line 2 Line 3"

    def test_filter_sanitizes_args(self):
        record = make_record(msg="Endpoint: %s", args=("malicious\ninjection",))

        SanitizingFilter().filter(record)

        assert "\n" not in record.args[0]


class TestSanitizeLogValue:
    """Test sanitize_log_value helper function"""

    def test_sanitize_removes_newlines(self):
        assert sanitize_log_value("hello\nworld") == "hello world"

    def test_sanitize_truncates_long_strings(self):
        long_string = "a" * 20000
        result = sanitize_log_value(long_string)

        assert len(result) < len(long_string)
        assert "[truncated]" in result

    def test_sanitize_handles_non_strings(self):
        assert sanitize_log_value(12345) == "12345"


class TestCustomJsonFormatter:
    """Test custom JSON log formatter"""

    def test_formatter_produces_valid_json(self):
        formatter = CustomJsonFormatter()
        record = make_record(
            msg="Dispatching FCM notification failed for endpoint abc: Unregistered device",
            name="pushbridge.push.response",
        )
        record.push_id = "push-uuid"

        parsed = json.loads(formatter.format(record))

        assert "timestamp" in parsed
        assert parsed["level"] == "WARNING"
        assert parsed["logger"] == "pushbridge.push.response"
        assert parsed["push_id"] == "push-uuid"
        assert parsed["message"].endswith("Unregistered device")

    def test_formatter_includes_structured_fields(self):
        """endpoint/error extras end up as top-level JSON keys"""
        formatter = CustomJsonFormatter()
        record = make_record()
        record.endpoint = "abc"
        record.error = "Unregistered device"

        parsed = json.loads(formatter.format(record))

        assert parsed["endpoint"] == "abc"
        assert parsed["error"] == "Unregistered device"


class TestSetupLogging:
    """Test logging setup function"""

    def test_setup_logging_returns_package_logger(self):
        logger = setup_logging(log_level="INFO", json_output=True)

        assert isinstance(logger, logging.Logger)
        assert logger.name == "pushbridge"
        assert len(logger.handlers) == 1

    def test_setup_logging_respects_log_level(self):
        logger = setup_logging(log_level="WARNING")

        assert logger.level == logging.WARNING

        setup_logging(log_level="INFO")

    def test_setup_logging_is_idempotent(self):
        setup_logging(log_level="INFO")
        logger = setup_logging(log_level="INFO")

        assert len(logger.handlers) == 1

    def test_setup_logging_adds_file_handler(self, tmp_path):
        logger = setup_logging(log_level="INFO", log_dir=str(tmp_path), json_output=False)

        assert len(logger.handlers) == 2
        assert (tmp_path / "pushbridge.log").exists()

        for handler in logger.handlers:
            handler.close()
        setup_logging(log_level="INFO", log_dir="")

    def test_text_format_includes_push_id(self, tmp_path):
        logger = setup_logging(log_level="INFO", log_dir=str(tmp_path), json_output=False)

        logger.warning("outside a push")
        token = set_push_id("push-42")
        logger.warning("inside a push")
        clear_push_id(token)

        for handler in logger.handlers:
            handler.flush()
        lines = (tmp_path / "pushbridge.log").read_text().splitlines()

        assert lines[0].endswith("[-] outside a push")
        assert lines[1].endswith("[push-42] inside a push")

        for handler in logger.handlers:
            handler.close()
        setup_logging(log_level="INFO", log_dir="")

    def test_setup_logging_quiets_http_client(self):
        setup_logging(log_level="DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

        setup_logging(log_level="INFO")
