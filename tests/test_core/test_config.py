"""
Tests for Settings.
"""
import pytest
from pydantic import ValidationError

from pushbridge.core.config import Settings


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestSettingsDefaults:
    """Tests for default values."""

    def test_transport_defaults(self):
        settings = make_settings()

        assert settings.HTTP_TIMEOUT_SECONDS == 15.0
        assert settings.HTTP_CONNECT_TIMEOUT_SECONDS == 15.0
        assert settings.MAX_CONCURRENT_BATCHES == 1

    def test_gateways_not_ready_without_credentials(self):
        settings = make_settings(FCM_AUTH_TOKEN=None, JPUSH_AUTH_TOKEN=None, APNS_KEY_FILE=None)

        assert settings.fcm_ready is False
        assert settings.jpush_ready is False
        assert settings.apns_ready is False


class TestSettingsValidation:
    """Tests for field validators."""

    def test_log_level_uppercased(self):
        assert make_settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(LOG_LEVEL="LOUD")

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_settings(MAX_CONCURRENT_BATCHES=0)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_settings(HTTP_TIMEOUT_SECONDS=0)


class TestReadyProperties:
    """Tests for the *_ready helpers."""

    def test_fcm_ready(self):
        assert make_settings(FCM_AUTH_TOKEN="server-key").fcm_ready is True

    def test_pap_needs_all_fields(self):
        assert make_settings(PAP_AUTH_TOKEN="app", PAP_PASSWORD="pw").pap_ready is False
        assert make_settings(
            PAP_AUTH_TOKEN="app", PAP_PASSWORD="pw", PAP_CONTENT_PROVIDER_ID="123"
        ).pap_ready is True

    def test_apns_ready_requires_existing_key_file(self, tmp_path):
        key_file = tmp_path / "AuthKey.p8"
        fields = dict(
            APNS_KEY_FILE=str(key_file),
            APNS_KEY_ID="KEYID12345",
            APNS_TEAM_ID="TEAMID1234",
            APNS_BUNDLE_ID="com.example.app",
        )

        assert make_settings(**fields).apns_ready is False

        key_file.write_text("key")
        assert make_settings(**fields).apns_ready is True

    def test_env_variables_are_read(self, monkeypatch):
        monkeypatch.setenv("WNS_CLIENT_ID", "client")
        monkeypatch.setenv("WNS_CLIENT_SECRET", "secret")

        assert make_settings().wns_ready is True
