"""Application configuration using Pydantic Settings"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Optional
import os


class Settings(BaseSettings):
    """Gateway credentials and dispatch tuning loaded from environment variables"""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None  # File logging disabled when unset
    LOG_JSON: bool = True

    # Transport
    HTTP_TIMEOUT_SECONDS: float = 15.0
    HTTP_CONNECT_TIMEOUT_SECONDS: float = 15.0
    HTTP2_ENABLED: bool = True

    # Dispatch
    MAX_CONCURRENT_BATCHES: int = 1  # 1 = batches are sent sequentially

    @field_validator('LOG_LEVEL', mode='after')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level is one the logging module knows."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator('HTTP_TIMEOUT_SECONDS', 'HTTP_CONNECT_TIMEOUT_SECONDS', mode='after')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Timeouts must be positive so no batch can block forever."""
        if v <= 0:
            raise ValueError("Timeouts must be greater than zero")
        return v

    @field_validator('MAX_CONCURRENT_BATCHES', mode='after')
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_CONCURRENT_BATCHES must be at least 1")
        return v

    # FCM (legacy HTTP API)
    FCM_AUTH_TOKEN: Optional[str] = None  # Server key

    @property
    def fcm_ready(self) -> bool:
        """Check if FCM is configured."""
        return bool(self.FCM_AUTH_TOKEN)

    # JPush
    JPUSH_AUTH_TOKEN: Optional[str] = None  # base64("appKey:masterSecret")

    @property
    def jpush_ready(self) -> bool:
        """Check if JPush is configured."""
        return bool(self.JPUSH_AUTH_TOKEN)

    # APNS
    APNS_KEY_FILE: Optional[str] = None  # Path to .p8 auth key file
    APNS_KEY_ID: Optional[str] = None  # 10-character key identifier
    APNS_TEAM_ID: Optional[str] = None  # 10-character team identifier
    APNS_BUNDLE_ID: Optional[str] = None  # App bundle ID, used as apns-topic
    APNS_USE_SANDBOX: bool = False  # Use sandbox for development

    @property
    def apns_ready(self) -> bool:
        """Check if APNS is properly configured and ready to use."""
        return (
            self.APNS_KEY_FILE is not None
            and self.APNS_KEY_ID is not None
            and self.APNS_TEAM_ID is not None
            and self.APNS_BUNDLE_ID is not None
            and os.path.exists(self.APNS_KEY_FILE)
        )

    # WNS
    WNS_CLIENT_ID: Optional[str] = None
    WNS_CLIENT_SECRET: Optional[str] = None

    @property
    def wns_ready(self) -> bool:
        """Check if WNS credentials are available to request an OAuth token."""
        return bool(self.WNS_CLIENT_ID and self.WNS_CLIENT_SECRET)

    # PAP (BlackBerry Push)
    PAP_AUTH_TOKEN: Optional[str] = None  # Application ID
    PAP_PASSWORD: Optional[str] = None
    PAP_CONTENT_PROVIDER_ID: Optional[str] = None

    @property
    def pap_ready(self) -> bool:
        """Check if PAP is configured."""
        return bool(self.PAP_AUTH_TOKEN and self.PAP_PASSWORD and self.PAP_CONTENT_PROVIDER_ID)

    # Email
    EMAIL_SOURCE: Optional[str] = None  # From address
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True

    @property
    def email_ready(self) -> bool:
        """Check if email-as-push has a sender configured."""
        return bool(self.EMAIL_SOURCE)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


# Global settings instance
settings = Settings()
