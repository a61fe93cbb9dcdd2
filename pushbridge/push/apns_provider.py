"""
APNS (Apple Push Notification Service) dispatcher.

Features:
- HTTP/2 provider API, one request per device token
- Token-based authentication (JWT with .p8 key), cached for an hour
- Malformed device tokens are flagged invalid and never sent
- Per-device error decoding from status code and reason
- Failures shared by every device of a batch are reported once
"""

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from pushbridge.core.metrics import record_transport_error
from pushbridge.push.base import PushDispatcher
from pushbridge.push.constants import (
    APNS_BATCH_SIZE,
    APNS_BATCH_STATUS_CODES,
    APNS_CONCURRENCY,
    APNS_DEVICE_PATH,
    APNS_DEVICE_TOKEN_PATTERN,
    APNS_ERROR_STATUS_CODES,
    APNS_INVALID_ENDPOINT_STATUS_CODES,
    APNS_PRODUCTION_HOST,
    APNS_REASON_STATUS,
    APNS_SANDBOX_HOST,
    APNS_TEMPORARY_STATUS_CODES,
    JWT_ALGORITHM,
    JWT_TOKEN_LIFETIME_SECONDS,
)
from pushbridge.push.exceptions import ConfigurationError, TransportError
from pushbridge.push.models import APNSConfig, DeliveryStatus
from pushbridge.push.payloads import APNSPayload
from pushbridge.push.response import BatchResult
from pushbridge.push.transport import HTTPTransport

logger = logging.getLogger(__name__)

_DEVICE_TOKEN_RE = re.compile(APNS_DEVICE_TOKEN_PATTERN)


@dataclass
class APNSDeviceError:
    """
    Failed delivery to one device.

    Attributes:
        endpoint: Device token
        status_code: HTTP status, None when no response was obtained
        reason: APNS reason string from the response body, if any
        message: Raw error text used when there is no reason
        logged: True when the failure was already logged by the dispatcher
        transport_kind: TransportError kind when no response was obtained
    """

    endpoint: str
    status_code: Optional[int]
    reason: Optional[str] = None
    message: str = ""
    logged: bool = False
    transport_kind: Optional[str] = None

    @property
    def signature(self) -> tuple:
        return self.status_code, self.reason, self.transport_kind


class APNSBatchResult(BatchResult):
    """
    Decoded answers for one batch of APNS requests.

    Args:
        endpoints: Device tokens of the batch
        invalid_endpoints: Tokens rejected before sending
        errors: Per-device failures, or None when the batch was not dispatched
        payload: JSON body sent to every device
    """

    gateway_name = "APNS"

    def __init__(
        self,
        endpoints: Sequence[str],
        invalid_endpoints: Iterable[str],
        errors: Optional[List[APNSDeviceError]],
        payload: str,
    ):
        super().__init__(endpoints, payload)
        self.invalid_endpoints = tuple(invalid_endpoints)

        self._set_statuses(self.invalid_endpoints, DeliveryStatus.INVALID_ENDPOINT)

        if errors is None:
            self._set_statuses(self.endpoints, DeliveryStatus.ERROR, overwrite=False)
            return

        sent = [e for e in self.endpoints if e not in self.invalid_endpoints]
        batch_error = self.shared_batch_error(sent, errors)
        if batch_error is not None:
            self._report_batch_error(
                self.status_for(batch_error.status_code, batch_error.reason),
                batch_error.reason or batch_error.message,
                overwrite=False,
                log=not batch_error.logged,
            )
            return

        for error in errors:
            self._decode_error(error)

        self._set_statuses(self.endpoints, DeliveryStatus.SUCCESS, overwrite=False)

    @staticmethod
    def shared_batch_error(
        sent: Sequence[str],
        errors: Sequence[APNSDeviceError],
    ) -> Optional[APNSDeviceError]:
        """
        Return the failure every sent device got, when it describes the batch.

        A request-level failure (no response, 401/403, 5xx) repeated for all
        devices is reported once for the batch instead of once per device.
        """
        if not sent or {error.endpoint for error in errors} != set(sent):
            return None

        first = errors[0]
        if any(error.signature != first.signature for error in errors[1:]):
            return None

        if (
            first.transport_kind is not None
            or first.status_code in APNS_BATCH_STATUS_CODES
            or (first.status_code or 0) >= 500
        ):
            return first
        return None

    @staticmethod
    def status_for(status_code: Optional[int], reason: Optional[str]) -> DeliveryStatus:
        """Map an APNS status code, refined by its reason, to a DeliveryStatus."""
        if status_code in APNS_INVALID_ENDPOINT_STATUS_CODES:
            status = DeliveryStatus.INVALID_ENDPOINT
        elif status_code in APNS_TEMPORARY_STATUS_CODES or (status_code or 0) >= 500:
            status = DeliveryStatus.TEMPORARY_ERROR
        elif status_code in APNS_ERROR_STATUS_CODES:
            status = DeliveryStatus.ERROR
        else:
            status = DeliveryStatus.UNKNOWN

        return APNS_REASON_STATUS.get(reason, status)

    def _decode_error(self, error: APNSDeviceError) -> None:
        if error.endpoint in self.invalid_endpoints:
            return

        status = self.status_for(error.status_code, error.reason)

        if error.logged:
            self._statuses[error.endpoint] = status
            return

        self._report_endpoint_error(error.endpoint, status, error.reason or error.message)


class APNSDispatcher(PushDispatcher):
    """
    Dispatcher for the APNS HTTP/2 provider API.

    Usage:
        config = APNSConfig(
            key_file="path/to/AuthKey.p8",
            key_id="XXXXXXXXXX",
            team_id="YYYYYYYYYY",
            bundle_id="com.example.app",
        )
        dispatcher = APNSDispatcher(transport, config)
        response = await dispatcher.push(payload, device_tokens)

    Attributes:
        config: APNS configuration, None until set
        _jwt_token: Cached JWT for authentication
        _jwt_expires_at: JWT expiration timestamp
    """

    gateway_name = "APNS"
    BATCH_SIZE = APNS_BATCH_SIZE

    def __init__(
        self,
        transport: HTTPTransport,
        config: Optional[APNSConfig] = None,
        max_concurrent_batches: Optional[int] = None,
    ):
        super().__init__(transport, max_concurrent_batches)
        self.config: Optional[APNSConfig] = None
        self._jwt_token: Optional[str] = None
        self._jwt_expires_at: float = 0
        self._private_key: Optional[ec.EllipticCurvePrivateKey] = None

        if config is not None:
            self.set_config(config)

    def set_config(self, config: APNSConfig) -> None:
        """Set key material and topic. Drops any cached key and JWT."""
        self.config = config
        self._private_key = None
        self._invalidate_jwt()

    @property
    def base_url(self) -> str:
        sandbox = self.config is not None and self.config.use_sandbox
        return f"https://{APNS_SANDBOX_HOST if sandbox else APNS_PRODUCTION_HOST}"

    def _invalidate_jwt(self) -> None:
        self._jwt_token = None
        self._jwt_expires_at = 0

    def _load_private_key(self) -> ec.EllipticCurvePrivateKey:
        """Load private key from .p8 file."""
        if self.config is None:
            raise ConfigurationError("APNS is not configured")

        if self._private_key is None:
            key_path = Path(self.config.key_file)
            if not key_path.exists():
                raise ConfigurationError(f"APNS key file not found: {key_path}")

            try:
                private_key = serialization.load_pem_private_key(
                    key_path.read_bytes(),
                    password=None,
                )
            except ValueError as e:
                raise ConfigurationError(f"APNS key file is not a valid key: {e}") from e

            if not isinstance(private_key, ec.EllipticCurvePrivateKey):
                raise ConfigurationError("APNS key must be an EC private key (ES256)")

            self._private_key = private_key
            logger.debug(f"Loaded APNS private key from {key_path}")

        return self._private_key

    def _generate_jwt(self) -> str:
        """
        Generate JWT for APNS authentication.

        The JWT is signed with ES256 using the .p8 private key and is
        cached until 60 seconds before it expires.

        Returns:
            JWT string for Authorization header
        """
        now = time.time()

        if self._jwt_token and self._jwt_expires_at > now + 60:
            return self._jwt_token

        private_key = self._load_private_key()

        self._jwt_token = jwt.encode(
            {"iss": self.config.team_id, "iat": int(now)},
            private_key,
            algorithm=JWT_ALGORITHM,
            headers={"alg": JWT_ALGORITHM, "kid": self.config.key_id},
        )
        self._jwt_expires_at = now + JWT_TOKEN_LIFETIME_SECONDS

        logger.debug(
            "Generated new APNS JWT",
            extra={
                "team_id": self.config.team_id,
                "key_id": self.config.key_id,
                "expires_in": JWT_TOKEN_LIFETIME_SECONDS,
            }
        )

        return self._jwt_token

    def _build_headers(self, payload: APNSPayload) -> Dict[str, str]:
        """Build request headers for APNS."""
        push_type = payload.push_type
        priority = payload.priority or (5 if push_type == "background" else 10)

        headers = {
            "authorization": f"bearer {self._generate_jwt()}",
            "apns-topic": self.config.bundle_id,
            "apns-push-type": push_type,
            "apns-priority": str(priority),
            "apns-expiration": str(payload.expiration),
        }
        if payload.collapse_id:
            headers["apns-collapse-id"] = payload.collapse_id

        return headers

    async def _push_batch(self, payload: APNSPayload, endpoints: List[str]) -> APNSBatchResult:
        body = json.dumps(payload.to_wire())

        invalid = [token for token in endpoints if not _DEVICE_TOKEN_RE.match(token)]
        valid = [token for token in endpoints if token not in invalid]

        try:
            headers = self._build_headers(payload)
        except ConfigurationError as e:
            for endpoint in valid:
                logger.warning(
                    f"Dispatching APNS notification failed for endpoint {endpoint}: {e}",
                    extra={"endpoint": endpoint, "error": str(e)}
                )
            return APNSBatchResult(endpoints, invalid, None, body)

        semaphore = asyncio.Semaphore(APNS_CONCURRENCY)

        async def send_with_semaphore(token: str) -> Optional[APNSDeviceError]:
            async with semaphore:
                return await self._send(token, headers, body)

        results = await asyncio.gather(*[send_with_semaphore(token) for token in valid])
        errors = [error for error in results if error is not None]

        if any(error.reason in ("ExpiredProviderToken", "InvalidProviderToken") for error in errors):
            self._invalidate_jwt()

        unanswered = [error for error in errors if error.transport_kind is not None]
        if unanswered and APNSBatchResult.shared_batch_error(valid, errors) is not None:
            self._log_transport_failure(unanswered[0].message, valid)
        else:
            for error in unanswered:
                self._log_transport_failure(error.message, [error.endpoint])

        return APNSBatchResult(endpoints, invalid, errors, body)

    async def _send(
        self,
        device_token: str,
        headers: Dict[str, str],
        body: str,
    ) -> Optional[APNSDeviceError]:
        """Send to one device. Returns None on success."""
        url = f"{self.base_url}{APNS_DEVICE_PATH.format(device_token=device_token)}"

        try:
            response = await self.transport.post(url, headers=headers, content=body)
        except TransportError as e:
            # Logged by _push_batch, once for the batch when every device failed alike
            record_transport_error(self.gateway_name, e.kind)
            return APNSDeviceError(
                endpoint=device_token,
                status_code=500 if e.is_timeout else None,
                message=e.message,
                logged=True,
                transport_kind=e.kind,
            )

        if response.status_code == 200:
            return None

        try:
            error_body = json.loads(response.body) if response.body else {}
        except ValueError:
            error_body = {}
        reason = error_body.get("reason") if isinstance(error_body, dict) else None

        return APNSDeviceError(
            endpoint=device_token,
            status_code=response.status_code,
            reason=reason,
            message=response.text or f"HTTP {response.status_code}",
        )
