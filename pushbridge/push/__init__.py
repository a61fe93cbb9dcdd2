"""
Push notification dispatchers.

This package contains dispatchers for:
- APNS (Apple Push Notification Service)
- FCM (Firebase Cloud Messaging, legacy HTTP API)
- JPush
- WNS (Windows Push Notification Services)
- MPNS (Microsoft Push Notification Service for Windows Phone)
- PAP (BlackBerry Push Access Protocol)
- Email

Every dispatcher returns a PushResponse mapping each endpoint to a
DeliveryStatus.
"""

from pushbridge.push.apns_provider import APNSBatchResult, APNSDispatcher
from pushbridge.push.base import PushDispatcher
from pushbridge.push.dispatch_service import Gateway, create_dispatcher
from pushbridge.push.email_provider import EmailBatchResult, EmailDispatcher
from pushbridge.push.exceptions import (
    BatchProtocolError,
    ConfigurationError,
    PushError,
    TransportError,
)
from pushbridge.push.fcm_provider import FCMBatchResult, FCMDispatcher
from pushbridge.push.jpush_provider import JPushBatchResult, JPushDispatcher
from pushbridge.push.models import (
    APNSConfig,
    DeliveryStatus,
    TransportResponse,
    status_for_http_code,
)
from pushbridge.push.mpns_provider import MPNSBatchResult, MPNSDispatcher
from pushbridge.push.pap_provider import PAPBatchResult, PAPDispatcher
from pushbridge.push.payloads import (
    APNSAlert,
    APNSPayload,
    EmailPayload,
    FCMPayload,
    JPushMessagePayload,
    JPushNotificationPayload,
    MPNSRawPayload,
    MPNSTilePayload,
    MPNSToastPayload,
    PAPPayload,
    WNSBadgePayload,
    WNSRawPayload,
    WNSTilePayload,
    WNSToastPayload,
)
from pushbridge.push.response import BatchResult, PushResponse
from pushbridge.push.splitter import EndpointBatches, chunk_endpoints
from pushbridge.push.transport import HTTPTransport
from pushbridge.push.wns_provider import WNSBatchResult, WNSDispatcher

__all__ = [
    # Registry
    "Gateway",
    "create_dispatcher",
    "PushDispatcher",
    # Results
    "BatchResult",
    "PushResponse",
    "DeliveryStatus",
    "status_for_http_code",
    # Transport
    "HTTPTransport",
    "TransportResponse",
    "EndpointBatches",
    "chunk_endpoints",
    # Errors
    "PushError",
    "TransportError",
    "BatchProtocolError",
    "ConfigurationError",
    # APNS
    "APNSDispatcher",
    "APNSBatchResult",
    "APNSConfig",
    "APNSPayload",
    "APNSAlert",
    # FCM
    "FCMDispatcher",
    "FCMBatchResult",
    "FCMPayload",
    # JPush
    "JPushDispatcher",
    "JPushBatchResult",
    "JPushNotificationPayload",
    "JPushMessagePayload",
    # WNS
    "WNSDispatcher",
    "WNSBatchResult",
    "WNSToastPayload",
    "WNSTilePayload",
    "WNSBadgePayload",
    "WNSRawPayload",
    # MPNS
    "MPNSDispatcher",
    "MPNSBatchResult",
    "MPNSToastPayload",
    "MPNSTilePayload",
    "MPNSRawPayload",
    # PAP
    "PAPDispatcher",
    "PAPBatchResult",
    "PAPPayload",
    # Email
    "EmailDispatcher",
    "EmailBatchResult",
    "EmailPayload",
]
