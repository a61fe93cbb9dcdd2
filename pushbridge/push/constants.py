"""
Constants for the push gateways.

Error tokens, header names and URLs are dictated by the upstream
gateways and must match them byte for byte.
"""

from pushbridge.push.models import DeliveryStatus


# =============================================================================
# FCM (legacy HTTP API)
# =============================================================================

FCM_SEND_URL = "https://fcm.googleapis.com/fcm/send"
FCM_BATCH_SIZE = 1000

# Wire error token -> (status, human readable reason)
FCM_ERROR_CODES = {
    "MissingRegistration": (DeliveryStatus.INVALID_ENDPOINT, "Missing registration token"),
    "InvalidRegistration": (DeliveryStatus.INVALID_ENDPOINT, "Invalid registration token"),
    "NotRegistered": (DeliveryStatus.INVALID_ENDPOINT, "Unregistered device"),
    "InvalidPackageName": (DeliveryStatus.INVALID_ENDPOINT, "Invalid package name"),
    "MismatchSenderId": (DeliveryStatus.INVALID_ENDPOINT, "Mismatched sender"),
    "MessageTooBig": (DeliveryStatus.ERROR, "Message too big"),
    "InvalidDataKey": (DeliveryStatus.ERROR, "Invalid data key"),
    "InvalidTtl": (DeliveryStatus.ERROR, "Invalid time to live"),
    "Unavailable": (DeliveryStatus.TEMPORARY_ERROR, "Timeout"),
    "InternalServerError": (DeliveryStatus.TEMPORARY_ERROR, "Internal server error"),
    "DeviceMessageRateExceeded": (DeliveryStatus.TEMPORARY_ERROR, "Device message rate exceeded"),
    "TopicsMessageRateExceeded": (DeliveryStatus.TEMPORARY_ERROR, "Topics message rate exceeded"),
}

FCM_PRIORITIES = {"high", "normal"}

# =============================================================================
# JPush
# =============================================================================

JPUSH_SEND_URL = "https://api.jpush.cn/v3/push"
JPUSH_REPORT_URL = "https://report.jpush.cn/v3/status/message"
JPUSH_BATCH_SIZE = 1000

# Report API status code -> (status, reason)
JPUSH_REPORT_CODES = {
    1: (DeliveryStatus.UNKNOWN, "Not delivered"),
    2: (DeliveryStatus.INVALID_ENDPOINT, "Registration_id does not belong to the application"),
    3: (DeliveryStatus.ERROR, "Registration_id belongs to the application, but it is not the target of the message"),
    4: (DeliveryStatus.TEMPORARY_ERROR, "The system is abnormal"),
}

# HTTP status -> default reason when the body carries no error.message
JPUSH_HTTP_ERRORS = {
    400: (DeliveryStatus.ERROR, "Invalid request"),
    401: (DeliveryStatus.ERROR, "Error with authentication"),
    403: (DeliveryStatus.ERROR, "Error with configuration"),
}

# =============================================================================
# APNS (HTTP/2 provider API)
# =============================================================================

APNS_PRODUCTION_HOST = "api.push.apple.com"
APNS_SANDBOX_HOST = "api.sandbox.push.apple.com"
APNS_DEVICE_PATH = "/3/device/{device_token}"
APNS_BATCH_SIZE = 100
APNS_CONCURRENCY = 10

# Device tokens are 32 bytes, hex encoded
APNS_DEVICE_TOKEN_PATTERN = r"^[0-9a-fA-F]{64}$"

# JWT configuration
JWT_ALGORITHM = "ES256"
JWT_TOKEN_LIFETIME_SECONDS = 3600  # 1 hour

APNS_INVALID_ENDPOINT_STATUS_CODES = {400, 410}
APNS_TEMPORARY_STATUS_CODES = {429, 500, 503}
APNS_ERROR_STATUS_CODES = {401, 403}
# Statuses that describe the request as a whole rather than one device
APNS_BATCH_STATUS_CODES = {401, 403}

# Reason header refinement, applied after the status code mapping
APNS_REASON_STATUS = {
    "TopicDisallowed": DeliveryStatus.ERROR,
    "BadCertificate": DeliveryStatus.ERROR,
    "BadCertificateEnvironment": DeliveryStatus.ERROR,
    "InvalidProviderToken": DeliveryStatus.ERROR,
    "IdleTimeout": DeliveryStatus.TEMPORARY_ERROR,
    "ExpiredProviderToken": DeliveryStatus.TEMPORARY_ERROR,
    "BadDeviceToken": DeliveryStatus.INVALID_ENDPOINT,
    "DeviceTokenNotForTopic": DeliveryStatus.INVALID_ENDPOINT,
}

# =============================================================================
# WNS
# =============================================================================

WNS_TOKEN_URL = "https://login.live.com/accesstoken.srf"
WNS_NOTIFICATION_SCOPE = "notify.windows.com"

WNS_TYPE_TOAST = "toast"
WNS_TYPE_TILE = "tile"
WNS_TYPE_BADGE = "badge"
WNS_TYPE_RAW = "raw"
WNS_TYPES = {WNS_TYPE_TOAST, WNS_TYPE_TILE, WNS_TYPE_BADGE, WNS_TYPE_RAW}

WNS_STATUS_HEADER = "X-WNS-Status"
WNS_DEVICE_STATUS_HEADER = "X-WNS-DeviceConnectionStatus"
WNS_ERROR_DESCRIPTION_HEADER = "X-WNS-Error-Description"
WNS_DEBUG_TRACE_HEADER = "X-WNS-Debug-Trace"

# Codes for which the notification/device status headers carry no meaning
WNS_HEADERLESS_STATUS_CODES = {400, 401, 403, 405, 413, 500, 503}

# =============================================================================
# MPNS
# =============================================================================

MPNS_NOTIFICATION_STATUS_HEADER = "X-Notificationstatus"
MPNS_DEVICE_STATUS_HEADER = "X-Deviceconnectionstatus"
MPNS_SUBSCRIPTION_STATUS_HEADER = "X-Subscriptionstatus"

MPNS_HEADERLESS_STATUS_CODES = {400, 401, 405, 503}

HEADER_NOT_APPLICABLE = "N/A"

# Notification class values (X-NotificationClass)
MPNS_PRIORITY_DEFAULT = 0
MPNS_PRIORITY_TILE_IMMEDIATELY = 1
MPNS_PRIORITY_TILE_WAIT_450 = 11
MPNS_PRIORITY_TILE_WAIT_900 = 21
MPNS_PRIORITY_TOAST_IMMEDIATELY = 2
MPNS_PRIORITY_TOAST_WAIT_450 = 12
MPNS_PRIORITY_TOAST_WAIT_900 = 22
MPNS_PRIORITY_RAW_IMMEDIATELY = 3
MPNS_PRIORITY_RAW_WAIT_450 = 13
MPNS_PRIORITY_RAW_WAIT_900 = 23
MPNS_PRIORITIES = {0, 1, 11, 21, 2, 12, 22, 3, 13, 23}

# =============================================================================
# PAP (BlackBerry Push Access Protocol)
# =============================================================================

PAP_URL_TEMPLATE = "https://cp{cid}.pushapi.na.blackberry.com/mss/PD_pushRequest"
PAP_BOUNDARY = "mPsbVQo0a68eIL3OAxnm"

PAP_SUCCESS_CODES = {1000, 1001}
PAP_INVALID_ENDPOINT_CODES = {2002}
PAP_ERROR_CODES = {2000, 2001, 2003, 2004, 2005, 2100}

# =============================================================================
# Email
# =============================================================================

EMAIL_DEFAULT_CHARSET = "UTF-8"
