"""
Pydantic payload models for the push gateways.

Payloads only shape data. Each model renders its gateway wire format
through to_wire(); dispatchers merge in the recipients.
"""

import json
import logging
from typing import Any, ClassVar, Dict, List, Optional
from xml.sax.saxutils import escape

from pydantic import BaseModel, Field, field_validator

from pushbridge.push.constants import (
    FCM_PRIORITIES,
    MPNS_PRIORITIES,
    MPNS_PRIORITY_DEFAULT,
    WNS_TYPE_BADGE,
    WNS_TYPE_RAW,
    WNS_TYPE_TILE,
    WNS_TYPE_TOAST,
)

logger = logging.getLogger(__name__)

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(value: str) -> str:
    """Escape a string for use in XML text or attribute values."""
    return escape(value, _XML_ENTITIES)


# =============================================================================
# FCM
# =============================================================================


class FCMPayload(BaseModel):
    """FCM legacy HTTP payload.

    See: https://firebase.google.com/docs/cloud-messaging/http-server-ref

    Recipients (to / registration_ids) are added by the dispatcher.
    """

    notification: Optional[Dict[str, Any]] = Field(None, description="Display notification")
    data: Optional[Dict[str, Any]] = Field(None, description="Custom data payload")
    collapse_key: Optional[str] = None
    time_to_live: Optional[int] = Field(None, ge=0, le=2419200)
    priority: str = Field(default="high", description="Message priority")
    content_available: Optional[bool] = None
    mutable_content: Optional[bool] = None
    topic: Optional[str] = None
    condition: Optional[str] = None
    fcm_options: Dict[str, str] = Field(default_factory=dict)

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: str) -> str:
        """Validate priority is one of the allowed values."""
        v = v.lower()
        if v not in FCM_PRIORITIES:
            raise ValueError(f"Priority must be one of: {FCM_PRIORITIES}")
        return v

    def has_topic(self) -> bool:
        return self.topic is not None

    def has_condition(self) -> bool:
        return self.condition is not None

    def to_wire(self) -> Dict[str, Any]:
        """Convert to the FCM request dictionary."""
        payload = self.model_dump(exclude_none=True, exclude={"fcm_options"})
        if self.fcm_options:
            payload["fcm_options"] = dict(self.fcm_options)
        return payload


# =============================================================================
# JPush
# =============================================================================


class JPushPayload(BaseModel):
    """Base JPush v3 push payload.

    The audience is filled in by the dispatcher with the batch's
    registration ids.
    """

    platform: Any = Field(default="all", description="'all' or a list of platforms")
    notification: Optional[Dict[str, Any]] = None
    message: Optional[Dict[str, Any]] = None
    notification_3rd: Optional[Dict[str, Any]] = None
    options: Dict[str, Any] = Field(default_factory=dict)

    EXCLUDED_FIELDS: ClassVar[set] = set()

    def to_wire(self) -> Dict[str, Any]:
        """Convert to the JPush request dictionary."""
        payload = self.model_dump(exclude_none=True, exclude=self.EXCLUDED_FIELDS)
        payload["audience"] = {}
        if not payload.get("options"):
            payload.pop("options", None)
        return payload


class JPushNotificationPayload(JPushPayload):
    """Notification push: message and third-party channel content are dropped."""

    EXCLUDED_FIELDS: ClassVar[set] = {"message", "notification_3rd"}


class JPushMessagePayload(JPushPayload):
    """In-app message push: notification content is dropped."""

    EXCLUDED_FIELDS: ClassVar[set] = {"notification"}


# =============================================================================
# APNS
# =============================================================================


class APNSAlert(BaseModel):
    """APNS alert payload structure."""

    title: str = Field(..., description="Alert title")
    body: str = Field(..., description="Alert body text")
    subtitle: Optional[str] = Field(None, description="Alert subtitle")
    loc_key: Optional[str] = Field(None, description="Localization key for body")
    loc_args: Optional[List[str]] = Field(None, description="Localization args for body")


class APNSPayload(BaseModel):
    """APNS notification payload.

    See: https://developer.apple.com/documentation/usernotifications/generating-a-remote-notification

    Attributes:
        alert: The alert content (title, body, etc.)
        badge: App icon badge number (optional)
        sound: Sound filename or "default"
        mutable_content: Enable Notification Service Extension
        category: Notification category for action buttons
        thread_id: Thread identifier for grouping
        content_available: Background update flag (silent notification)
        collapse_id: apns-collapse-id header value
        expiration: apns-expiration header value (UNIX epoch, 0 = once)
        priority: apns-priority header value (10 immediate, 5 power aware)
        custom_data: Additional data to include in payload
    """

    alert: Optional[APNSAlert] = None
    badge: Optional[int] = Field(None, ge=0, description="Badge number")
    sound: Optional[str] = Field(default="default", description="Sound name or 'default'")
    mutable_content: bool = Field(default=False, description="Enable Service Extension")
    category: Optional[str] = Field(None, description="Notification category")
    thread_id: Optional[str] = Field(None, description="Thread ID for grouping")
    content_available: bool = Field(default=False, description="Background update")
    collapse_id: Optional[str] = Field(None, max_length=64)
    expiration: int = Field(default=0, ge=0)
    priority: Optional[int] = Field(None, description="5 or 10")
    custom_data: Dict[str, Any] = Field(default_factory=dict, description="Custom payload data")

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: Optional[int]) -> Optional[int]:
        """Validate priority is one APNS accepts."""
        if v is not None and v not in (5, 10):
            raise ValueError("Priority must be 5 or 10")
        return v

    @property
    def push_type(self) -> str:
        return "background" if self.content_available and self.alert is None else "alert"

    def to_wire(self) -> Dict[str, Any]:
        """Convert to APNS payload dictionary format."""
        aps: Dict[str, Any] = {}

        if self.alert is not None:
            alert_dict: Dict[str, Any] = {
                "title": self.alert.title,
                "body": self.alert.body,
            }
            if self.alert.subtitle:
                alert_dict["subtitle"] = self.alert.subtitle
            if self.alert.loc_key:
                alert_dict["loc-key"] = self.alert.loc_key
            if self.alert.loc_args:
                alert_dict["loc-args"] = self.alert.loc_args
            aps["alert"] = alert_dict
            if self.sound:
                aps["sound"] = self.sound

        if self.badge is not None:
            aps["badge"] = self.badge
        if self.mutable_content:
            aps["mutable-content"] = 1
        if self.content_available:
            aps["content-available"] = 1
        if self.category:
            aps["category"] = self.category
        if self.thread_id:
            aps["thread-id"] = self.thread_id

        payload = {"aps": aps}

        # Custom data lives at root level
        payload.update(self.custom_data)

        return payload


# =============================================================================
# WNS
# =============================================================================


class WNSPayload(BaseModel):
    """Base WNS payload. wns_type selects the X-WNS-Type header."""

    wns_type: ClassVar[str] = WNS_TYPE_RAW

    def to_wire(self) -> str:
        raise NotImplementedError


class WNSToastPayload(WNSPayload):
    """WNS toast notification."""

    wns_type: ClassVar[str] = WNS_TYPE_TOAST

    text: List[str] = Field(..., min_length=1, description="Text lines")
    launch: Optional[str] = None
    template: Optional[str] = None
    image: Optional[str] = None

    def to_wire(self) -> str:
        template = self.template or f"ToastText0{len(self.text)}"
        launch = f' launch="{escape_xml(self.launch)}"' if self.launch else ""

        xml = '<?xml version="1.0" encoding="UTF-8"?>\n'
        xml += f"<toast{launch}>\n<visual>\n"
        xml += f'<binding template="{escape_xml(template)}">\n'
        if self.image:
            xml += f'<image id="1" src="{escape_xml(self.image)}"/>\n'
        for index, line in enumerate(self.text, start=1):
            xml += f'<text id="{index}">{escape_xml(line)}</text>\n'
        xml += "</binding>\n</visual>\n</toast>\n"
        return xml


class WNSTilePayload(WNSPayload):
    """WNS tile notification."""

    wns_type: ClassVar[str] = WNS_TYPE_TILE

    template: str = Field(default="TileSquare150x150Text04")
    text: List[str] = Field(default_factory=list)
    image: Optional[str] = None

    def to_wire(self) -> str:
        xml = '<?xml version="1.0" encoding="UTF-8"?>\n'
        xml += "<tile>\n<visual>\n"
        xml += f'<binding template="{escape_xml(self.template)}">\n'
        if self.image:
            xml += f'<image id="1" src="{escape_xml(self.image)}"/>\n'
        for index, line in enumerate(self.text, start=1):
            xml += f'<text id="{index}">{escape_xml(line)}</text>\n'
        xml += "</binding>\n</visual>\n</tile>\n"
        return xml


class WNSBadgePayload(WNSPayload):
    """WNS badge notification: a number or a glyph name."""

    wns_type: ClassVar[str] = WNS_TYPE_BADGE

    value: str

    def to_wire(self) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            f'<badge value="{escape_xml(self.value)}"/>\n'
        )


class WNSRawPayload(WNSPayload):
    """WNS raw notification, delivered to the app as-is."""

    wns_type: ClassVar[str] = WNS_TYPE_RAW

    data: str

    def to_wire(self) -> str:
        return self.data


# =============================================================================
# MPNS
# =============================================================================


class MPNSPayload(BaseModel):
    """Base MPNS payload.

    target selects X-WindowsPhone-Target; raw notifications send none.
    """

    target: ClassVar[Optional[str]] = None

    priority: int = Field(default=MPNS_PRIORITY_DEFAULT, description="X-NotificationClass")

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: int) -> int:
        if v not in MPNS_PRIORITIES:
            raise ValueError(f"Priority must be one of: {sorted(MPNS_PRIORITIES)}")
        return v

    def to_wire(self) -> str:
        raise NotImplementedError


class MPNSToastPayload(MPNSPayload):
    """Windows Phone toast notification."""

    target: ClassVar[Optional[str]] = "toast"

    title: Optional[str] = None
    message: Optional[str] = None
    deeplink: Optional[str] = None

    @field_validator("deeplink")
    @classmethod
    def truncate_deeplink(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(escape_xml(v)) > 256:
            logger.info("Deeplink for Windows Phone Toast Notification too long. Truncated.")
        return v

    def to_wire(self) -> str:
        xml = '<?xml version="1.0" encoding="utf-8"?>\n'
        xml += '<wp:Notification xmlns:wp="WPNotification">\n<wp:Toast>\n'
        if self.title is not None:
            xml += f"<wp:Text1>{escape_xml(self.title)}</wp:Text1>\n"
        if self.message is not None:
            xml += f"<wp:Text2>{escape_xml(self.message)}</wp:Text2>\n"
        if self.deeplink is not None:
            xml += f"<wp:Param>{escape_xml(self.deeplink)[:256]}</wp:Param>\n"
        xml += "</wp:Toast>\n</wp:Notification>\n"
        return xml


class MPNSTilePayload(MPNSPayload):
    """Windows Phone tile notification."""

    target: ClassVar[Optional[str]] = "token"

    title: Optional[str] = None
    count: Optional[int] = None
    background_image: Optional[str] = None
    back_title: Optional[str] = None
    back_content: Optional[str] = None
    back_background_image: Optional[str] = None

    def to_wire(self) -> str:
        elements = [
            ("BackgroundImage", self.background_image),
            ("Count", None if self.count is None else str(self.count)),
            ("Title", self.title),
            ("BackBackgroundImage", self.back_background_image),
            ("BackTitle", self.back_title),
            ("BackContent", self.back_content),
        ]
        xml = '<?xml version="1.0" encoding="utf-8"?>\n'
        xml += '<wp:Notification xmlns:wp="WPNotification">\n<wp:Tile>\n'
        for name, value in elements:
            if value is not None:
                xml += f"<wp:{name}>{escape_xml(value)}</wp:{name}>\n"
        xml += "</wp:Tile>\n</wp:Notification>\n"
        return xml


class MPNSRawPayload(MPNSPayload):
    """Windows Phone raw notification."""

    data: str

    def to_wire(self) -> str:
        return self.data


# =============================================================================
# PAP
# =============================================================================


class PAPPayload(BaseModel):
    """BlackBerry PAP payload.

    Attributes:
        data: Message data, serialized as JSON in the multipart body
        deliver_before: deliver-before-timestamp attribute of the control XML
    """

    data: Dict[str, str] = Field(default_factory=dict)
    deliver_before: Optional[str] = None

    def to_wire(self) -> Dict[str, str]:
        return dict(self.data)


# =============================================================================
# Email
# =============================================================================


class EmailPayload(BaseModel):
    """Email-as-push payload."""

    subject: str
    body: str
    charset: str = Field(default="UTF-8")
    html: bool = False

    def to_wire(self) -> str:
        return json.dumps(self.model_dump())
