"""
Gateway registry.

Maps the closed set of supported gateways to their dispatchers and builds
dispatchers configured from Settings.

Usage:
    async with HTTPTransport() as transport:
        dispatcher = create_dispatcher(Gateway.FCM, transport)
        response = await dispatcher.push(FCMPayload(data={"k": "v"}), tokens)
"""

import logging
from enum import Enum
from typing import Dict, Optional, Type, Union

from pushbridge.core.config import Settings
from pushbridge.core.config import settings as default_settings
from pushbridge.push.apns_provider import APNSDispatcher
from pushbridge.push.base import PushDispatcher
from pushbridge.push.email_provider import EmailDispatcher
from pushbridge.push.exceptions import ConfigurationError
from pushbridge.push.fcm_provider import FCMDispatcher
from pushbridge.push.jpush_provider import JPushDispatcher
from pushbridge.push.models import APNSConfig
from pushbridge.push.mpns_provider import MPNSDispatcher
from pushbridge.push.pap_provider import PAPDispatcher
from pushbridge.push.transport import HTTPTransport
from pushbridge.push.wns_provider import WNSDispatcher

logger = logging.getLogger(__name__)


class Gateway(str, Enum):
    """Supported push gateways."""

    APNS = "apns"
    FCM = "fcm"
    JPUSH = "jpush"
    WNS = "wns"
    MPNS = "mpns"
    PAP = "pap"
    EMAIL = "email"


DISPATCHERS: Dict[Gateway, Type[PushDispatcher]] = {
    Gateway.APNS: APNSDispatcher,
    Gateway.FCM: FCMDispatcher,
    Gateway.JPUSH: JPushDispatcher,
    Gateway.WNS: WNSDispatcher,
    Gateway.MPNS: MPNSDispatcher,
    Gateway.PAP: PAPDispatcher,
    Gateway.EMAIL: EmailDispatcher,
}


def _configure(dispatcher: PushDispatcher, gateway: Gateway, config: Settings) -> None:
    """Apply credentials from settings through the dispatcher setters."""
    if gateway is Gateway.FCM and config.FCM_AUTH_TOKEN:
        dispatcher.set_auth_token(config.FCM_AUTH_TOKEN)

    elif gateway is Gateway.JPUSH and config.JPUSH_AUTH_TOKEN:
        dispatcher.set_auth_token(config.JPUSH_AUTH_TOKEN)

    elif gateway is Gateway.APNS and config.apns_ready:
        dispatcher.set_config(APNSConfig(
            key_file=config.APNS_KEY_FILE,
            key_id=config.APNS_KEY_ID,
            team_id=config.APNS_TEAM_ID,
            bundle_id=config.APNS_BUNDLE_ID,
            use_sandbox=config.APNS_USE_SANDBOX,
        ))

    elif gateway is Gateway.WNS:
        if config.WNS_CLIENT_ID:
            dispatcher.set_client_id(config.WNS_CLIENT_ID)
        if config.WNS_CLIENT_SECRET:
            dispatcher.set_client_secret(config.WNS_CLIENT_SECRET)

    elif gateway is Gateway.PAP:
        dispatcher.set_auth_token(config.PAP_AUTH_TOKEN or "")
        dispatcher.set_password(config.PAP_PASSWORD or "")
        dispatcher.set_content_provider_id(config.PAP_CONTENT_PROVIDER_ID or "")

    elif gateway is Gateway.EMAIL:
        dispatcher.set_source(config.EMAIL_SOURCE or "")
        dispatcher.set_smtp(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            use_tls=config.SMTP_USE_TLS,
        )


def create_dispatcher(
    gateway: Union[Gateway, str],
    transport: Optional[HTTPTransport] = None,
    settings: Optional[Settings] = None,
) -> PushDispatcher:
    """
    Build a dispatcher for a gateway.

    Args:
        gateway: Gateway or its name ("fcm", "apns", ...)
        transport: Shared HTTP transport, unused by the email gateway
        settings: Settings to configure from, the global settings if None

    Returns:
        Configured dispatcher

    Raises:
        ConfigurationError: For an unknown gateway
    """
    try:
        gateway = Gateway(gateway)
    except ValueError as e:
        raise ConfigurationError(f"Unknown push gateway: {gateway}") from e

    config = settings or default_settings

    dispatcher = DISPATCHERS[gateway](transport, max_concurrent_batches=config.MAX_CONCURRENT_BATCHES)
    _configure(dispatcher, gateway, config)

    logger.debug(
        f"Created {dispatcher.gateway_name} dispatcher",
        extra={"gateway": gateway.value}
    )

    return dispatcher
