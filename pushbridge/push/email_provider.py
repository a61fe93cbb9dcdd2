"""
Email-as-push dispatcher.

Sends one message per recipient over SMTP (aiosmtplib). A recipient
succeeds when the SMTP server accepted its message.
"""

import asyncio
import logging
from email.message import EmailMessage
from typing import Dict, List, Optional, Sequence

import aiosmtplib

from pushbridge.core.config import settings
from pushbridge.push.base import PushDispatcher
from pushbridge.push.models import DeliveryStatus
from pushbridge.push.payloads import EmailPayload
from pushbridge.push.response import BatchResult
from pushbridge.push.transport import HTTPTransport

logger = logging.getLogger(__name__)

EMAIL_TIMEOUT_SECONDS = 30


class EmailBatchResult(BatchResult):
    """Per-recipient send outcomes: True -> SUCCESS, False -> ERROR."""

    gateway_name = "Email"

    def __init__(
        self,
        endpoints: Sequence[str],
        payload: str,
        mail_results: Dict[str, bool],
    ):
        super().__init__(endpoints, payload)
        for endpoint, sent in mail_results.items():
            self._statuses[endpoint] = DeliveryStatus.SUCCESS if sent else DeliveryStatus.ERROR


class EmailDispatcher(PushDispatcher):
    """
    Dispatcher sending push payloads as email.

    Attributes:
        source: From address
        smtp_host: SMTP server host name
        smtp_port: SMTP server port
        smtp_username: SMTP login, None for unauthenticated relays
        smtp_password: SMTP password
        use_tls: Upgrade the connection with STARTTLS
    """

    gateway_name = "Email"

    def __init__(
        self,
        transport: Optional[HTTPTransport] = None,
        max_concurrent_batches: Optional[int] = None,
    ):
        super().__init__(transport, max_concurrent_batches)
        self.source = ""
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username: Optional[str] = None
        self.smtp_password: Optional[str] = None
        self.use_tls = settings.SMTP_USE_TLS

    def set_source(self, source: str) -> None:
        """Set the From address."""
        self.source = source

    def set_smtp(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
    ) -> None:
        self.smtp_host = host
        self.smtp_port = port
        self.smtp_username = username
        self.smtp_password = password
        self.use_tls = use_tls

    def _build_message(self, payload: EmailPayload, recipient: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = payload.subject
        msg["From"] = self.source
        msg["To"] = recipient
        msg.set_content(
            payload.body,
            subtype="html" if payload.html else "plain",
            charset=payload.charset.lower(),
        )
        return msg

    async def _send(self, msg: EmailMessage, recipient: str) -> bool:
        try:
            await asyncio.wait_for(
                aiosmtplib.send(
                    msg,
                    hostname=self.smtp_host,
                    port=self.smtp_port,
                    username=self.smtp_username or None,
                    password=self.smtp_password or None,
                    start_tls=self.use_tls,
                    timeout=EMAIL_TIMEOUT_SECONDS,
                ),
                timeout=EMAIL_TIMEOUT_SECONDS + 5
            )
        except (aiosmtplib.SMTPException, asyncio.TimeoutError, OSError) as e:
            logger.warning(
                f"Dispatching email notification to {recipient} failed: {e}",
                extra={"endpoint": recipient, "error": str(e)}
            )
            return False

        return True

    async def _push_batch(self, payload: EmailPayload, endpoints: List[str]) -> EmailBatchResult:
        mail_results = {}
        for recipient in endpoints:
            mail_results[recipient] = await self._send(self._build_message(payload, recipient), recipient)

        return EmailBatchResult(endpoints, payload.to_wire(), mail_results)
