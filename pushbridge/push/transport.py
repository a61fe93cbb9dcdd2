"""
HTTP transport shared by the gateway dispatchers.

Wraps an httpx.AsyncClient and reduces every outcome to either a
TransportResponse or a TransportError. The transport is passed to each
dispatcher explicitly; there is no process-wide session.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import httpx

from pushbridge.core.config import settings
from pushbridge.push.exceptions import TransportError
from pushbridge.push.models import TransportResponse

logger = logging.getLogger(__name__)


class HTTPTransport:
    """
    Blocking-per-request POST over a pooled httpx.AsyncClient.

    Usage:
        async with HTTPTransport() as transport:
            dispatcher = FCMDispatcher(transport)
            response = await dispatcher.push(payload, tokens)

    Attributes:
        timeout: Default total timeout in seconds
        connect_timeout: Default connect timeout in seconds
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        http2: Optional[bool] = None,
    ):
        """
        Initialize the transport.

        Args:
            client: Optional pre-built client (tests pass one with httpx.MockTransport)
            timeout: Default total timeout, settings.HTTP_TIMEOUT_SECONDS if None
            connect_timeout: Default connect timeout, settings.HTTP_CONNECT_TIMEOUT_SECONDS if None
            http2: Enable HTTP/2, settings.HTTP2_ENABLED if None
        """
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.connect_timeout = (
            connect_timeout if connect_timeout is not None else settings.HTTP_CONNECT_TIMEOUT_SECONDS
        )
        self._http2 = settings.HTTP2_ENABLED if http2 is None else http2

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                http2=self._http2,
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
            self._owns_client = True
        return self._client

    async def post(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        content: Union[str, bytes, None] = None,
        *,
        data: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        auth: Optional[Tuple[str, str]] = None,
    ) -> TransportResponse:
        """
        POST to a gateway.

        Args:
            url: Target URL
            headers: Request headers
            content: Raw request body
            data: Form fields, sent url-encoded (OAuth token requests)
            timeout: Total timeout override in seconds
            connect_timeout: Connect timeout override in seconds
            auth: Optional (username, password) for HTTP basic auth

        Returns:
            TransportResponse for any HTTP status, including 4xx/5xx

        Raises:
            TransportError: When no response was obtained
        """
        client = self._get_client()
        request_timeout = httpx.Timeout(
            timeout if timeout is not None else self.timeout,
            connect=connect_timeout if connect_timeout is not None else self.connect_timeout,
        )

        try:
            response = await client.post(
                url,
                headers=dict(headers or {}),
                content=content,
                data=data,
                auth=httpx.BasicAuth(*auth) if auth else None,
                timeout=request_timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportError(str(e) or "Request timed out", TransportError.TIMEOUT) from e
        except httpx.ConnectError as e:
            raise TransportError(str(e) or "Connection failed", TransportError.CONNECT) from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__, TransportError.HTTP) from e

        return TransportResponse(
            status_code=response.status_code,
            body=response.content,
            headers=response.headers,
            url=str(response.url),
        )

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client and self._owns_client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
            logger.debug("HTTP transport closed")

    async def __aenter__(self) -> "HTTPTransport":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
