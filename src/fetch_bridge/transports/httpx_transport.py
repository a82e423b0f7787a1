"""
Transport backed by httpx.
"""
import errno
import logging
import socket
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from ..errors import PROXY_AUTH_FAILED, TransportError
from ..types import TransportRequest, TransportResponse
from .base import Transport

logger = logging.getLogger(__name__)
LOG_PREFIX = "[fetch-bridge:httpx]"

# httpx exception types -> POSIX-like codes, most specific first
ERROR_CODE_MAP = (
    (httpx.TimeoutException, "ETIMEDOUT"),
    (httpx.ProxyError, "EPROXY"),
    (httpx.ConnectError, "ECONNREFUSED"),
    (httpx.RemoteProtocolError, "ECONNRESET"),
    (httpx.ReadError, "ECONNRESET"),
    (httpx.WriteError, "EPIPE"),
    (httpx.DecodingError, "Z_DATA_ERROR"),
    (httpx.UnsupportedProtocol, "EPROTONOSUPPORT"),
)

_NAME_RESOLUTION_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated",
)


def translate_error(exc: BaseException) -> str:
    """Map an httpx exception to a POSIX-like error code."""
    cause: Optional[BaseException] = exc
    while cause is not None:
        if isinstance(cause, socket.gaierror):
            return "ENOTFOUND"
        if isinstance(cause, OSError) and isinstance(cause.errno, int) and cause.errno in errno.errorcode:
            return errno.errorcode[cause.errno]
        cause = cause.__cause__ or cause.__context__

    message = str(exc).lower()
    if isinstance(exc, httpx.ProxyError) and "407" in message:
        return PROXY_AUTH_FAILED
    if isinstance(exc, httpx.ConnectError) and any(hint in message for hint in _NAME_RESOLUTION_HINTS):
        return "ENOTFOUND"
    for exc_type, code in ERROR_CODE_MAP:
        if isinstance(exc, exc_type):
            return code
    return type(exc).__name__


class HttpxTransport(Transport):
    """
    Sends each hop with ``httpx.AsyncClient.send(stream=True)``.

    Redirects are never followed here and the body is exposed raw (still
    content-encoded). A client passed in the constructor or per request
    (``agent``) is reused and left open. With ``pooled=True`` one client is
    created lazily and kept until ``aclose()``; otherwise a client is created
    for the hop and closed with its response. Proxied hops always get their
    own client.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        pooled: bool = False,
        **client_kwargs: Any,
    ):
        self._client = client
        self._own_client = False
        self._pooled = pooled
        self._client_kwargs = client_kwargs

    @property
    def name(self) -> str:
        return "httpx"

    def _build_client(self, proxy: Optional[str] = None) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {"follow_redirects": False, **self._client_kwargs}
        if proxy:
            kwargs["proxy"] = proxy
        logger.debug(f"{LOG_PREFIX} Creating httpx.AsyncClient (proxy={proxy})")
        return httpx.AsyncClient(**kwargs)

    def _shared_client(self) -> Optional[httpx.AsyncClient]:
        if self._client is None and self._pooled:
            self._client = self._build_client()
            self._own_client = True
        return self._client

    async def aclose(self) -> None:
        if self._own_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._own_client = False

    async def send(self, request: TransportRequest) -> TransportResponse:
        client = request.agent
        if client is None and not request.proxy:
            client = self._shared_client()
        own_client = client is None
        if own_client:
            client = self._build_client(request.proxy)

        try:
            http_request = client.build_request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
            )
            response = await client.send(http_request, stream=True, follow_redirects=False)
        except httpx.HTTPError as e:
            if own_client:
                await client.aclose()
            raise TransportError(str(e) or type(e).__name__, code=translate_error(e)) from e
        except BaseException:
            if own_client:
                await client.aclose()
            raise

        async def aclose() -> None:
            await response.aclose()
            if own_client:
                await client.aclose()

        return TransportResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=list(response.headers.multi_items()),
            stream=_iter_raw(response, aclose),
            aclose=aclose,
        )


async def _iter_raw(response: httpx.Response, aclose: Any) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_raw():
            yield chunk
    except httpx.HTTPError as e:
        raise TransportError(str(e) or type(e).__name__, code=translate_error(e)) from e
    finally:
        await aclose()
