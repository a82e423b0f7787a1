"""
Fetch orchestration: dispatch, timeout/abort races, redirects and decoding.
"""
import asyncio
import inspect
import logging
from typing import Any, Mapping, Optional, Tuple, Union

import httpx

from ..body import BodyKind, abort_error
from ..config import FetchOptions
from ..errors import (
    INVALID_REDIRECT,
    MAX_REDIRECT,
    NO_REDIRECT,
    PROXY,
    PROXY_AUTH_FAILED,
    REQUEST_TIMEOUT,
    SYSTEM,
    UNSUPPORTED_REDIRECT,
    FetchError,
)
from ..headers import Headers
from ..request import Request, get_transport_request
from ..response import Response
from ..streams import ByteStream
from ..transports import Transport, get_transport
from ..types import AuthInfo, LoginEvent, TransportRequest, TransportResponse, is_redirect
from .decoding import decode_body, should_decode

logger = logging.getLogger(__name__)

# Constants
LOG_PREFIX = "[fetch-bridge]"


def _format_body(request: Request) -> str:
    """
    Describe a request body for logging without dumping binary data.
    """
    body = request._body
    if body.kind == BodyKind.NONE:
        return "<empty>"
    if body.kind == BodyKind.STREAM:
        return "<stream>"
    if body.kind == BodyKind.FORM:
        return f"<form data: {body.total_bytes} bytes>"
    if body.kind in (BodyKind.BYTES, BodyKind.BLOB):
        return f"<binary data: {body.total_bytes} bytes>"
    text = body.source.decode("utf-8", errors="replace")
    if len(text) > 500:
        return text[:500] + "... (truncated)"
    return text


def _first_header(headers: Any, name: str) -> Optional[str]:
    name = name.lower()
    for key, value in headers:
        if key.lower() == name:
            return value
    return None


async def _close(response: TransportResponse) -> None:
    if response.aclose is not None:
        await response.aclose()
        return
    aclose = getattr(response.stream, "aclose", None)
    if aclose is not None:
        await aclose()


def _proxy_error(message: str) -> FetchError:
    return FetchError(message, PROXY, {"code": PROXY_AUTH_FAILED})


class FetchOrchestrator:
    """
    Turns a Request into a Response.

    Each hop races the transport against the request timeout and the abort
    signal; the first to settle wins and the others are cancelled.
    Redirects are followed in a loop, never by recursion.
    """

    def __init__(self, transport: Optional[Transport] = None):
        self._transport = transport

    def _select_transport(self, request: Request) -> Transport:
        if self._transport is not None:
            return self._transport
        return get_transport(request.transport)

    async def fetch(
        self,
        resource: Any,
        init: Union[None, Mapping[str, Any], FetchOptions] = None,
        **options: Any,
    ) -> Response:
        request = Request(resource, init, **options)
        signal = request.signal
        proxy_credentials: Optional[Tuple[str, str]] = None

        while True:
            if signal is not None and signal.aborted:
                logger.debug(f"{LOG_PREFIX} aborted before send: {request.url}")
                raise abort_error()

            transport = self._select_transport(request)
            transport_request = get_transport_request(request, transport.name)
            if proxy_credentials is not None:
                transport_request.proxy = self._proxy_with_credentials(request.session, proxy_credentials)

            logger.debug(f"{LOG_PREFIX} Request: {request.method} {request.url} via {transport.name}")
            logger.debug(f"{LOG_PREFIX} Request body: {_format_body(request)}")

            try:
                response = await self._send(transport, transport_request, request)
            except FetchError as e:
                if e.code != PROXY_AUTH_FAILED or not request.session:
                    raise
                if proxy_credentials is not None:
                    raise _proxy_error(f"proxy authentication failed for {request.session}") from e
                proxy_credentials = await self._proxy_login(request, self._auth_info(request, None))
                continue

            if response.status == 407 and request.session:
                await _close(response)
                if proxy_credentials is not None:
                    raise _proxy_error(f"proxy authentication failed for {request.session}")
                proxy_credentials = await self._proxy_login(request, self._auth_info(request, response))
                continue

            if is_redirect(response.status) and request.redirect != "manual":
                location = _first_header(response.headers, "location")
                await _close(response)
                self._follow_redirect(request, response.status, location)
                continue

            return await self._finalize(request, response, transport)

    async def _send(
        self, transport: Transport, transport_request: TransportRequest, request: Request
    ) -> TransportResponse:
        """Race the transport against the timeout and the abort signal."""
        signal = request.signal
        send_task = asyncio.ensure_future(transport.send(transport_request))
        abort_task = asyncio.ensure_future(signal.wait()) if signal is not None else None
        waiters = {send_task} if abort_task is None else {send_task, abort_task}
        timeout = request.timeout / 1000 if request.timeout else None

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            send_task.cancel()
            raise
        finally:
            if abort_task is not None:
                abort_task.cancel()

        aborted = signal is not None and signal.aborted
        if send_task in done and not aborted:
            try:
                return send_task.result()
            except FetchError:
                raise
            except Exception as e:
                logger.error(f"{LOG_PREFIX} Request failed: {e}")
                raise FetchError(f"request to {request.url} failed, reason: {e}", SYSTEM, e) from e

        late: Optional[TransportResponse] = None
        if send_task.done():
            if not send_task.cancelled() and send_task.exception() is None:
                late = send_task.result()
        else:
            send_task.cancel()
            try:
                late = await send_task
            except (asyncio.CancelledError, Exception):
                late = None
        if late is not None:
            await _close(late)

        if aborted:
            logger.debug(f"{LOG_PREFIX} aborted while sending: {request.url}")
            raise abort_error()
        logger.debug(f"{LOG_PREFIX} timeout after {request.timeout}ms: {request.url}")
        raise FetchError(f"network timeout at: {request.url}", REQUEST_TIMEOUT)

    def _follow_redirect(self, request: Request, status: int, location: Optional[str]) -> None:
        """Validate a redirect against policy and rewrite the request for the next hop."""
        if request.redirect == "error":
            raise FetchError(f"redirect mode is set to error: {request.url}", NO_REDIRECT)
        if request.counter >= request.follow:
            raise FetchError(f"maximum redirect reached at: {request.url}", MAX_REDIRECT)
        if not location:
            raise FetchError(f"redirect location header missing at: {request.url}", INVALID_REDIRECT)

        if status == 303 or (status in (301, 302) and request.method == "POST"):
            request.method = "GET"
            request._drop_body()
            request.headers.delete("content-length")
        elif request._body.kind == BodyKind.STREAM:
            raise FetchError(
                f"Cannot follow redirect with body being a readable stream: {request.url}",
                UNSUPPORTED_REDIRECT,
            )

        request.counter += 1
        previous = request.url
        request._redirect_to(location)
        logger.debug(
            f"{LOG_PREFIX} Redirect {status} #{request.counter}: {previous} -> {request.url}"
        )

    async def _finalize(
        self, request: Request, response: TransportResponse, transport: Transport
    ) -> Response:
        headers = Headers()
        for name, value in response.headers:
            try:
                headers.append(name, value)
            except TypeError:
                headers.append(name, value.encode("utf-8").decode("latin-1"))

        if request.redirect == "manual" and headers.has("location"):
            headers.set("location", str(request.parsed_url.join(headers.get("location"))))

        stream = ByteStream(response.stream, on_close=response.aclose)
        codings = headers.get("Content-Encoding")
        if request.compress and should_decode(
            request.method, response.status, codings, transport.decodes_content
        ):
            stream = decode_body(stream, codings)

        signal = request.signal
        if signal is not None:
            def on_abort() -> None:
                stream.fail(abort_error())

            async def release() -> None:
                signal.remove_listener(on_abort)

            # Listener lives until the body is drained or closed
            stream = ByteStream(stream, on_close=release)
            signal.add_listener(on_abort)

        logger.debug(f"{LOG_PREFIX} Response: {response.status} {request.url}")
        return Response(
            stream,
            url=request.url,
            status=response.status,
            status_text=response.status_text,
            headers=headers,
            size=request.size,
            timeout=request.timeout,
            signal=request.signal,
        )

    @staticmethod
    def _auth_info(request: Request, response: Optional[TransportResponse]) -> AuthInfo:
        proxy = httpx.URL(request.session)
        challenge = _first_header(response.headers, "proxy-authenticate") if response else None
        scheme, realm = "basic", ""
        if challenge:
            scheme = challenge.split(" ", 1)[0].lower()
            if "realm=" in challenge:
                realm = challenge.split("realm=", 1)[1].split(",", 1)[0].strip().strip('"')
        return AuthInfo(is_proxy=True, scheme=scheme, host=proxy.host, port=proxy.port, realm=realm)

    async def _proxy_login(self, request: Request, auth_info: AuthInfo) -> Tuple[str, str]:
        """Resolve proxy credentials through ``on_login`` or the ``user``/``password`` options."""
        logger.debug(f"{LOG_PREFIX} login event from proxy {auth_info.host}:{auth_info.port}")

        if request.on_login is not None:
            event = LoginEvent()
            future: asyncio.Future = asyncio.get_running_loop().create_future()

            def callback(username: Optional[str] = None, password: Optional[str] = None) -> None:
                if not future.done():
                    future.set_result((username, password))

            result = request.on_login(event, auth_info, callback)
            if inspect.isawaitable(result):
                await result

            if event.default_prevented:
                username, password = await future
                if username is None or password is None:
                    raise _proxy_error(f"login cancelled for proxy {auth_info.host}")
                return username, password

        if request.user and request.password:
            return request.user, request.password

        raise _proxy_error(f"login event received from {auth_info.host} but no credentials provided")

    @staticmethod
    def _proxy_with_credentials(proxy: str, credentials: Tuple[str, str]) -> str:
        username, password = credentials
        return str(httpx.URL(proxy).copy_with(username=username, password=password))
