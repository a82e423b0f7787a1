"""
Request model and its translation into transport call options.
"""
import logging
from typing import Any, Mapping, Optional, Union

import httpx

from . import __version__
from .abort import AbortSignal
from .body import Body, BodyKind, BodyMixin
from .config import (
    DEFAULT_ACCEPT,
    DEFAULT_ACCEPT_ENCODING,
    DEFAULT_CONNECTION,
    DEFAULT_FOLLOW,
    DEFAULT_TRANSPORT,
    HOMEPAGE,
    PRODUCT_NAME,
    FetchOptions,
    parse_options,
)
from .headers import Headers
from .types import OnLogin, TransportRequest

logger = logging.getLogger(__name__)

BODYLESS_METHODS = ("GET", "HEAD")


def parse_url(value: Any) -> httpx.URL:
    """Parse and validate an absolute http(s) URL."""
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError) as e:
        raise TypeError(f"Invalid URL: {value}") from e
    if not url.scheme or not url.host:
        raise TypeError("Only absolute URLs are supported")
    if url.scheme not in ("http", "https"):
        raise TypeError("Only HTTP(S) protocols are supported")
    return url


def user_agent(transport_name: str) -> str:
    return f"{PRODUCT_NAME}/{__version__} {transport_name} (+{HOMEPAGE})"


class Request(BodyMixin):
    """
    One HTTP exchange description.

    ``input`` is a URL (string, ``httpx.URL`` or anything with ``href``) or
    another Request whose settings serve as defaults for ``init``. Headers
    are copied by value and a source stream body is teed, so the source
    Request stays usable.

    Only the URL, ``method``, ``body`` and ``counter`` change after
    construction, and only while following a redirect.
    """

    def __init__(
        self,
        input: Any,
        init: Union[None, Mapping[str, Any], FetchOptions] = None,
        **options: Any,
    ):
        opts = parse_options(init, **options)
        source = input if isinstance(input, Request) else None

        if source is not None:
            raw_url = source.url
        elif hasattr(input, "href"):
            raw_url = str(input.href)
        else:
            raw_url = f"{input}"

        method = (opts.method or (source.method if source else None) or "GET").upper()
        source_has_body = source is not None and source._body.kind != BodyKind.NONE

        if (opts.body is not None or source_has_body) and method in BODYLESS_METHODS:
            raise TypeError("Request with GET/HEAD method cannot have body")

        self.__url = parse_url(raw_url)
        self.method = method

        if opts.body is not None:
            body = opts.body
        elif source_has_body:
            body = source._body.clone()
        else:
            body = None

        timeout = _pick(opts.timeout, source and source.timeout, 0)
        size = _pick(opts.size, source and source.size, 0)
        self.signal: Optional[AbortSignal] = _pick(opts.signal, source and source.signal, None)

        if isinstance(body, Body):
            body.url, body.size, body.timeout, body.signal = str(self.__url), size, timeout, self.signal
            self._body = body
        else:
            self._body = Body(body, url=str(self.__url), size=size, timeout=timeout, signal=self.signal)

        self.redirect: str = _pick(opts.redirect, source and source.redirect, "follow")
        self.headers = Headers(_pick(opts.headers, source and source.headers, None))

        if opts.body is not None:
            content_type = self._body.content_type
            if content_type is not None and not self.headers.has("Content-Type"):
                self.headers.append("Content-Type", content_type)

        self.follow: int = _pick(opts.follow, source.follow if source else None, DEFAULT_FOLLOW)
        self.counter: int = source.counter if source else 0
        self.compress: bool = _pick(opts.compress, source.compress if source else None, True)
        self.transport: str = _pick(opts.transport, source and source.transport, DEFAULT_TRANSPORT)

        self.agent = _pick(opts.agent, source and source.agent, None)
        self.session: Optional[str] = _pick(opts.session, source and source.session, None)
        self.user: Optional[str] = _pick(opts.user, source and source.user, None)
        self.password: Optional[str] = _pick(opts.password, source and source.password, None)
        self.on_login: Optional[OnLogin] = _pick(opts.on_login, source and source.on_login, None)

    @property
    def url(self) -> str:
        return str(self.__url)

    @property
    def parsed_url(self) -> httpx.URL:
        return self.__url

    def _redirect_to(self, location: str) -> None:
        """Point this request at the next hop of a redirect chain."""
        self.__url = parse_url(self.__url.join(location))
        self._body.url = str(self.__url)

    def _drop_body(self) -> None:
        self._body = Body(None, url=self.url, size=self.size, timeout=self.timeout, signal=self.signal)

    def clone(self) -> "Request":
        return Request(self)

    def __repr__(self) -> str:
        return f"<Request [{self.method} {self.url}]>"


def _pick(*candidates: Any) -> Any:
    """First candidate that is not None; the last one is the default."""
    for candidate in candidates[:-1]:
        if candidate is not None:
            return candidate
    return candidates[-1]


def get_transport_request(request: Request, transport_name: str) -> TransportRequest:
    """Translate a Request into transport call options with default headers applied."""
    url = parse_url(request.url)
    headers = Headers(request.headers)

    if not headers.has("Accept"):
        headers.set("Accept", DEFAULT_ACCEPT)

    content_length: Optional[str] = None
    chunked = False
    body_kind = request._body.kind
    if body_kind == BodyKind.NONE and request.method in ("POST", "PUT"):
        content_length = "0"
    if body_kind != BodyKind.NONE:
        total_bytes = request._body.total_bytes
        if total_bytes is not None:
            content_length = str(total_bytes)

    if content_length is not None:
        headers.set("Content-Length", content_length)
    else:
        chunked = True
        if body_kind != BodyKind.NONE:
            headers.delete("Content-Length")
            headers.set("Transfer-Encoding", "chunked")

    if not headers.has("User-Agent"):
        headers.set("User-Agent", user_agent(transport_name))
    if not headers.has("Accept-Encoding"):
        headers.set("Accept-Encoding", DEFAULT_ACCEPT_ENCODING)
    if not headers.has("Connection"):
        headers.set("Connection", DEFAULT_CONNECTION)

    header_list = headers.to_list()
    host = headers.get_all("Host")
    if len(host) > 1:
        header_list = [(k, v) for k, v in header_list if k.lower() != "host"] + [("Host", host[0])]

    return TransportRequest(
        method=request.method,
        url=str(url),
        scheme=url.scheme,
        host=url.host,
        port=url.port,
        path=url.raw_path.decode("ascii"),
        headers=header_list,
        body=request._body.writer(),
        chunked=chunked,
        proxy=request.session,
        agent=request.agent,
    )
