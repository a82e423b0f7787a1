"""
fetch() entry point and the FetchClient convenience wrapper.
"""
import logging
from typing import Any, Dict, Mapping, Optional, Union

from .config import ClientConfig, FetchOptions, parse_options
from .core.orchestrator import FetchOrchestrator
from .headers import Headers
from .request import Request
from .response import Response
from .transports import HttpxTransport, Transport, get_transport

logger = logging.getLogger(__name__)

_default_orchestrator = FetchOrchestrator()


async def fetch(
    resource: Any,
    init: Union[None, Mapping[str, Any], FetchOptions] = None,
    **options: Any,
) -> Response:
    """
    Perform one HTTP exchange, following redirects as configured.

    Args:
        resource: Absolute http(s) URL or a Request.
        init: Options mapping or FetchOptions; keyword options override it.

    Returns:
        Response whose body has not been read yet.

    Raises:
        TypeError: Invalid URL, body on GET/HEAD, or malformed options/headers.
        FetchError: Network, timeout, abort, redirect-policy or proxy failure.
    """
    return await _default_orchestrator.fetch(resource, init, **options)


class FetchClient:
    """
    HTTP client with shared defaults and convenience methods.

    Relative URLs are joined to ``base_url``. Request options override the
    client defaults; default headers are merged under request headers.
    """

    def __init__(self, config: Optional[ClientConfig] = None, transport: Optional[Transport] = None):
        self._config = config or ClientConfig()
        if transport is not None:
            self._transport, self._own_transport = transport, False
        elif self._config.transport:
            self._transport, self._own_transport = get_transport(self._config.transport), False
        else:
            self._transport, self._own_transport = HttpxTransport(pooled=True), True
        self._orchestrator = FetchOrchestrator(self._transport)

    @classmethod
    def create(cls, config: ClientConfig) -> "FetchClient":
        """Factory method to create a client."""
        return cls(config)

    async def close(self) -> None:
        """Close the transport if this client created it."""
        if self._own_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> "FetchClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _resolve_url(self, url: str) -> str:
        if self._config.base_url is None or url.startswith(("http://", "https://")):
            return url
        return f"{self._config.base_url}/{url.lstrip('/')}"

    def _merge_options(self, init: Union[None, Mapping[str, Any], FetchOptions], options: Dict[str, Any]) -> FetchOptions:
        opts = parse_options(init, **options)
        merged: Dict[str, Any] = {
            "timeout": self._config.timeout,
            "follow": self._config.follow,
            "compress": self._config.compress,
        }
        merged.update({k: getattr(opts, k) for k in opts.model_fields_set if getattr(opts, k) is not None})

        headers = Headers(self._config.headers)
        request_headers = Headers(opts.headers)
        for name in request_headers.keys():
            headers.delete(name)
        for name, value in request_headers:
            headers.append(name, value)
        merged["headers"] = headers
        return parse_options(merged)

    async def fetch(
        self,
        resource: Any,
        init: Union[None, Mapping[str, Any], FetchOptions] = None,
        **options: Any,
    ) -> Response:
        """Execute a request with client defaults applied."""
        if isinstance(resource, Request):
            return await self._orchestrator.fetch(resource, init, **options)
        resource = self._resolve_url(f"{resource}")
        return await self._orchestrator.fetch(resource, self._merge_options(init, options))

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None, **options: Any) -> Response:
        """Execute GET request."""
        return await self.fetch(url, method="GET", headers=headers, **options)

    async def head(self, url: str, headers: Optional[Dict[str, str]] = None, **options: Any) -> Response:
        """Execute HEAD request."""
        return await self.fetch(url, method="HEAD", headers=headers, **options)

    async def options(self, url: str, headers: Optional[Dict[str, str]] = None, **options: Any) -> Response:
        """Execute OPTIONS request."""
        return await self.fetch(url, method="OPTIONS", headers=headers, **options)

    async def post(self, url: str, body: Any = None, headers: Optional[Dict[str, str]] = None, **options: Any) -> Response:
        """Execute POST request."""
        return await self.fetch(url, method="POST", body=body, headers=headers, **options)

    async def put(self, url: str, body: Any = None, headers: Optional[Dict[str, str]] = None, **options: Any) -> Response:
        """Execute PUT request."""
        return await self.fetch(url, method="PUT", body=body, headers=headers, **options)

    async def patch(self, url: str, body: Any = None, headers: Optional[Dict[str, str]] = None, **options: Any) -> Response:
        """Execute PATCH request."""
        return await self.fetch(url, method="PATCH", body=body, headers=headers, **options)

    async def delete(self, url: str, headers: Optional[Dict[str, str]] = None, **options: Any) -> Response:
        """Execute DELETE request."""
        return await self.fetch(url, method="DELETE", headers=headers, **options)
