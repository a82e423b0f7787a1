"""
Response model.
"""
from http import HTTPStatus
from typing import Any, Optional

from .abort import AbortSignal
from .body import Body, BodyMixin
from .headers import Headers


def _reason_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


class Response(BodyMixin):
    """
    Final response of an exchange.

    ``url`` is the URL of the hop that produced it. Status, headers and URL
    are fixed at construction; the body stays lazy until consumed.
    """

    def __init__(
        self,
        body: Any = None,
        *,
        url: str = "",
        status: int = 200,
        status_text: Optional[str] = None,
        headers: Any = None,
        size: int = 0,
        timeout: int = 0,
        signal: Optional[AbortSignal] = None,
    ):
        self.url = url
        self.status = status
        self.status_text = status_text if status_text is not None else _reason_phrase(status)
        self.headers = Headers(headers)
        if isinstance(body, Body):
            self._body = body
        else:
            self._body = Body(body, url=url, size=size, timeout=timeout, signal=signal)

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    def clone(self) -> "Response":
        """Copy headers by value and tee the body."""
        return Response(
            self._body.clone(),
            url=self.url,
            status=self.status,
            status_text=self.status_text,
            headers=self.headers,
        )

    def __repr__(self) -> str:
        return f"<Response [{self.status} {self.url}]>"
