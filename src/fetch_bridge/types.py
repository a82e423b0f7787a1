"""
Core type definitions for fetch-bridge.
"""
from typing import Any, AsyncIterator, Awaitable, Callable, List, Literal, Optional, Tuple, Union
from dataclasses import dataclass, field

# Redirect policies
RedirectMode = Literal["follow", "manual", "error"]

REDIRECT_STATUSES = frozenset((301, 302, 303, 307, 308))

HeaderList = List[Tuple[str, str]]

# What a transport writes as the request body: one buffer, or a byte stream
BodyWriter = Union[None, bytes, AsyncIterator[bytes]]


def is_redirect(code: int) -> bool:
    """Check whether a status code is a followable redirect."""
    return code in REDIRECT_STATUSES


@dataclass
class TransportRequest:
    """One HTTP hop, translated into transport call options."""
    method: str
    url: str
    scheme: str
    host: str
    port: Optional[int]
    path: str
    headers: HeaderList
    body: BodyWriter = None
    chunked: bool = False
    proxy: Optional[str] = None
    agent: Any = None


@dataclass
class TransportResponse:
    """Response head plus the raw byte stream of one HTTP hop."""
    status: int
    status_text: str
    headers: HeaderList
    stream: AsyncIterator[bytes]
    aclose: Optional[Callable[[], Awaitable[None]]] = None


@dataclass
class AuthInfo:
    """Details of an authentication challenge passed to ``on_login``."""
    is_proxy: bool
    scheme: str
    host: str
    port: Optional[int]
    realm: str = ""


@dataclass
class LoginEvent:
    """Preventable event passed to ``on_login``."""
    default_prevented: bool = field(default=False)

    def prevent_default(self) -> None:
        self.default_prevented = True


LoginCallback = Callable[..., None]
OnLogin = Callable[[LoginEvent, AuthInfo, LoginCallback], Any]
