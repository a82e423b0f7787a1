"""
In-memory transport used by race, timeout and abort tests.
"""
import asyncio
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple

from fetch_bridge.transports.base import Transport
from fetch_bridge.types import TransportRequest, TransportResponse


async def _chunks(parts: Iterable[bytes], delay: float = 0) -> Any:
    for part in parts:
        if delay:
            await asyncio.sleep(delay)
        yield part


def make_response(
    status: int = 200,
    headers: Optional[List[Tuple[str, str]]] = None,
    chunks: Iterable[bytes] = (b"",),
    delay: float = 0,
) -> TransportResponse:
    """Build a TransportResponse whose body yields ``chunks``, sleeping ``delay`` before each."""
    closed = []

    async def aclose() -> None:
        closed.append(True)

    response = TransportResponse(
        status=status,
        status_text="",
        headers=list(headers or []),
        stream=_chunks(chunks, delay),
        aclose=aclose,
    )
    response.closed = closed
    return response


class FakeTransport(Transport):
    """Answers each hop from ``handler`` and records what was sent."""

    def __init__(self, handler: Callable[[TransportRequest], Awaitable[TransportResponse]]):
        self.handler = handler
        self.requests: List[TransportRequest] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        return await self.handler(request)

    async def aclose(self) -> None:
        self.closed = True


