"""
Async byte streams: normalization, teardown and tee.
"""
import asyncio
import collections
from typing import Any, AsyncIterator, Awaitable, Callable, Deque, List, Optional, Tuple

READ_CHUNK_SIZE = 64 * 1024


class ByteStream:
    """
    Single-pass async iterator of ``bytes`` with explicit teardown.

    ``fail(exc)`` poisons the stream: the next read raises ``exc`` and the
    upstream source is closed.
    """

    def __init__(self, source: Any, on_close: Optional[Callable[[], Awaitable[None]]] = None):
        self._iterator: AsyncIterator[bytes] = _as_async_iterator(source)
        self._on_close = on_close
        self._closed = False
        self._error: Optional[BaseException] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def fail(self, exc: BaseException) -> None:
        if not self._closed and self._error is None:
            self._error = exc

    def __aiter__(self) -> "ByteStream":
        return self

    async def __anext__(self) -> bytes:
        if self._error is not None:
            error, self._error = self._error, None
            await self.aclose()
            raise error
        if self._closed:
            raise StopAsyncIteration
        try:
            chunk = await self._iterator.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        return bytes(chunk)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._iterator, "aclose", None)
        try:
            if aclose is not None:
                await aclose()
        finally:
            if self._on_close is not None:
                await self._on_close()

    async def read(self) -> bytes:
        """Drain the remaining bytes."""
        return b"".join([chunk async for chunk in self])


def is_stream_like(obj: Any) -> bool:
    if isinstance(obj, (str, bytes, bytearray, memoryview)):
        return False
    return hasattr(obj, "__aiter__") or hasattr(obj, "read") or hasattr(obj, "__next__")


def _as_async_iterator(source: Any) -> AsyncIterator[bytes]:
    if hasattr(source, "__anext__"):
        return source
    if hasattr(source, "__aiter__"):
        return source.__aiter__()
    if hasattr(source, "read"):
        return _read_file(source)
    if hasattr(source, "__iter__"):
        return _iterate(source)
    raise TypeError(f"Unsupported stream source: {type(source).__name__}")


async def _read_file(fileobj: Any) -> AsyncIterator[bytes]:
    while True:
        chunk = fileobj.read(READ_CHUNK_SIZE)
        if asyncio.iscoroutine(chunk):
            chunk = await chunk
        if not chunk:
            break
        yield chunk


async def _iterate(iterable: Any) -> AsyncIterator[bytes]:
    for chunk in iterable:
        yield chunk


async def prepend(first: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Yield ``first`` then everything left in ``rest``."""
    try:
        yield first
        async for chunk in rest:
            yield chunk
    finally:
        aclose = getattr(rest, "aclose", None)
        if aclose is not None:
            await aclose()


class _TeeSource:
    """Upstream shared by two tee branches; each chunk is read once."""

    def __init__(self, source: ByteStream):
        self._source = source
        self._buffers: List[Deque[bytes]] = [collections.deque(), collections.deque()]
        self._open = [True, True]
        self._done = False
        self._error: Optional[BaseException] = None
        self._lock = asyncio.Lock()

    async def next_chunk(self, index: int) -> bytes:
        while True:
            if self._buffers[index]:
                return self._buffers[index].popleft()
            if self._error is not None:
                raise self._error
            if self._done:
                raise StopAsyncIteration
            async with self._lock:
                if self._buffers[index] or self._done or self._error is not None:
                    continue
                try:
                    chunk = await self._source.__anext__()
                except StopAsyncIteration:
                    self._done = True
                    continue
                except Exception as exc:
                    self._error = exc
                    continue
                for i, buffer in enumerate(self._buffers):
                    if self._open[i]:
                        buffer.append(chunk)

    async def close_branch(self, index: int) -> None:
        self._open[index] = False
        self._buffers[index].clear()
        if not any(self._open):
            await self._source.aclose()


class _TeeBranch:
    def __init__(self, source: _TeeSource, index: int):
        self._source = source
        self._index = index
        self._closed = False

    def __aiter__(self) -> "_TeeBranch":
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        return await self._source.next_chunk(self._index)

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            await self._source.close_branch(self._index)


def tee(stream: ByteStream) -> Tuple[ByteStream, ByteStream]:
    """Split ``stream`` into two independently drainable streams."""
    source = _TeeSource(stream)
    return ByteStream(_TeeBranch(source, 0)), ByteStream(_TeeBranch(source, 1))
