"""
Immutable binary payload with a declared MIME type.
"""
from typing import Iterable, Optional, Union

BlobPart = Union[str, bytes, bytearray, memoryview, "Blob"]


class Blob:
    """Bytes plus a lower-cased content type. ``close()`` releases the bytes."""

    def __init__(self, parts: Optional[Iterable[BlobPart]] = None, type: str = ""):
        chunks = []
        for part in parts or ():
            if isinstance(part, Blob):
                chunks.append(part._buffer)
            elif isinstance(part, str):
                chunks.append(part.encode("utf-8"))
            else:
                chunks.append(bytes(part))
        self._buffer = b"".join(chunks)
        self._type = type.lower() if type and all(0x20 <= ord(c) <= 0x7E for c in type) else ""
        self._closed = False

    @property
    def size(self) -> int:
        return len(self._buffer)

    @property
    def type(self) -> str:
        return self._type

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
        self._buffer = b""

    def slice(self, start: int = 0, end: Optional[int] = None, content_type: str = "") -> "Blob":
        """Return a new Blob covering ``[start, end)`` of this one."""
        size = self.size
        start = max(size + start, 0) if start < 0 else min(start, size)
        if end is None:
            end = size
        end = max(size + end, 0) if end < 0 else min(end, size)
        return Blob([self._buffer[start:max(end, start)]], type=content_type)

    async def bytes(self) -> bytes:
        return self._buffer

    async def text(self) -> str:
        return self._buffer.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"Blob(size={self.size}, type={self._type!r})"
