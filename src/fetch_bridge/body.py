"""
Lazy, use-once request/response body.
"""
import asyncio
import codecs
import json
import logging
import re
from enum import Enum
from typing import Any, Optional

from .abort import AbortSignal
from .blob import Blob
from .errors import ABORT, BODY_TIMEOUT, MAX_SIZE, SYSTEM, FetchError
from .form_data import FormData
from .streams import ByteStream, is_stream_like, tee

logger = logging.getLogger(__name__)
LOG_PREFIX = "[fetch-bridge:body]"

TEXT_CONTENT_TYPE = "text/plain;charset=UTF-8"

# Charset sniffing looks at this many leading bytes
SNIFF_LENGTH = 1024

_CHARSET_RE = re.compile(r"charset=([^;]*)", re.I)
_META_CHARSET_RE = re.compile(r"<meta.+?charset=(['\"])(.+?)\1", re.I)
_META_HTTP_EQUIV_RE = re.compile(
    r"<meta[\s]+?http-equiv=(['\"])content-type\1[\s]+?content=(['\"])(.+?)\2", re.I
)
_XML_ENCODING_RE = re.compile(r"<\?xml.+?encoding=(['\"])(.+?)\1", re.I)


class BodyKind(str, Enum):
    NONE = "none"
    TEXT = "text"
    BYTES = "bytes"
    BLOB = "blob"
    STREAM = "stream"
    FORM = "form"


def abort_error() -> FetchError:
    return FetchError("The user aborted a request.", ABORT)


def sniff_charset(buffer: bytes, content_type: Optional[str]) -> str:
    """Charset from Content-Type, then HTML meta tags, then XML declaration; utf-8 otherwise."""
    match = _CHARSET_RE.search(content_type) if content_type else None
    charset: Optional[str] = match.group(1) if match else None

    head = buffer[:SNIFF_LENGTH].decode("latin-1")
    if charset is None and head:
        match = _META_CHARSET_RE.search(head)
        if match:
            charset = match.group(2)
    if charset is None and head:
        match = _META_HTTP_EQUIV_RE.search(head)
        if match:
            inner = re.search(r"charset=(.*)", match.group(3), re.I)
            if inner:
                charset = inner.group(1)
    if charset is None and head:
        match = _XML_ENCODING_RE.search(head)
        if match:
            charset = match.group(2)

    if charset is None:
        return "utf-8"
    charset = charset.strip().strip("'\"").lower()
    if charset in ("gb2312", "gbk"):
        # superset that also decodes gbk-only code points
        charset = "gb18030"
    try:
        return codecs.lookup(charset).name
    except LookupError:
        logger.debug(f"{LOG_PREFIX} unknown charset {charset!r}, using utf-8")
        return "utf-8"


class Body:
    """
    Body of a Request or Response.

    The source is one of: nothing, text, bytes, a Blob, a FormData, or a
    byte stream (async iterable, iterator or file-like object). Exactly one
    consumption call (``text``, ``json``, ``array_buffer``, ``buffer``,
    ``blob``, ``text_converted``) may succeed; later calls raise
    ``TypeError``. Stream draining honours the ``size`` limit, the
    ``timeout`` (ms, counted from the start of consumption) and the abort
    ``signal``.
    """

    def __init__(
        self,
        body: Any = None,
        *,
        url: str = "",
        size: int = 0,
        timeout: int = 0,
        signal: Optional[AbortSignal] = None,
    ):
        self.url = url
        self.size = size or 0
        self.timeout = timeout or 0
        self.signal = signal
        self._used = False
        self._stream: Optional[ByteStream] = None
        self._source: Any = None

        if body is None:
            self.kind = BodyKind.NONE
        elif isinstance(body, str):
            self.kind = BodyKind.TEXT
            self._source = body.encode("utf-8")
        elif isinstance(body, (bytes, bytearray, memoryview)):
            self.kind = BodyKind.BYTES
            self._source = bytes(body)
        elif isinstance(body, Blob):
            self.kind = BodyKind.BLOB
            self._source = body
        elif isinstance(body, FormData):
            self.kind = BodyKind.FORM
            self._source = body
        elif isinstance(body, ByteStream) or is_stream_like(body):
            self.kind = BodyKind.STREAM
            self._stream = body if isinstance(body, ByteStream) else ByteStream(body)
        else:
            # Anything else is sent as its string form
            self.kind = BodyKind.TEXT
            self._source = str(body).encode("utf-8")

    @property
    def used(self) -> bool:
        return self._used

    @property
    def source(self) -> Any:
        """The original Blob/FormData, the encoded bytes, or the stream."""
        if self.kind == BodyKind.STREAM:
            return self._stream
        return self._source

    @property
    def stream(self) -> Optional[ByteStream]:
        """Readable stream of the body, or None for an absent body."""
        if self.kind == BodyKind.NONE:
            return None
        if self._stream is None:
            if self.kind == BodyKind.FORM:
                self._stream = ByteStream(self._source.stream())
            else:
                self._stream = ByteStream(iter([self._static_bytes()]))
        return self._stream

    def _static_bytes(self) -> bytes:
        if self.kind == BodyKind.BLOB:
            return self._source._buffer
        return self._source

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type implied by the body source, or None."""
        if self.kind == BodyKind.TEXT:
            return TEXT_CONTENT_TYPE
        if self.kind == BodyKind.BLOB:
            return self._source.type or None
        if self.kind == BodyKind.FORM:
            return self._source.get_headers()["Content-Type"]
        return None

    @property
    def total_bytes(self) -> Optional[int]:
        """Exact byte length when known up front, else None."""
        if self.kind == BodyKind.NONE:
            return 0
        if self.kind in (BodyKind.TEXT, BodyKind.BYTES):
            return len(self._source)
        if self.kind == BodyKind.BLOB:
            return self._source.size
        if self.kind == BodyKind.FORM:
            return self._source.length
        return None

    def writer(self) -> Any:
        """What a transport should write: one bytes buffer, a byte stream, or None."""
        if self.kind == BodyKind.NONE:
            return None
        if self.kind in (BodyKind.TEXT, BodyKind.BYTES, BodyKind.BLOB):
            return self._static_bytes()
        if self.kind == BodyKind.FORM:
            # Fresh encoding per hop
            return ByteStream(self._source.stream())
        return self.stream

    def clone(self) -> "Body":
        """Fork the body; streams are teed so both copies see the same bytes."""
        if self._used:
            raise TypeError("cannot clone body after it is used")

        cloned = Body(url=self.url, size=self.size, timeout=self.timeout, signal=self.signal)
        cloned.kind = self.kind
        if self.kind == BodyKind.STREAM:
            self._stream, cloned._stream = tee(self._stream)
        else:
            cloned._source = self._source
        return cloned

    async def _consume(self) -> bytes:
        if self._used:
            raise TypeError(f"body used already for: {self.url}")
        self._used = True

        if self.kind == BodyKind.NONE:
            return b""
        if self.kind in (BodyKind.TEXT, BodyKind.BYTES, BodyKind.BLOB):
            return self._static_bytes()
        return await self._drain(self.stream)

    async def _drain(self, stream: ByteStream) -> bytes:
        if self.signal is not None and self.signal.aborted:
            await stream.aclose()
            raise abort_error()

        read_task = asyncio.ensure_future(self._accumulate(stream))
        abort_task = asyncio.ensure_future(self.signal.wait()) if self.signal is not None else None
        waiters = {read_task} if abort_task is None else {read_task, abort_task}
        timeout = self.timeout / 1000 if self.timeout else None

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            read_task.cancel()
            raise
        finally:
            if abort_task is not None:
                abort_task.cancel()

        if read_task in done:
            return read_task.result()

        read_task.cancel()
        try:
            await read_task
        except (asyncio.CancelledError, FetchError):
            pass
        await stream.aclose()

        if abort_task is not None and abort_task in done:
            logger.debug(f"{LOG_PREFIX} body aborted while reading {self.url}")
            raise abort_error()
        logger.debug(f"{LOG_PREFIX} body timeout after {self.timeout}ms for {self.url}")
        raise FetchError(
            f"Response timeout while trying to fetch {self.url} (over {self.timeout}ms)",
            BODY_TIMEOUT,
        )

    async def _accumulate(self, stream: ByteStream) -> bytes:
        chunks = []
        total = 0
        try:
            async for chunk in stream:
                if self.size and total + len(chunk) > self.size:
                    await stream.aclose()
                    raise FetchError(f"content size at {self.url} over limit: {self.size}", MAX_SIZE)
                total += len(chunk)
                chunks.append(chunk)
        except FetchError:
            raise
        except Exception as exc:
            await stream.aclose()
            raise FetchError(
                f"Invalid response body while trying to fetch {self.url}: {exc}", SYSTEM, exc
            ) from exc
        return b"".join(chunks)

    async def array_buffer(self) -> bytes:
        return await self._consume()

    async def buffer(self) -> bytes:
        return await self._consume()

    async def blob(self, content_type: str = "") -> Blob:
        return Blob([await self._consume()], type=content_type)

    async def text(self) -> str:
        """Decode as UTF-8, replacing undecodable bytes."""
        return (await self._consume()).decode("utf-8", errors="replace")

    async def json(self) -> Any:
        return json.loads(await self.text())

    async def text_converted(self, content_type: Optional[str] = None) -> str:
        """Decode using the sniffed charset."""
        buffer = await self._consume()
        return buffer.decode(sniff_charset(buffer, content_type), errors="replace")


class BodyMixin:
    """Delegates body accessors to an owned ``_body``; owners define ``headers``."""

    _body: Body

    @property
    def body(self) -> Optional[ByteStream]:
        return self._body.stream

    @property
    def body_used(self) -> bool:
        return self._body.used

    @property
    def size(self) -> int:
        return self._body.size

    @property
    def timeout(self) -> int:
        return self._body.timeout

    async def array_buffer(self) -> bytes:
        return await self._body.array_buffer()

    async def buffer(self) -> bytes:
        return await self._body.buffer()

    async def blob(self) -> Blob:
        return await self._body.blob(self.headers.get("content-type") or "")

    async def text(self) -> str:
        return await self._body.text()

    async def json(self) -> Any:
        return await self._body.json()

    async def text_converted(self) -> str:
        return await self._body.text_converted(self.headers.get("content-type"))
