"""
Content-Encoding negotiation and zlib stream transforms.
"""
import logging
import zlib
from typing import AsyncIterator, Optional

from ..errors import ContentDecodingError
from ..streams import ByteStream, prepend

logger = logging.getLogger(__name__)
LOG_PREFIX = "[fetch-bridge:decoding]"

GZIP_WBITS = 16 + zlib.MAX_WBITS
ZLIB_WBITS = zlib.MAX_WBITS
RAW_DEFLATE_WBITS = -zlib.MAX_WBITS

GZIP_TOKENS = ("gzip", "x-gzip")
DEFLATE_TOKENS = ("deflate", "x-deflate")

NO_CONTENT_STATUSES = (204, 304)


async def inflate(stream: AsyncIterator[bytes], wbits: int) -> AsyncIterator[bytes]:
    """
    Decompress ``stream`` with zlib.

    Truncated input is flushed instead of rejected and bytes after the end
    of the compressed stream are ignored; corrupt data raises
    ContentDecodingError.
    """
    decompressor = zlib.decompressobj(wbits)
    try:
        async for chunk in stream:
            if decompressor.eof:
                continue
            try:
                data = decompressor.decompress(chunk)
            except zlib.error as e:
                raise ContentDecodingError(f"incorrect content encoding: {e}") from e
            if data:
                yield data
        try:
            data = decompressor.flush()
        except zlib.error as e:
            raise ContentDecodingError(f"incorrect content encoding: {e}") from e
        if data:
            yield data
    finally:
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()


def should_decode(method: str, status: int, codings: Optional[str], transport_decodes: bool) -> bool:
    """False for HEAD, 204/304, missing Content-Encoding, or a transport that already decodes."""
    if transport_decodes:
        return False
    if method == "HEAD":
        return False
    if codings is None:
        return False
    return status not in NO_CONTENT_STATUSES


def decode_body(stream: ByteStream, codings: str) -> ByteStream:
    """
    Wrap ``stream`` in the transform matching ``codings``.

    Deflate bodies are peeked lazily on first read: a first byte whose low
    nibble is 8 marks a zlib wrapper, anything else is raw deflate. Unknown
    tokens pass through.
    """
    token = codings.strip().lower()

    if token in GZIP_TOKENS:
        logger.debug(f"{LOG_PREFIX} gzip transform")
        return ByteStream(inflate(stream, GZIP_WBITS), on_close=stream.aclose)

    if token in DEFLATE_TOKENS:
        return ByteStream(_inflate_deflate(stream), on_close=stream.aclose)

    logger.debug(f"{LOG_PREFIX} passing through unsupported encoding {codings!r}")
    return stream


async def _inflate_deflate(stream: ByteStream) -> AsyncIterator[bytes]:
    try:
        first = await stream.__anext__()
    except StopAsyncIteration:
        return
    wbits = ZLIB_WBITS if first and (first[0] & 0x0F) == 0x08 else RAW_DEFLATE_WBITS
    logger.debug(f"{LOG_PREFIX} deflate transform (wbits={wbits})")
    async for chunk in inflate(prepend(first, stream), wbits):
        yield chunk
