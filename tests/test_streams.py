"""
Tests for byte stream helpers.
"""
import io

import pytest

from fetch_bridge.streams import ByteStream, is_stream_like, prepend, tee


@pytest.mark.asyncio
async def test_file_like_source():
    stream = ByteStream(io.BytesIO(b"file contents"))
    assert await stream.read() == b"file contents"
    assert stream.closed


@pytest.mark.asyncio
async def test_on_close_runs_once():
    calls = []

    async def on_close():
        calls.append(True)

    stream = ByteStream(iter([b"a"]), on_close=on_close)
    assert await stream.read() == b"a"
    await stream.aclose()
    assert calls == [True]


@pytest.mark.asyncio
async def test_fail_poisons_next_read():
    stream = ByteStream(iter([b"a", b"b"]))
    assert await stream.__anext__() == b"a"
    stream.fail(RuntimeError("stop"))
    with pytest.raises(RuntimeError):
        await stream.__anext__()
    assert stream.closed


@pytest.mark.asyncio
async def test_tee_branches_read_independently():
    left, right = tee(ByteStream(iter([b"1", b"2", b"3"])))
    assert await left.__anext__() == b"1"
    assert await right.read() == b"123"
    assert await left.read() == b"23"


@pytest.mark.asyncio
async def test_prepend():
    async def rest():
        yield b"b"

    assert b"".join([chunk async for chunk in prepend(b"a", rest())]) == b"ab"


def test_is_stream_like():
    assert is_stream_like(iter([b"x"]))
    assert is_stream_like(io.BytesIO(b"x"))
    assert not is_stream_like(b"x")
    assert not is_stream_like("x")
    assert not is_stream_like([b"x"])
