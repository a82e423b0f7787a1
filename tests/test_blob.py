"""
Tests for Blob.
"""
import pytest

from fetch_bridge import Blob


@pytest.mark.asyncio
async def test_parts_and_type():
    blob = Blob(["ab", b"cd", Blob([b"ef"])], type="Text/Plain")
    assert blob.size == 6
    assert blob.type == "text/plain"
    assert await blob.text() == "abcdef"


def test_non_printable_type_is_dropped():
    assert Blob([b"x"], type="text/pläin").type == ""


@pytest.mark.asyncio
async def test_slice():
    blob = Blob([b"0123456789"])
    assert await blob.slice(2, 5).bytes() == b"234"
    assert await blob.slice(-3).bytes() == b"789"
    assert await blob.slice(5, 2).bytes() == b""
    assert blob.slice(0, 1, "text/plain").type == "text/plain"


def test_close_releases_bytes():
    blob = Blob([b"data"])
    blob.close()
    assert blob.closed is True
    assert blob.size == 0
