"""
Tests for FetchError.
"""
import errno
from types import SimpleNamespace

import pytest

from fetch_bridge import FetchError


@pytest.mark.parametrize(
    "net_error,code",
    [
        ("ERR_CONNECTION_REFUSED", "ECONNREFUSED"),
        ("ERR_EMPTY_RESPONSE", "ECONNRESET"),
        ("ERR_NAME_NOT_RESOLVED", "ENOTFOUND"),
        ("ERR_CONTENT_DECODING_FAILED", "Z_DATA_ERROR"),
        ("ERR_CONTENT_DECODING_INIT_FAILED", "Z_DATA_ERROR"),
        ("ERR_SOMETHING_ELSE", "ERR_SOMETHING_ELSE"),
    ],
)
def test_net_error_messages_map_to_codes(net_error, code):
    error = FetchError(f"request failed: net::{net_error}", "system")
    assert error.code == code
    assert error.errno == code


def test_system_error_code_sources():
    assert FetchError("x", "system", {"code": "ECONNRESET"}).code == "ECONNRESET"
    assert FetchError("x", "system", SimpleNamespace(code="EPIPE")).code == "EPIPE"
    assert FetchError("x", "system", OSError(errno.ECONNREFUSED, "refused")).code == "ECONNREFUSED"


def test_without_system_error():
    error = FetchError("network timeout at: http://example.com/", "request-timeout")
    assert error.code is None
    assert error.errno is None
    assert error.type == "request-timeout"
    assert error.name == "FetchError"
    assert str(error) == "network timeout at: http://example.com/"
    assert isinstance(error, Exception)
