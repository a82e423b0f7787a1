"""
FetchError and related exceptions for fetch-bridge.
"""
import errno as errno_codes
import re
from typing import Any, Optional

# Transport-specific network identifiers mapped to POSIX-like codes
NET_ERROR_MAP = {
    "ERR_CONNECTION_REFUSED": "ECONNREFUSED",
    "ERR_EMPTY_RESPONSE": "ECONNRESET",
    "ERR_NAME_NOT_RESOLVED": "ENOTFOUND",
    "ERR_CONTENT_DECODING_FAILED": "Z_DATA_ERROR",
    "ERR_CONTENT_DECODING_INIT_FAILED": "Z_DATA_ERROR",
}

_NET_ERROR_RE = re.compile(r"^.*net::(\S+)")

# Machine-readable error tags
SYSTEM = "system"
REQUEST_TIMEOUT = "request-timeout"
BODY_TIMEOUT = "body-timeout"
MAX_REDIRECT = "max-redirect"
NO_REDIRECT = "no-redirect"
INVALID_REDIRECT = "invalid-redirect"
ABORT = "abort"
PROXY = "proxy"
MAX_SIZE = "max-size"
UNSUPPORTED_REDIRECT = "unsupported-redirect"

PROXY_AUTH_FAILED = "PROXY_AUTH_FAILED"


def _extract_code(system_error: Any) -> Optional[str]:
    if system_error is None:
        return None
    if isinstance(system_error, dict):
        return system_error.get("code")
    code = getattr(system_error, "code", None)
    if code is None:
        code = getattr(system_error, "errno", None)
    if code is None:
        return None
    if isinstance(code, int):
        return errno_codes.errorcode.get(code, str(code))
    return str(code)


class FetchError(Exception):
    """
    Operational error raised by fetch and by body consumption.

    ``type`` is the machine-readable tag (``system``, ``request-timeout``,
    ``max-redirect`` ...). For ``system`` errors ``code`` and ``errno``
    carry the lower layer's error code.
    """

    name = "FetchError"

    def __init__(self, message: str, type: str, system_error: Any = None):
        super().__init__(message)
        self.message = message
        self.type = type
        self.code: Optional[str] = None
        self.errno: Optional[str] = None

        match = _NET_ERROR_RE.match(message)
        if match:
            error_code = match.group(1)
            system_error = {"code": NET_ERROR_MAP.get(error_code, error_code)}

        code = _extract_code(system_error)
        if code is not None:
            self.code = self.errno = code

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"FetchError(type={self.type!r}, message={self.message!r}, code={self.code!r})"


class ContentDecodingError(Exception):
    """Raised inside a response body stream when decompression fails."""

    code = "Z_DATA_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.errno = self.code


class TransportError(Exception):
    """Raised by a transport when the lower network layer fails."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.errno = code
