"""
fetch-bridge - fetch-style HTTP requests over pluggable async transports.
"""
__version__ = "0.1.0"

from .abort import AbortController, AbortSignal
from .blob import Blob
from .body import Body
from .client import FetchClient, fetch
from .config import ClientConfig, FetchOptions
from .errors import FetchError
from .form_data import FormData
from .headers import Headers
from .request import Request
from .response import Response
from .transports import Transport, get_transport, register_transport
from .types import is_redirect

__all__ = [
    "__version__",
    "fetch",
    "FetchClient",
    "ClientConfig",
    "FetchOptions",
    "Headers",
    "Request",
    "Response",
    "Body",
    "Blob",
    "FormData",
    "AbortController",
    "AbortSignal",
    "FetchError",
    "Transport",
    "register_transport",
    "get_transport",
    "is_redirect",
]
