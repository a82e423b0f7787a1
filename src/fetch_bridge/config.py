"""
Configuration models and defaults for fetch-bridge.
"""
import logging
import os
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .types import OnLogin, RedirectMode

logger = logging.getLogger(__name__)

# Constants
PRODUCT_NAME = "fetch-bridge"
HOMEPAGE = "https://pypi.org/project/fetch-bridge/"
DEFAULT_FOLLOW = 20
DEFAULT_ACCEPT = "*/*"
DEFAULT_ACCEPT_ENCODING = "gzip,deflate"
DEFAULT_CONNECTION = "close"
DEFAULT_TRANSPORT_ENV = "FETCH_BRIDGE_TRANSPORT"


def _resolve_default_transport() -> str:
    name = os.getenv(DEFAULT_TRANSPORT_ENV) or "httpx"
    logger.debug(f"Resolved default transport: {name}")
    return name


# Process-wide, read-only after import
DEFAULT_TRANSPORT: str = _resolve_default_transport()


class FetchOptions(BaseModel):
    """
    Options recognized by ``fetch`` and ``Request``.

    Only the fields a caller actually sets (``model_fields_set``) override
    the values carried by a source Request.
    """
    model_config = {"arbitrary_types_allowed": True, "extra": "ignore"}

    method: Optional[str] = None
    headers: Any = None
    body: Any = None
    redirect: Optional[RedirectMode] = None
    follow: Optional[int] = None
    timeout: Optional[int] = None  # ms, 0 disables
    size: Optional[int] = None  # bytes, 0 is unlimited
    compress: Optional[bool] = None
    signal: Any = None
    transport: Optional[str] = None

    # Transport-specific hints
    agent: Any = None
    session: Optional[str] = None  # proxy URL
    user: Optional[str] = None
    password: Optional[str] = None
    on_login: Optional[OnLogin] = None

    @field_validator("follow", "timeout", "size")
    @classmethod
    def validate_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


def parse_options(init: Union[None, Mapping[str, Any], FetchOptions] = None, **overrides: Any) -> FetchOptions:
    """Validate caller options; invalid options are reported as TypeError."""
    if isinstance(init, FetchOptions):
        if not overrides:
            return init
        data: Dict[str, Any] = {k: getattr(init, k) for k in init.model_fields_set}
    else:
        data = dict(init or {})
    data.update(overrides)
    try:
        return FetchOptions.model_validate(data)
    except ValidationError as e:
        raise TypeError(f"Invalid fetch options: {e}") from e


class ClientConfig(BaseModel):
    """Defaults shared by every request made through a FetchClient."""
    model_config = {"arbitrary_types_allowed": True}

    base_url: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout: int = 0  # ms
    follow: int = DEFAULT_FOLLOW
    compress: bool = True
    transport: Optional[str] = None

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("timeout", "follow")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v
