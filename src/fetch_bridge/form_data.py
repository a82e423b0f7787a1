"""
Multipart form body, encoded through httpx's multipart support.
"""
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx

# httpx only encodes multipart bodies as part of a request
_ENCODER_URL = "http://form-data.invalid/"


class FormData:
    """Ordered multipart/form-data fields and files."""

    def __init__(self) -> None:
        self._entries: List[Tuple[str, Tuple[Optional[str], Any, Optional[str]]]] = []
        self._encoded: Optional[httpx.Request] = None

    def append(
        self,
        name: str,
        value: Any,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> None:
        """Add a field. Pass ``filename`` (and optionally ``content_type``) for file parts."""
        if not isinstance(value, (str, bytes)) and not hasattr(value, "read"):
            value = str(value)
        self._entries.append((name, (filename, value, content_type)))
        self._encoded = None

    def _encode(self) -> httpx.Request:
        if self._encoded is None:
            self._encoded = httpx.Request("POST", _ENCODER_URL, files=list(self._entries))
        return self._encoded

    def get_headers(self) -> Dict[str, str]:
        """Boundary-bearing Content-Type for this form."""
        return {"Content-Type": self._encode().headers["Content-Type"]}

    @property
    def length(self) -> Optional[int]:
        """Exact encoded size, or None when a part's size is not known up front."""
        value = self._encode().headers.get("Content-Length")
        return int(value) if value is not None else None

    async def stream(self) -> AsyncIterator[bytes]:
        async for chunk in self._encode().stream:
            yield chunk

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"FormData(fields={[name for name, _ in self._entries]!r})"
