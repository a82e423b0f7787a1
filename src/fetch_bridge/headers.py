"""
Case-insensitive, multi-value HTTP header container.
"""
import re
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

INVALID_TOKEN_RE = re.compile(r"[^\^_`a-zA-Z\-0-9!#$%&'*+.|~]")
INVALID_HEADER_CHAR_RE = re.compile(r"[^\t\x20-\x7e\x80-\xff]")


def validate_name(name: Any) -> str:
    name = f"{name}"
    if not name or INVALID_TOKEN_RE.search(name):
        raise TypeError(f"{name} is not a legal HTTP header name")
    return name


def validate_value(value: Any) -> str:
    value = coerce_value(value)
    if INVALID_HEADER_CHAR_RE.search(value):
        raise TypeError(f"{value} is not a legal HTTP header value")
    return value


def coerce_value(value: Any) -> str:
    """Coerce an arbitrary value to a header string; sequences are joined with ','."""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("latin-1")
    if isinstance(value, (list, tuple)):
        return ",".join(coerce_value(v) for v in value)
    return str(value)


class _HeadersView:
    """Lazy, restartable iteration over a Headers instance."""

    def __init__(self, headers: "Headers", kind: str):
        self._headers = headers
        self._kind = kind

    def __iter__(self) -> Iterator[Any]:
        if self._kind == "keys":
            return iter(sorted(self._headers._map))
        pairs = self._headers._sorted_pairs()
        if self._kind == "values":
            return (value for _, value in pairs)
        return iter(pairs)

    def __repr__(self) -> str:
        return f"<Headers {self._kind}: {list(self)!r}>"


class Headers:
    """
    HTTP headers keyed by lower-cased name.

    Each name keeps its values in insertion order and the display case it
    was first seen with. Iteration is sorted by lower-cased name, yielding
    one ``(name, value)`` pair per stored value.

    Accepted initializers:
        - ``None``
        - another ``Headers`` (copied by value)
        - a mapping of name -> value
        - an iterable of ``(name, value)`` pairs
        - any plain object; its own attributes become headers
    """

    def __init__(self, init: Any = None):
        self._map: Dict[str, List[str]] = {}
        self._names: Dict[str, str] = {}

        for name, value in self._normalize_init(init):
            self.append(name, value)

    @staticmethod
    def _normalize_init(init: Any) -> List[Tuple[Any, Any]]:
        if init is None:
            return []
        if isinstance(init, Headers):
            return [(init._names[key], value) for key, values in init._map.items() for value in values]
        if isinstance(init, Mapping):
            return list(init.items())
        if isinstance(init, (str, bytes, bytearray)):
            raise TypeError("Provided initializer must be an object")
        if isinstance(init, Iterable):
            return Headers._pairs_from_iterable(init)
        if hasattr(init, "__dict__"):
            # Own attributes only; class attributes are ignored
            return list(vars(init).items())
        raise TypeError("Provided initializer must be an object")

    @staticmethod
    def _pairs_from_iterable(init: Any) -> List[Tuple[Any, Any]]:
        try:
            items = list(init)
        except TypeError as exc:
            raise TypeError("Header pairs must be iterable") from exc

        pairs = []
        for pair in items:
            if isinstance(pair, (str, bytes, bytearray)) or not isinstance(pair, Iterable):
                raise TypeError("Each header pair must be iterable")
            pair = list(pair)
            if len(pair) != 2:
                raise TypeError("Each header pair must be a name/value tuple")
            pairs.append((pair[0], pair[1]))
        return pairs

    def _sorted_pairs(self) -> List[Tuple[str, str]]:
        return [(key, value) for key in sorted(self._map) for value in self._map[key]]

    def get(self, name: str) -> Optional[str]:
        """Return all values for ``name`` joined with ',' or None."""
        key = validate_name(name).lower()
        values = self._map.get(key)
        if values is None:
            return None
        return ",".join(values)

    def get_all(self, name: str) -> List[str]:
        key = validate_name(name).lower()
        return list(self._map.get(key, []))

    def has(self, name: str) -> bool:
        return validate_name(name).lower() in self._map

    def set(self, name: str, value: Any) -> None:
        """Replace every value stored for ``name``."""
        name = validate_name(name)
        value = validate_value(value)
        key = name.lower()
        self._map[key] = [value]
        self._names.setdefault(key, name)

    def append(self, name: str, value: Any) -> None:
        name = validate_name(name)
        value = validate_value(value)
        key = name.lower()
        if key not in self._map:
            self._map[key] = []
            self._names[key] = name
        self._map[key].append(value)

    def delete(self, name: str) -> None:
        key = validate_name(name).lower()
        self._map.pop(key, None)
        self._names.pop(key, None)

    def for_each(self, callback: Callable[[str, str], Any]) -> None:
        """Call ``callback(value, name)`` for every stored value in iteration order."""
        for name, value in self._sorted_pairs():
            callback(value, name)

    def entries(self) -> _HeadersView:
        return _HeadersView(self, "entries")

    def items(self) -> _HeadersView:
        return _HeadersView(self, "entries")

    def keys(self) -> _HeadersView:
        return _HeadersView(self, "keys")

    def values(self) -> _HeadersView:
        return _HeadersView(self, "values")

    def raw(self) -> Dict[str, List[str]]:
        """Lower-cased name -> list of values (copies)."""
        return {key: list(values) for key, values in self._map.items()}

    def to_list(self) -> List[Tuple[str, str]]:
        """Display-cased ``(name, value)`` pairs in insertion order, for the wire."""
        return [(self._names[key], value) for key, values in self._map.items() for value in values]

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._sorted_pairs())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._map == other._map

    def __repr__(self) -> str:
        return f"Headers({self._sorted_pairs()!r})"
