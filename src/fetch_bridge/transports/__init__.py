"""
Transport registry.
"""
import logging
from typing import Callable, Dict

from .base import Transport
from .httpx_transport import HttpxTransport

logger = logging.getLogger(__name__)

_factories: Dict[str, Callable[[], Transport]] = {"httpx": HttpxTransport}
_instances: Dict[str, Transport] = {}


def register_transport(name: str, factory: Callable[[], Transport]) -> None:
    """Make a transport selectable by name through the ``transport`` option."""
    _factories[name] = factory
    _instances.pop(name, None)
    logger.debug(f"Registered transport '{name}'")


def get_transport(name: str) -> Transport:
    """Shared transport instance for ``name``."""
    if name not in _factories:
        raise TypeError(f"Unknown transport '{name}'")
    if name not in _instances:
        _instances[name] = _factories[name]()
    return _instances[name]


__all__ = ["Transport", "HttpxTransport", "register_transport", "get_transport"]
