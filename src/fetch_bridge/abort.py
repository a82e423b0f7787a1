"""
Cooperative cancellation handle for fetch calls.
"""
import asyncio
import logging
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)
LOG_PREFIX = "[fetch-bridge:abort]"


class AbortSignal:
    """
    Cancellation flag observed by fetch and by body consumption.

    ``abort()`` is idempotent: listeners run once, later calls are no-ops.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Any = None
        self._listeners: List[Callable[[], Any]] = []
        self._event: Optional[asyncio.Event] = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def add_listener(self, callback: Callable[[], Any]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], Any]) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    async def wait(self) -> None:
        """Suspend until the signal is aborted."""
        if self._aborted:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def _abort(self, reason: Any = None) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        logger.debug(f"{LOG_PREFIX} aborted (reason={reason!r})")
        if self._event is not None:
            self._event.set()
        listeners, self._listeners = self._listeners, []
        for callback in listeners:
            callback()


class AbortController:
    """Owner side of an AbortSignal."""

    def __init__(self) -> None:
        self._signal = AbortSignal()

    @property
    def signal(self) -> AbortSignal:
        return self._signal

    def abort(self, reason: Any = None) -> None:
        self._signal._abort(reason)
