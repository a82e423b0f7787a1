"""
Abstract transport interface.
"""
from abc import ABC, abstractmethod

from ..types import TransportRequest, TransportResponse


class Transport(ABC):
    """Performs the network I/O of a single HTTP hop."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the transport (e.g., 'httpx'); also used in the User-Agent."""
        pass

    @property
    def decodes_content(self) -> bool:
        """Whether response bodies arrive already decompressed."""
        return False

    @abstractmethod
    async def send(self, request: TransportRequest) -> TransportResponse:
        """
        Send one request and return once response headers arrive.

        Failures raise TransportError. Cancelling the awaiting task must
        abort the exchange.
        """
        pass

    async def aclose(self) -> None:
        """Release pooled resources."""
        return None
