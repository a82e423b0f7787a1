"""
Shared fixtures.
"""
import pytest

from fakes import FakeTransport


@pytest.fixture
def fake_transport():
    """Factory fixture: ``fake_transport(handler)`` or ``fake_transport(responses=[...])``."""

    def _make(handler=None, responses=None) -> FakeTransport:
        if handler is None:
            queue = list(responses or [])

            async def handler(request):
                return queue.pop(0)

        return FakeTransport(handler)

    return _make
