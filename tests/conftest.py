"""
Shared fixtures for unit tests.

This module provides reusable fixtures for testing bulb sessions without a
real socket.
"""

from unittest.mock import AsyncMock

import pytest

from yeelight_lan.device import YeelightBulb
from yeelight_lan.structs import Endpoint


@pytest.fixture
def endpoint() -> Endpoint:
    return Endpoint(address="192.168.1.50", transition_ms=400, poll_interval=5)


@pytest.fixture
def bulb(endpoint: Endpoint) -> YeelightBulb:
    """
    Bulb session whose socket writes are captured instead of sent.

    ``bulb.connection.send`` is an AsyncMock returning True; decode what was
    written with ``tests.helpers.wire.sent_requests``.
    """
    session = YeelightBulb(endpoint, label="Desk")
    session.connection.send = AsyncMock(return_value=True)
    return session

