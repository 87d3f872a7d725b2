"""Shared fixtures for the chat relay tests."""

from datetime import datetime

import pytest

from chat_relay.config import Settings
from chat_relay.engine import ChatEngine
from chat_relay.events import Delivery

FIXED_NOW = datetime(2024, 1, 1, 12, 30, 45)


@pytest.fixture
def settings():
    """Create test settings."""
    return Settings(
        max_username_length=20,
        max_message_length=1000,
        room_history_limit=None,
        rejoin_policy="leave",
    )


@pytest.fixture
def engine(settings):
    """Create an engine with a fixed clock."""
    return ChatEngine(settings, clock=lambda: FIXED_NOW)


def by_event(deliveries: list[Delivery], name: str) -> list[Delivery]:
    """Select the deliveries carrying a given event name."""
    return [d for d in deliveries if d.event.name == name]


def only(deliveries: list[Delivery], name: str) -> Delivery:
    """Return the single delivery carrying a given event name."""
    matching = by_event(deliveries, name)
    assert len(matching) == 1, f"expected one {name!r}, got {len(matching)}"
    return matching[0]
