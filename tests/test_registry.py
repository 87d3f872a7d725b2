"""Tests for the connection registry."""

from chat_relay.models import UserSession
from chat_relay.registry import ConnectionRegistry


def make_session(connection_id: str = "conn-1", username: str = "alice") -> UserSession:
    return UserSession(username=username, room="general", connection_id=connection_id)


class TestConnectionRegistry:
    """Tests for ConnectionRegistry class."""

    def test_put_and_get(self):
        """Test that get retrieves a stored session."""
        registry = ConnectionRegistry()
        session = make_session()

        registry.put("conn-1", session)

        assert registry.get("conn-1") is session
        assert "conn-1" in registry
        assert len(registry) == 1

    def test_get_returns_none_for_missing(self):
        """Test that get returns None for unknown connections."""
        assert ConnectionRegistry().get("nope") is None

    def test_put_replaces_existing_session(self):
        """Test that a second put overwrites the first session."""
        registry = ConnectionRegistry()
        first = make_session(username="alice")
        second = make_session(username="bob")

        registry.put("conn-1", first)
        registry.put("conn-1", second)

        assert registry.get("conn-1") is second
        assert len(registry) == 1

    def test_remove_returns_session(self):
        """Test that remove returns and forgets the session."""
        registry = ConnectionRegistry()
        session = make_session()
        registry.put("conn-1", session)

        removed = registry.remove("conn-1")

        assert removed is session
        assert registry.get("conn-1") is None
        assert "conn-1" not in registry

    def test_remove_is_idempotent(self):
        """Test that removing an absent connection is a no-op."""
        registry = ConnectionRegistry()
        registry.put("conn-1", make_session())

        assert registry.remove("conn-1") is not None
        assert registry.remove("conn-1") is None
        assert registry.remove("never-seen") is None
        assert len(registry) == 0

