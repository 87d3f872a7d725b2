"""In-memory connection registry."""

import logging
from typing import Optional

from chat_relay.models import UserSession

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps active connection ids to the session joined from them."""

    def __init__(self):
        self._sessions: dict[str, UserSession] = {}

    def put(self, connection_id: str, session: UserSession) -> None:
        """
        Store the session for a connection, replacing any previous one.

        Args:
            connection_id: Transport-assigned connection id
            session: The session joined from that connection
        """
        self._sessions[connection_id] = session
        logger.debug(f"Registered session {session.id} for connection {connection_id}")

    def get(self, connection_id: str) -> Optional[UserSession]:
        """
        Retrieve the session for a connection.

        Returns:
            The UserSession if the connection has joined, None otherwise
        """
        return self._sessions.get(connection_id)

    def remove(self, connection_id: str) -> Optional[UserSession]:
        """
        Remove a connection from the registry.

        Removing an unknown connection is a no-op.

        Returns:
            The removed session, or None if there was none
        """
        session = self._sessions.pop(connection_id, None)
        if session is not None:
            logger.debug(f"Unregistered session {session.id} for connection {connection_id}")
        return session

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
