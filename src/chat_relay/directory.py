"""Room directory: membership and bounded message logs per room."""

import logging
from typing import Optional

from chat_relay.models import Message, Room, UserSession

logger = logging.getLogger(__name__)


class RoomDirectory:
    """
    Owns every Room and its message log.

    Rooms are created implicitly on first use and are never removed, so an
    empty room keeps its history for the lifetime of the process.
    """

    def __init__(self, history_limit: Optional[int] = None):
        """
        Initialize an empty directory.

        Args:
            history_limit: Maximum messages kept per room, None for unbounded.
        """
        self.history_limit = history_limit
        self._rooms: dict[str, Room] = {}

    def ensure_room(self, name: str) -> Room:
        """Return the room with this name, creating an empty one if needed."""
        room = self._rooms.get(name)
        if room is None:
            room = Room(name=name, history_limit=self.history_limit)
            self._rooms[name] = room
            logger.info(f"Created room {name!r}")
        return room

    def has_room(self, name: str) -> bool:
        return name in self._rooms

    def add_member(self, name: str, session: UserSession) -> None:
        self.ensure_room(name).members[session.id] = session

    def remove_member(self, name: str, session_id: str) -> bool:
        """
        Remove a session from a room's member set.

        Returns:
            True if the session was a member, False otherwise
        """
        room = self._rooms.get(name)
        if room is None:
            return False
        return room.members.pop(session_id, None) is not None

    def append_message(self, name: str, message: Message) -> None:
        """Append to the room log, evicting the oldest entry when full."""
        room = self.ensure_room(name)
        if room.messages.maxlen is not None and len(room.messages) == room.messages.maxlen:
            logger.debug(f"Room {name!r} history full, evicting {room.messages[0].id}")
        room.messages.append(message)

    def list_messages(self, name: str) -> list[Message]:
        room = self._rooms.get(name)
        if room is None:
            return []
        return list(room.messages)

    def list_members(self, name: str) -> list[UserSession]:
        room = self._rooms.get(name)
        if room is None:
            return []
        return list(room.members.values())

    def member_count(self, name: str) -> int:
        room = self._rooms.get(name)
        return room.member_count if room is not None else 0

    def list_room_names(self) -> list[str]:
        return list(self._rooms)
