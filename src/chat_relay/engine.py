"""Presence and messaging engine: the single writer of chat state."""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Optional

from chat_relay import events
from chat_relay.config import Settings, get_settings
from chat_relay.directory import RoomDirectory
from chat_relay.errors import (
    AlreadyJoined,
    InvalidInput,
    InvalidMessage,
    NotJoined,
    TooLong,
)
from chat_relay.events import Audience, Delivery, OutboundEvent
from chat_relay.models import Message, RoomSummary, UserSession
from chat_relay.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ChatEngine:
    """
    Applies join/send/typing/disconnect as atomic state transitions.

    Every operation runs under one lock and never blocks on I/O. Instead of
    delivering anything itself, an operation returns the deliveries it
    produced, with recipients resolved from the state it just wrote.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Clock = datetime.now,
    ):
        """
        Initialize the engine with empty state.

        Args:
            settings: Limits and policies. Defaults to get_settings().
            clock: Source of message timestamps (server local time).
        """
        self.settings = settings or get_settings()
        self.registry = ConnectionRegistry()
        self.directory = RoomDirectory(history_limit=self.settings.room_history_limit)
        self._clock = clock
        self._lock = threading.Lock()

    # Recipient resolution

    def _recipients(self, room: str, exclude: Optional[str] = None) -> tuple[str, ...]:
        return tuple(
            member.connection_id
            for member in self.directory.list_members(room)
            if member.connection_id != exclude
        )

    def _to_room(self, room: str, event: OutboundEvent) -> Delivery:
        return Delivery(event, Audience.ROOM, self._recipients(room), room=room)

    def _to_others(self, room: str, connection_id: str, event: OutboundEvent) -> Delivery:
        return Delivery(
            event,
            Audience.ROOM_EXCEPT,
            self._recipients(room, exclude=connection_id),
            room=room,
        )

    # Validation

    def _validate_join(self, username: Any, room: Any) -> str:
        if not isinstance(username, str) or not isinstance(room, str):
            raise InvalidInput("Username and room are required")
        username = username.strip()
        if not username or not room.strip():
            raise InvalidInput("Username and room are required")
        limit = self.settings.max_username_length
        if len(username) > limit:
            raise InvalidInput(f"Username too long (max {limit} chars)")
        return username

    def _validate_text(self, text: Any) -> str:
        if not isinstance(text, str) or not text.strip():
            raise InvalidMessage("Message cannot be empty")
        text = text.strip()
        limit = self.settings.max_message_length
        if len(text) > limit:
            raise TooLong(f"Message too long (max {limit} chars)")
        return text

    # Operations

    def _leave(self, connection_id: str) -> list[Delivery]:
        """Drop the connection's session and announce it. Caller holds the lock."""
        session = self.registry.remove(connection_id)
        if session is None:
            return []

        if not self.directory.remove_member(session.room, session.id):
            return []

        message = Message.system(f"{session.username} has left the room", self._clock())
        self.directory.append_message(session.room, message)
        logger.info(f"{session.username!r} ({session.id}) left room {session.room!r}")

        return [self._to_others(session.room, connection_id, events.user_left(session, message))]

    def join(self, connection_id: str, username: Any, room: Any) -> list[Delivery]:
        """
        Join a room, creating it on first use.

        Returns:
            A ``joined`` snapshot for the joiner and a ``userJoined`` broadcast
            for every other member, preceded by ``userLeft`` for the previous
            room when an existing session is replaced.

        Raises:
            InvalidInput: Username or room missing, or username too long.
            AlreadyJoined: The connection already joined and rejoins are rejected.
        """
        username = self._validate_join(username, room)

        with self._lock:
            deliveries: list[Delivery] = []

            if connection_id in self.registry:
                if self.settings.rejoin_policy == "reject":
                    raise AlreadyJoined("Already joined a room")
                deliveries.extend(self._leave(connection_id))

            session = UserSession(username=username, room=room, connection_id=connection_id)
            self.registry.put(connection_id, session)
            self.directory.add_member(room, session)

            message = Message.system(f"{username} has joined the room", self._clock())
            self.directory.append_message(room, message)
            logger.info(f"{username!r} ({session.id}) joined room {room!r}")

            snapshot = events.joined(
                session,
                self.directory.list_messages(room),
                self.directory.list_members(room),
            )
            deliveries.append(events.to_connection(connection_id, snapshot))
            deliveries.append(
                self._to_others(room, connection_id, events.user_joined(session, message))
            )
            return deliveries

    def send(
        self, connection_id: str, text: Any, room: Optional[str] = None
    ) -> list[Delivery]:
        """
        Post a chat message to the session's room.

        ``room`` is optional; when given it must name the session's current
        room.

        Returns:
            A ``newMessage`` broadcast to every member, the sender included.

        Raises:
            NotJoined: The connection has no session.
            InvalidMessage: Text is empty after trimming.
            TooLong: Text exceeds max_message_length.
            InvalidInput: ``room`` is not the session's room.
        """
        with self._lock:
            session = self.registry.get(connection_id)
            if session is None:
                raise NotJoined("User not found")

            text = self._validate_text(text)
            if room is not None and room != session.room:
                raise InvalidInput(f"Not a member of room {room!r}")

            message = Message.chat(session, text, self._clock())
            self.directory.append_message(session.room, message)
            logger.debug(f"Message {message.id} from {session.id} in room {session.room!r}")

            return [self._to_room(session.room, events.new_message(message))]

    def typing(
        self, connection_id: str, room: Optional[str] = None, is_typing: bool = True
    ) -> list[Delivery]:
        """Relay a typing indicator to the other members. Never logged."""
        with self._lock:
            session = self.registry.get(connection_id)
            if session is None:
                return []
            if room is not None and room != session.room:
                logger.debug(f"Ignoring typing for {room!r} from session {session.id}")
                return []

            event = events.user_typing(session, bool(is_typing))
            return [self._to_others(session.room, connection_id, event)]

    def disconnect(self, connection_id: str) -> list[Delivery]:
        """
        Forget a connection and announce its departure.

        Idempotent: a second call for the same connection returns no deliveries.
        """
        with self._lock:
            return self._leave(connection_id)

    # Queries

    def list_rooms(self) -> list[RoomSummary]:
        with self._lock:
            return [
                RoomSummary(name=name, member_count=self.directory.member_count(name))
                for name in self.directory.list_room_names()
            ]

    def list_messages(self, room: str) -> list[Message]:
        with self._lock:
            return self.directory.list_messages(room)

    def get_session(self, connection_id: str) -> Optional[UserSession]:
        with self._lock:
            return self.registry.get(connection_id)
