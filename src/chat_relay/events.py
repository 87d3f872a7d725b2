"""Outbound events and the recipient sets they are delivered to."""

import json
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional

from chat_relay.models import Message, UserSession


class Audience(Enum):
    """Who a delivery is addressed to."""

    ROOM = auto()
    """Every member of a room."""

    ROOM_EXCEPT = auto()
    """Every member of a room except the originating connection."""

    CONNECTION = auto()
    """A single connection."""


@dataclass(frozen=True)
class OutboundEvent:
    """A named event with a JSON-serializable payload."""

    name: str
    data: dict[str, Any]

    def to_json(self) -> str:
        return json.dumps({"event": self.name, "data": self.data})


@dataclass(frozen=True)
class Delivery:
    """
    An event paired with its resolved recipients.

    ``recipients`` is the list of connection ids computed when the event was
    produced, so a later membership change never alters who receives it.
    """

    event: OutboundEvent
    audience: Audience
    recipients: tuple[str, ...]
    room: Optional[str] = None


def to_connection(connection_id: str, event: OutboundEvent) -> Delivery:
    return Delivery(event, Audience.CONNECTION, (connection_id,))


def connected(connection_id: str) -> OutboundEvent:
    return OutboundEvent("connected", {"connectionId": connection_id})


def joined(
    session: UserSession, messages: list[Message], users: list[UserSession]
) -> OutboundEvent:
    return OutboundEvent(
        "joined",
        {
            "user": session.to_dict(),
            "room": session.room,
            "messages": [m.to_dict() for m in messages],
            "users": [u.to_dict() for u in users],
        },
    )


def user_joined(session: UserSession, message: Message) -> OutboundEvent:
    return OutboundEvent(
        "userJoined", {"user": session.to_dict(), "message": message.to_dict()}
    )


def new_message(message: Message) -> OutboundEvent:
    return OutboundEvent("newMessage", message.to_dict())


def user_typing(session: UserSession, is_typing: bool) -> OutboundEvent:
    return OutboundEvent(
        "userTyping",
        {"userId": session.id, "username": session.username, "isTyping": is_typing},
    )


def user_left(session: UserSession, message: Message) -> OutboundEvent:
    return OutboundEvent(
        "userLeft",
        {
            "userId": session.id,
            "username": session.username,
            "message": message.to_dict(),
        },
    )


def error(message: str) -> OutboundEvent:
    return OutboundEvent("error", {"message": message})


def shutdown(message: str = "Server is shutting down") -> OutboundEvent:
    return OutboundEvent("shutdown", {"message": message})
