"""Data models for the chat relay."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import uuid4

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

MESSAGE_TYPE_CHAT = "message"
MESSAGE_TYPE_SYSTEM = "system"


def new_id() -> str:
    """Generate an opaque unique identifier."""
    return str(uuid4())


def format_timestamp(moment: datetime) -> str:
    """Format a server clock reading with second precision."""
    return moment.strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class Author:
    """The user reference attached to a message."""

    id: str
    username: str

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username}


SYSTEM_AUTHOR = Author(id="system", username="System")


@dataclass
class UserSession:
    """One joined participant, bound to the connection it joined from."""

    username: str
    room: str
    connection_id: str
    id: str = field(default_factory=new_id)

    @property
    def author(self) -> Author:
        return Author(id=self.id, username=self.username)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "username": self.username,
            "room": self.room,
        }


@dataclass(frozen=True)
class Message:
    """An immutable chat or system entry in a room log."""

    user: Author
    text: str
    timestamp: str
    type: str = MESSAGE_TYPE_CHAT
    id: str = field(default_factory=new_id)

    @classmethod
    def system(cls, text: str, moment: datetime) -> "Message":
        """Create a system message authored by the reserved system user."""
        return cls(
            user=SYSTEM_AUTHOR,
            text=text,
            timestamp=format_timestamp(moment),
            type=MESSAGE_TYPE_SYSTEM,
        )

    @classmethod
    def chat(cls, session: UserSession, text: str, moment: datetime) -> "Message":
        """Create a chat message authored by a session."""
        return cls(
            user=session.author,
            text=text,
            timestamp=format_timestamp(moment),
            type=MESSAGE_TYPE_CHAT,
        )

    def to_dict(self) -> dict:
        """Convert to the wire representation."""
        return {
            "id": self.id,
            "user": self.user.to_dict(),
            "text": self.text,
            "timestamp": self.timestamp,
            "type": self.type,
        }


@dataclass
class Room:
    """A named room: ordered members plus a bounded message log."""

    name: str
    history_limit: Optional[int] = None
    # session id -> session, insertion ordered
    members: dict[str, UserSession] = field(default_factory=dict)
    messages: deque = field(init=False)

    def __post_init__(self) -> None:
        self.messages = deque(maxlen=self.history_limit)

    @property
    def member_count(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class RoomSummary:
    """Informational view of a room for the query API."""

    name: str
    member_count: int

    def to_dict(self) -> dict:
        return {"name": self.name, "memberCount": self.member_count}
