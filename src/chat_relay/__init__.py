"""Room-based chat relay over WebSockets with in-memory room state."""

from chat_relay.directory import RoomDirectory
from chat_relay.dispatcher import BroadcastDispatcher
from chat_relay.engine import ChatEngine
from chat_relay.errors import (
    AlreadyJoined,
    ChatError,
    InvalidInput,
    InvalidMessage,
    NotJoined,
    TooLong,
)
from chat_relay.events import Audience, Delivery, OutboundEvent
from chat_relay.handlers import ChatEventHandler
from chat_relay.models import Message, Room, RoomSummary, UserSession
from chat_relay.registry import ConnectionRegistry
from chat_relay.server import WebSocketHandler

__version__ = "0.1.0"

__all__ = [
    "Audience",
    "BroadcastDispatcher",
    "ChatEngine",
    "ChatEventHandler",
    "ConnectionRegistry",
    "Delivery",
    "Message",
    "OutboundEvent",
    "Room",
    "RoomDirectory",
    "RoomSummary",
    "UserSession",
    "WebSocketHandler",
    # Errors
    "ChatError",
    "AlreadyJoined",
    "InvalidInput",
    "InvalidMessage",
    "NotJoined",
    "TooLong",
]
