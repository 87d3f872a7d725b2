"""Routing of inbound client frames to engine operations."""

import json
import logging
from typing import Any, Callable

from chat_relay import events
from chat_relay.engine import ChatEngine
from chat_relay.errors import ChatError
from chat_relay.events import Delivery

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, dict[str, Any]], list[Delivery]]


class ChatEventHandler:
    """
    Decodes client frames and applies them to the engine.

    Frames are JSON objects of the form ``{"event": <name>, "data": {...}}``.
    Every failure is turned into an ``error`` event for the sending
    connection only, so one misbehaving client cannot affect the others.
    """

    def __init__(self, engine: ChatEngine):
        """
        Initialize the handler and its event table.

        Args:
            engine: The engine that owns all chat state.
        """
        self.engine = engine
        self._handlers: dict[str, EventHandler] = {}
        # Generic error reported when a handler fails unexpectedly
        self._failure_messages: dict[str, str] = {}

        self.register_handler("join", self.handle_join, "Failed to join room")
        self.register_handler("chatMessage", self.handle_chat_message, "Failed to send message")
        self.register_handler("typing", self.handle_typing, "Failed to update typing status")

    def register_handler(
        self, event_name: str, handler: EventHandler, failure_message: str
    ) -> None:
        """
        Register the handler for an inbound event name.

        Args:
            event_name: Value of the frame's ``event`` field.
            handler: Callable taking (connection_id, data) and returning deliveries.
            failure_message: Error reported if the handler raises unexpectedly.
        """
        self._handlers[event_name] = handler
        self._failure_messages[event_name] = failure_message
        logger.debug(f"Registered handler for event: {event_name}")

    @property
    def supported_events(self) -> list[str]:
        """Get list of all handled inbound events."""
        return list(self._handlers.keys())

    def handle_join(self, connection_id: str, data: dict[str, Any]) -> list[Delivery]:
        return self.engine.join(connection_id, data.get("username"), data.get("room"))

    def handle_chat_message(self, connection_id: str, data: dict[str, Any]) -> list[Delivery]:
        return self.engine.send(connection_id, data.get("message"), data.get("room"))

    def handle_typing(self, connection_id: str, data: dict[str, Any]) -> list[Delivery]:
        is_typing = data.get("isTyping", False)
        if not isinstance(is_typing, bool):
            logger.debug(f"Ignoring typing frame with non-boolean isTyping from {connection_id}")
            return []
        return self.engine.typing(connection_id, data.get("room"), is_typing)

    def handle_disconnect(self, connection_id: str) -> list[Delivery]:
        try:
            return self.engine.disconnect(connection_id)
        except Exception as e:
            logger.error(f"Error disconnecting {connection_id}: {e}", exc_info=True)
            return []

    def _error(self, connection_id: str, message: str) -> list[Delivery]:
        return [events.to_connection(connection_id, events.error(message))]

    def handle(self, connection_id: str, message: str | bytes) -> list[Delivery]:
        """
        Main entry point for handling frames.

        Routes to the handler registered for the frame's event name.
        """
        if isinstance(message, bytes):
            try:
                message = message.decode("utf-8")
            except UnicodeDecodeError:
                return self._error(connection_id, "Message must be valid UTF-8 JSON")

        logger.debug(f"Received frame from {connection_id}: {message[:100]}")

        try:
            frame = json.loads(message)
        except json.JSONDecodeError:
            return self._error(connection_id, "Message must be valid JSON")

        if not isinstance(frame, dict):
            return self._error(connection_id, "Message must be a JSON object")

        event_name = frame.get("event")
        handler = self._handlers.get(event_name) if isinstance(event_name, str) else None
        if handler is None:
            return self._error(connection_id, f"Unknown event: {event_name}")

        data = frame.get("data") or {}
        if not isinstance(data, dict):
            return self._error(connection_id, "Event data must be a JSON object")

        try:
            return handler(connection_id, data)
        except ChatError as e:
            logger.debug(f"Rejected {event_name} from {connection_id}: {e.message}")
            return self._error(connection_id, e.message)
        except Exception as e:
            logger.error(f"Error handling {event_name} from {connection_id}: {e}", exc_info=True)
            return self._error(connection_id, self._failure_messages[event_name])
