"""Recoverable errors reported back to the originating connection."""


class ChatError(Exception):
    """Base class for errors caused by a client request."""

    code = "CHAT_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ChatError):
    """Missing or malformed request fields."""

    code = "INVALID_INPUT"


class InvalidMessage(ChatError):
    """Empty chat message."""

    code = "INVALID_MESSAGE"


class TooLong(ChatError):
    """Chat message over the configured length limit."""

    code = "TOO_LONG"


class NotJoined(ChatError):
    """The connection has no session yet."""

    code = "NOT_JOINED"


class AlreadyJoined(ChatError):
    """The connection already has a session and rejoins are rejected."""

    code = "ALREADY_JOINED"
