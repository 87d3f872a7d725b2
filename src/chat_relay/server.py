"""WebSocket server handler implementation."""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed

from chat_relay import events
from chat_relay.config import Settings, get_settings
from chat_relay.dispatcher import BroadcastDispatcher
from chat_relay.engine import ChatEngine
from chat_relay.handlers import ChatEventHandler
from chat_relay.models import new_id

logger = logging.getLogger(__name__)


class WebSocketHandler:
    """Handles WebSocket connections and feeds their frames to the engine."""

    def __init__(
        self,
        engine: ChatEngine,
        dispatcher: Optional[BroadcastDispatcher] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize handler with the chat engine and a dispatcher."""
        self.engine = engine
        self.settings = settings or get_settings()
        self.dispatcher = dispatcher or BroadcastDispatcher(self.settings.outbox_size)
        self.events = ChatEventHandler(engine)
        # Map websocket connections to their connection IDs
        self._connections: dict[ServerConnection, str] = {}
        self._pong_timeout: float = self.settings.pong_timeout
        self._recv_timeout: float = self.settings.recv_timeout

    @property
    def active_connection_count(self) -> int:
        """Return the number of active connections."""
        return len(self._connections)

    async def close_all_connections(self, timeout: float = 5.0) -> None:
        """
        Gracefully close all active WebSocket connections.

        Sends a shutdown event to each client and closes the websocket. Each
        connection's own handler then runs the disconnect bookkeeping.

        Args:
            timeout: Maximum time in seconds to wait for all connections to close.
        """
        if not self._connections:
            logger.info("No active connections to close")
            return

        logger.info(f"Closing {len(self._connections)} active connection(s)...")

        # Snapshot, handlers remove themselves as they finish
        connections_to_close = list(self._connections.items())

        async def close_single_connection(websocket: ServerConnection, connection_id: str) -> None:
            try:
                self.dispatcher.send_to(connection_id, events.shutdown())
                await self.dispatcher.flush(connection_id)
                # Close with 1001 (Going Away) status code
                await websocket.close(1001, "Server shutting down")
                logger.debug(f"Closed connection: {connection_id}")
            except ConnectionClosed:
                logger.debug(f"Connection already closed: {connection_id}")
            except Exception as e:
                logger.warning(f"Error closing connection {connection_id}: {e}")

        close_tasks = [close_single_connection(ws, cid) for ws, cid in connections_to_close]

        try:
            await asyncio.wait_for(
                asyncio.gather(*close_tasks, return_exceptions=True),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Timeout after {timeout}s while closing connections, "
                f"forcing cleanup of remaining connections"
            )

        for websocket, connection_id in connections_to_close:
            self.events.handle_disconnect(connection_id)
            self._connections.pop(websocket, None)
        await self.dispatcher.detach_all()

        logger.info("All connections closed")

    def _is_valid_path(self, full_path: str) -> bool:
        return urlparse(full_path).path == self.settings.ws_path

    async def handle_connection(self, websocket: ServerConnection) -> None:
        """
        Handle a WebSocket connection lifecycle.

        Validates the request path, attaches the connection to the dispatcher,
        processes frames, and runs the disconnect operation when it closes.
        """
        connection_id: Optional[str] = None

        try:
            if not self._is_valid_path(websocket.request.path):
                error_msg = f"Invalid path. Expected: {self.settings.ws_path}"
                logger.warning(f"Connection rejected: {error_msg}")
                await websocket.close(1008, error_msg)
                return

            connection_id = new_id()
            self._connections[websocket] = connection_id
            self.dispatcher.attach(connection_id, websocket)

            logger.info(f"Connection established: {connection_id} from {websocket.remote_address}")

            self.dispatcher.send_to(connection_id, events.connected(connection_id))

            while True:
                try:
                    message = await asyncio.wait_for(
                        websocket.recv(), timeout=self._recv_timeout
                    )
                except asyncio.TimeoutError:
                    # Idle client, make sure it is still there
                    logger.debug(f"No frame from {connection_id} in {self._recv_timeout}s, pinging")
                    try:
                        pong_waiter = await websocket.ping()
                        await asyncio.wait_for(pong_waiter, timeout=self._pong_timeout)
                    except asyncio.TimeoutError:
                        logger.warning(
                            f"No pong response from {connection_id} in "
                            f"{self._pong_timeout}s, closing connection"
                        )
                        await websocket.close(1008, "Pong timeout")
                        break
                    continue
                except ConnectionClosed:
                    logger.info(f"Connection closed by client: {connection_id}")
                    break

                self.dispatcher.dispatch(self.events.handle(connection_id, message))

        except ConnectionClosed:
            logger.info(f"Connection lost: {connection_id}")

        except Exception as e:
            logger.error(f"Error handling connection: {e}", exc_info=True)
            raise

        finally:
            if connection_id is not None and websocket in self._connections:
                self.dispatcher.dispatch(self.events.handle_disconnect(connection_id))
                self._connections.pop(websocket, None)
                await self.dispatcher.detach(connection_id)
                logger.info(f"Connection closed: {connection_id}")
