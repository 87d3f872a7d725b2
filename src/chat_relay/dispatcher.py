"""Fire-and-forget delivery of outbound events to connections."""

import asyncio
import logging
from typing import Iterable, Optional, Protocol

from websockets.exceptions import ConnectionClosed

from chat_relay.events import Delivery, OutboundEvent

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Anything that can send a text frame, e.g. a websockets ServerConnection."""

    async def send(self, message: str) -> None: ...


class _Outbox:
    """Bounded queue plus the task that writes it to one transport."""

    def __init__(self, connection_id: str, transport: Transport, size: int):
        self.connection_id = connection_id
        self.transport = transport
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=size)
        self.task: Optional[asyncio.Task] = None

    async def run(self) -> None:
        while True:
            payload = await self.queue.get()
            try:
                await self.transport.send(payload)
            except ConnectionClosed:
                logger.debug(f"Dropping event for closed connection {self.connection_id}")
            except Exception as e:
                logger.warning(f"Error delivering to {self.connection_id}: {e}")
            finally:
                self.queue.task_done()

    def cancel(self) -> Optional[asyncio.Task]:
        """Stop the writer and release anything still queued so flush() returns."""
        if self.task is not None:
            self.task.cancel()
        while True:
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self.queue.task_done()
        return self.task


class BroadcastDispatcher:
    """
    Delivers events to the connections listed in each Delivery.

    Each attached connection gets its own outbox, so a slow or dead consumer
    only ever delays itself. Nothing here raises into the caller.
    """

    def __init__(self, outbox_size: int = 256):
        self.outbox_size = outbox_size
        self._outboxes: dict[str, _Outbox] = {}

    def attach(self, connection_id: str, transport: Transport) -> None:
        """
        Start delivering to a connection.

        Must be called from within a running event loop.
        """
        outbox = _Outbox(connection_id, transport, self.outbox_size)
        outbox.task = asyncio.create_task(outbox.run())
        previous = self._outboxes.pop(connection_id, None)
        if previous is not None:
            previous.cancel()
        self._outboxes[connection_id] = outbox

    async def detach(self, connection_id: str) -> None:
        """Stop delivering to a connection, discarding anything still queued."""
        outbox = self._outboxes.pop(connection_id, None)
        if outbox is None:
            return
        task = outbox.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def send_to(self, connection_id: str, event: OutboundEvent) -> bool:
        """
        Queue an event for one connection.

        Returns:
            True if queued, False if the connection is gone or its outbox is full
        """
        outbox = self._outboxes.get(connection_id)
        if outbox is None:
            logger.debug(f"Connection {connection_id} not attached, dropping {event.name}")
            return False
        try:
            outbox.queue.put_nowait(event.to_json())
        except asyncio.QueueFull:
            logger.warning(
                f"Outbox full for {connection_id}, dropping {event.name} "
                f"(size={self.outbox_size})"
            )
            return False
        return True

    def deliver(self, delivery: Delivery) -> int:
        """
        Queue one delivery for each of its recipients.

        Returns:
            Number of recipients the event was queued for
        """
        return sum(self.send_to(cid, delivery.event) for cid in delivery.recipients)

    def dispatch(self, deliveries: Iterable[Delivery]) -> None:
        for delivery in deliveries:
            self.deliver(delivery)

    async def flush(self, connection_id: str) -> None:
        """Wait until everything queued for a connection has been written."""
        outbox = self._outboxes.get(connection_id)
        if outbox is not None:
            await outbox.queue.join()

    async def detach_all(self) -> None:
        for connection_id in list(self._outboxes):
            await self.detach(connection_id)
