"""Entry point for the chat relay server."""

import asyncio
import logging
import signal
import sys

from aiohttp import web
from websockets.asyncio.server import serve

from chat_relay.config import get_settings
from chat_relay.dispatcher import BroadcastDispatcher
from chat_relay.engine import ChatEngine
from chat_relay.http import create_http_app
from chat_relay.server import WebSocketHandler

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


async def run_server() -> None:
    """Initialize and run the WebSocket server and HTTP API server."""
    settings = get_settings()

    logger.info(f"Starting WebSocket server on {settings.host}:{settings.port}")
    logger.info(f"Starting HTTP server on {settings.host}:{settings.http_port}")
    history = settings.room_history_limit if settings.history_is_bounded else "unbounded"
    logger.info(
        f"Room history limit: {history}, "
        f"rejoin policy: {settings.rejoin_policy}"
    )

    engine = ChatEngine(settings)
    dispatcher = BroadcastDispatcher(settings.outbox_size)
    handler = WebSocketHandler(engine, dispatcher, settings)

    # Create HTTP app with access to WebSocket handler
    http_app = create_http_app(handler)

    # Set up graceful shutdown
    stop_event = asyncio.Event()

    def handle_shutdown():
        logger.info("Shutdown signal received, stopping servers...")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_shutdown)

    http_runner = web.AppRunner(http_app)
    await http_runner.setup()
    http_site = web.TCPSite(http_runner, settings.host, settings.http_port)
    await http_site.start()

    logger.info(f"HTTP server listening on http://{settings.host}:{settings.http_port}")
    logger.info(f"Rooms endpoint: http://{settings.host}:{settings.http_port}/api/rooms")

    # Idle pings are driven by the handler, not the library
    async with serve(
        handler.handle_connection,
        settings.host,
        settings.port,
        ping_interval=None,
    ):
        logger.info(f"WebSocket server listening on ws://{settings.host}:{settings.port}{settings.ws_path}")

        await stop_event.wait()

        logger.info("Initiating graceful shutdown...")
        await handler.close_all_connections(timeout=settings.shutdown_timeout)

    await http_runner.cleanup()

    logger.info("Servers stopped")


def main() -> None:
    """Main entry point."""
    configure_logging(get_settings().log_level)
    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        logger.info("Server interrupted")


if __name__ == "__main__":
    main()
