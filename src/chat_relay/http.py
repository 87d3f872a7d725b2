"""HTTP query endpoints using aiohttp."""

import logging
from typing import TYPE_CHECKING

from aiohttp import web

if TYPE_CHECKING:
    from chat_relay.server import WebSocketHandler

logger = logging.getLogger(__name__)

WS_HANDLER_KEY = web.AppKey("ws_handler")


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Turn unexpected failures into a JSON 500 response."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.error(f"API error on {request.path}: {e}", exc_info=True)
        return web.json_response(
            {"success": False, "error": "Internal server error"}, status=500
        )


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns server status and active connection count.
    """
    ws_handler = request.app[WS_HANDLER_KEY]

    return web.json_response(
        {
            "status": "healthy",
            "active_connections": ws_handler.active_connection_count,
        }
    )


async def list_rooms_handler(request: web.Request) -> web.Response:
    """List every room with its current member count."""
    engine = request.app[WS_HANDLER_KEY].engine
    rooms = [room.to_dict() for room in engine.list_rooms()]
    return web.json_response({"success": True, "rooms": rooms})


async def list_messages_handler(request: web.Request) -> web.Response:
    """Return a room's retained history; unknown rooms have none."""
    engine = request.app[WS_HANDLER_KEY].engine
    room = request.match_info["room"]
    messages = [m.to_dict() for m in engine.list_messages(room)]
    return web.json_response({"success": True, "messages": messages})


def create_http_app(ws_handler: "WebSocketHandler") -> web.Application:
    """
    Create and configure the aiohttp application.

    Args:
        ws_handler: WebSocket handler instance for accessing server state.

    Returns:
        Configured aiohttp Application.
    """
    app = web.Application(middlewares=[error_middleware])

    app[WS_HANDLER_KEY] = ws_handler

    app.router.add_get("/health", health_handler)
    app.router.add_get("/api/rooms", list_rooms_handler)
    app.router.add_get("/api/rooms/{room}/messages", list_messages_handler)

    logger.info(
        "HTTP routes registered: GET /health, GET /api/rooms, GET /api/rooms/{room}/messages"
    )

    return app
