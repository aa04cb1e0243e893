"""HTTP health endpoints for process supervisors.

``/health`` answers as long as the event loop is alive. ``/ready`` answers
200 only once the bot is connected to the gateway.
"""

import logging
from collections.abc import Callable

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from valkyrie.config import Settings

logger = logging.getLogger(__name__)


def create_health_app(is_ready: Callable[[], bool]) -> Starlette:
    """Create the health ASGI app.

    Args:
        is_ready: Returns True once the bot can serve requests
    """

    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    async def readiness_check(request: Request) -> PlainTextResponse:
        if is_ready():
            return PlainTextResponse("READY")
        return PlainTextResponse("NOT READY", status_code=503)

    return Starlette(
        routes=[
            Route("/health", health_check, methods=["GET"]),
            Route("/ready", readiness_check, methods=["GET"]),
        ]
    )


def create_health_server(settings: Settings, is_ready: Callable[[], bool]) -> uvicorn.Server:
    """Wrap the health app in a uvicorn server that shares the bot's loop."""
    config = uvicorn.Config(
        create_health_app(is_ready),
        host=settings.health_host,
        port=settings.health_port,
        log_level="warning",
        log_config=None,
    )
    return uvicorn.Server(config)
