"""FastAPI application setup and entry point"""

import asyncio

import uvicorn

from termtile import config
from termtile.runtime import RuntimeComponents, bootstrap
from termtile.telemetry import configure_logging, get_logger
from termtile.web.server import WebServer

logger = get_logger(__name__)


def create_app(components: RuntimeComponents) -> WebServer:
    """Create the web application"""
    return WebServer(components.registry, components.manager, components.authorizer)


async def start_server(host: str | None = None, port: int | None = None):
    """Start the timer and the uvicorn server; kill all sessions on exit."""
    host = host or config.HOST
    port = port or config.PORT

    components = bootstrap()
    server = create_app(components)
    components.manager.ensure_workspace()

    timer_task = asyncio.create_task(components.timer.run())
    logger.info("[Timer] Timer started")

    uvicorn_config = uvicorn.Config(server.app, host=host, port=port, log_level=config.LOG_LEVEL.lower())
    uvicorn_server = uvicorn.Server(uvicorn_config)

    if components.authorizer.enabled:
        print(f"termtile running at http://{host}:{port}/?token={components.authorizer.token}")
    else:
        print(f"termtile running at http://{host}:{port}/ (auth disabled)")

    try:
        await uvicorn_server.serve()
    finally:
        components.shutdown()
        timer_task.cancel()


def main():
    """Console entry point"""
    configure_logging(config.LOG_LEVEL)
    try:
        asyncio.run(start_server())
    except KeyboardInterrupt:
        print("\nServer stopped")
