"""
Webserver HTTP Server

FastAPI app factory and the uvicorn runner. One listener serves static
files (when enabled) and the event bus bridge WebSocket (when enabled).
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Request, Response

from webserver.bridge.config import BridgeConfig, bridge_config_from_options
from webserver.bridge.eventbus import EventBus, LocalEventBus
from webserver.bridge.service import EventBusBridge
from webserver.configs.logging import get_logger
from webserver.configs.server_config import ServerConfig
from webserver.controllers.bridge import register_bridge
from webserver.controllers.http.static import router as static_router
from webserver.exceptions import StartupError, StaticFileError

logger = get_logger("http")


@asynccontextmanager
async def _lifespan(app: FastAPI):
    config: ServerConfig = app.state.server_config
    scheme = "https" if config.tls else "http"
    logger.info(f"Web server listening on {scheme}://{config.host}:{config.port}")
    yield
    logger.info("Web server stopped")


async def static_file_error_handler(request: Request, exc: StaticFileError) -> Response:
    """Convert static file errors to an empty-bodied response."""
    if exc.http_status >= 500:
        logger.error(f"{request.url.path}: {exc}")
    else:
        logger.debug(f"{request.url.path}: {exc}")
    return Response(status_code=exc.http_status)


def create_app(
    config: ServerConfig,
    bridge_config: Optional[BridgeConfig] = None,
    bus: Optional[EventBus] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        config: Server configuration
        bridge_config: Bridge rules; the bridge is mounted only when given
        bus: Event bus for the bridge (default: a fresh LocalEventBus)

    Returns:
        Configured FastAPI app
    """
    # No docs routes: the static catch-all owns every path
    app = FastAPI(
        title="Webserver",
        description="Static files and event bus bridge",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=_lifespan,
    )
    app.state.server_config = config
    app.add_exception_handler(StaticFileError, static_file_error_handler)

    if bridge_config is not None:
        app.state.event_bus = bus if bus is not None else LocalEventBus()
        register_bridge(app, EventBusBridge(bridge_config, app.state.event_bus))

    if config.static_files:
        app.include_router(static_router)
        logger.info(f"Serving static files from {config.web_root} (gzip={config.gzip_files})")

    return app


def create_app_from_options(options: dict[str, Any], bus: Optional[EventBus] = None) -> FastAPI:
    """Build the app straight from raw startup options."""
    config = ServerConfig.from_options(options)
    bridge_config = bridge_config_from_options(options) if config.bridge else None
    return create_app(config, bridge_config, bus)


def run_server(app: FastAPI) -> None:
    """
    Run the app under uvicorn until shutdown.

    Raises:
        StartupError: If the listening socket could not be bound
    """
    config: ServerConfig = app.state.server_config
    ssl_kwargs: dict[str, Any] = {}
    if config.tls:
        ssl_kwargs = {
            "ssl_certfile": config.tls.key_store_path,
            "ssl_keyfile": config.tls.key_store_path,
            "ssl_keyfile_password": config.tls.key_store_password,
        }

    server = uvicorn.Server(
        uvicorn.Config(app, host=config.host, port=config.port, log_level="warning", **ssl_kwargs)
    )
    try:
        server.run()
    except SystemExit as e:
        # uvicorn exits the process when bind fails
        if not server.started:
            raise StartupError("Failed to start listener", config.host, config.port) from e
        raise


__all__ = ["create_app", "create_app_from_options", "run_server", "static_file_error_handler"]
