"""
Event Bus Bridge Endpoint

Mounts the bridge's WebSocket at its configured prefix.
"""

from fastapi import FastAPI

from webserver.bridge.service import EventBusBridge
from webserver.configs.logging import get_logger

logger = get_logger("http.bridge")


def register_bridge(app: FastAPI, bridge: EventBusBridge) -> None:
    """Register the bridge's upgrade path on the app."""
    app.add_api_websocket_route(bridge.config.prefix, bridge.handle_socket)
    app.state.bridge = bridge
    logger.info(f"Event bus bridge mounted at {bridge.config.prefix}")


__all__ = ["register_bridge"]
