"""
Webserver - static files with .gz negotiation and an event bus bridge.

Serves files from a configured web root and optionally relays messages
between browser clients and a publish/subscribe event bus over WebSocket.
"""

__version__ = "1.0.0"
