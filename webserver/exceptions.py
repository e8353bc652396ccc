"""
Webserver Exception Hierarchy

Centralized exception classes for structured error handling across the codebase.
All webserver-specific exceptions inherit from WebServerError.

Usage:
    from webserver.exceptions import WebServerError, StaticFileNotFoundError

    try:
        send_file(decision)
    except StaticFileNotFoundError as e:
        logger.debug(f"Not found: {e}")
"""


class WebServerError(Exception):
    """Base exception for all webserver errors."""

    http_status = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


# =============================================================================
# Configuration / Startup Errors
# =============================================================================


class ConfigurationError(WebServerError):
    """Error in webserver configuration."""

    pass


class StartupError(WebServerError):
    """Server failed to start (e.g. the listening socket could not be bound)."""

    def __init__(self, message: str, host: str | None = None, port: int | None = None):
        details = {}
        if host is not None:
            details["host"] = host
        if port is not None:
            details["port"] = port
        super().__init__(message, details)
        self.host = host
        self.port = port


# =============================================================================
# Static File Errors
# =============================================================================


class StaticFileError(WebServerError):
    """Base class for errors while sending a static file."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message, {"path": path} if path else None)
        self.path = path


class StaticFileNotFoundError(StaticFileError):
    """Selected file does not exist or is not a regular file."""

    http_status = 404


class StaticFileIOError(StaticFileError):
    """Filesystem error while reading the selected file."""

    http_status = 500


# =============================================================================
# Event Bus Errors
# =============================================================================


class EventBusError(WebServerError):
    """Base class for event bus errors."""

    def __init__(self, message: str, address: str | None = None):
        super().__init__(message, {"address": address} if address else None)
        self.address = address


class NoHandlersError(EventBusError):
    """Point-to-point message sent to an address nobody listens on."""

    pass


class ReplyTimeoutError(EventBusError):
    """No reply arrived before the request timeout."""

    pass
