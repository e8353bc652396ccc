"""
Server Configuration

Immutable snapshot of the startup options, built once and shared read-only
by every request handler.
"""

import os
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from webserver.configs.constants import (
    DEFAULT_HOST,
    DEFAULT_INDEX_PAGE,
    DEFAULT_KEY_STORE_PASSWORD,
    DEFAULT_KEY_STORE_PATH,
    DEFAULT_PORT,
    DEFAULT_WEB_ROOT,
)
from webserver.exceptions import ConfigurationError


class TLSConfig(BaseModel):
    """TLS settings for the listening socket.

    The key store is a PEM bundle holding both certificate chain and
    private key.
    """

    model_config = ConfigDict(frozen=True)

    key_store_path: str = DEFAULT_KEY_STORE_PATH
    key_store_password: str = DEFAULT_KEY_STORE_PASSWORD


class ServerConfig(BaseModel):
    """Listener and static file settings."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    web_root: str = DEFAULT_WEB_ROOT
    index_page: str = DEFAULT_INDEX_PAGE
    gzip_files: bool = False
    static_files: bool = True
    bridge: bool = False
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    tls: Optional[TLSConfig] = None

    @property
    def web_root_prefix(self) -> str:
        return self.web_root + os.sep

    @property
    def index_path(self) -> str:
        return self.web_root_prefix + self.index_page

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> "ServerConfig":
        """
        Build the config from raw startup options.

        Args:
            options: Option dictionary as loaded from the config file

        Raises:
            ConfigurationError: If an option has the wrong type
        """
        values = {k: v for k, v in options.items() if k in cls.model_fields and k != "tls"}
        try:
            tls = None
            if options.get("ssl", False):
                tls = TLSConfig(
                    key_store_path=options.get("key_store_path", DEFAULT_KEY_STORE_PATH),
                    key_store_password=options.get("key_store_password", DEFAULT_KEY_STORE_PASSWORD),
                )
            return cls(tls=tls, **values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid server options: {e.error_count()} error(s)", {"errors": e.errors()}) from e
