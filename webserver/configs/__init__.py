"""
Webserver Configuration Module

Re-exports commonly used functions for cleaner imports across the codebase.
"""

# Logging (most commonly used)
from webserver.configs.logging import get_logger, setup_logging

# Server settings
from webserver.configs.server_config import ServerConfig, TLSConfig

# YAML config
from webserver.configs.yaml_config import (
    apply_env_overrides,
    get_config_path,
    load_options,
    load_yaml_config,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Server settings
    "ServerConfig",
    "TLSConfig",
    # YAML config
    "apply_env_overrides",
    "get_config_path",
    "load_options",
    "load_yaml_config",
]
