"""
Webserver YAML Configuration

Loads startup options from a YAML (or JSON) file and merges environment
overrides on top.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml

from webserver.configs.constants import DEFAULT_CONFIG_FILE
from webserver.configs.logging import get_logger
from webserver.exceptions import ConfigurationError

logger = get_logger("config")

# Environment variable -> option key
ENV_OVERRIDES = {
    "WEBSERVER_PORT": "port",
    "WEBSERVER_HOST": "host",
    "WEBSERVER_WEB_ROOT": "web_root",
}


def get_config_path(cli_path: Optional[str] = None) -> Path:
    """
    Get the path to the options file.

    Priority:
    1. Explicit path (from --config)
    2. WEBSERVER_CONFIG env var
    3. ./webserver.yaml
    """
    if cli_path:
        return Path(cli_path).expanduser()
    env_path = os.environ.get("WEBSERVER_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return Path(DEFAULT_CONFIG_FILE)


def load_yaml_config(path: Path) -> dict[str, Any]:
    """
    Load options from a YAML file.

    Args:
        path: File to read

    Returns:
        Options dictionary (empty if the file doesn't exist)

    Raises:
        ConfigurationError: If the file can't be parsed or isn't a mapping
    """
    if not path.exists():
        logger.info(f"No config file at {path}, using defaults")
        return {}

    try:
        content = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid config file: {e}", {"path": str(path)}) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file: {e}", {"path": str(path)}) from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(
            "Config file must contain a mapping of options",
            {"path": str(path), "type": type(content).__name__},
        )
    return content


def apply_env_overrides(options: dict[str, Any]) -> dict[str, Any]:
    """
    Merge environment overrides into an options dictionary.

    Returns:
        A new dictionary; the input is left untouched
    """
    merged = dict(options)
    for env_var, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            logger.debug(f"Option {key} overridden by {env_var}")
            merged[key] = value
    return merged


def load_options(cli_path: Optional[str] = None) -> dict[str, Any]:
    """Load the raw startup options: file, then environment overrides."""
    path = get_config_path(cli_path)
    return apply_env_overrides(load_yaml_config(path))
