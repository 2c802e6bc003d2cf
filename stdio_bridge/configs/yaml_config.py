"""
Bridge YAML Configuration

Loads optional overrides from <data path>/config.yaml.

Example:

    bridge:
      port: 8080
      oauth_port: 8081
      target_url: https://mcp.notion.com/mcp
      request_timeout: 120
"""

import os
from pathlib import Path

import yaml

from stdio_bridge.configs.logging import get_logger
from stdio_bridge.configs.paths import get_data_path
from stdio_bridge.exceptions import ConfigurationError

logger = get_logger("config")


def get_config_path() -> Path:
    """Get the path to config.yaml (BRIDGE_CONFIG_FILE overrides)."""
    override = os.environ.get("BRIDGE_CONFIG_FILE")
    if override:
        return Path(override).expanduser()
    return get_data_path() / "config.yaml"


def load_yaml_config(path: Path | None = None) -> dict:
    """
    Load configuration from config.yaml.

    Args:
        path: Explicit file to read. Defaults to get_config_path().

    Returns:
        Configuration dictionary (empty if file doesn't exist)

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        return {}

    try:
        content = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(content, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")

    logger.debug(f"Loaded config file: {config_path}")
    return content
