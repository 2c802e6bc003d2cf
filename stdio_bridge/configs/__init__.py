"""
Bridge Configuration Module

Re-exports commonly used functions for cleaner imports across the codebase.
"""

# Logging (most commonly used)
from stdio_bridge.configs.logging import get_logger, setup_logging

# Paths
from stdio_bridge.configs.paths import ensure_dir, get_data_path, get_default_credential_dir

# Constants
from stdio_bridge.configs.constants import (
    MAX_HEADER_SIZE,
    MAX_MESSAGE_SIZE,
    MAX_REQUEST_BODY,
    TIMEOUTS,
    get_timeout,
)

# YAML config
from stdio_bridge.configs.yaml_config import get_config_path, load_yaml_config

# Runtime
from stdio_bridge.configs.runtime import BridgeSettings, load_settings

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Paths
    "get_data_path",
    "get_default_credential_dir",
    "ensure_dir",
    # Constants
    "MAX_HEADER_SIZE",
    "MAX_MESSAGE_SIZE",
    "MAX_REQUEST_BODY",
    "TIMEOUTS",
    "get_timeout",
    # YAML config
    "get_config_path",
    "load_yaml_config",
    # Runtime
    "BridgeSettings",
    "load_settings",
]
