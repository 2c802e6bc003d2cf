"""
Bridge Data Paths

Locates the data directory holding config.yaml and the OAuth credential
store used by the subprocess. Auto-detects a mounted /data volume.
"""

import os
from pathlib import Path

DEFAULT_DATA_PATH = Path.home() / ".stdio-bridge"
VOLUME_DATA_PATH = Path("/data")


def get_data_path() -> Path:
    """Get the bridge data directory path.

    Resolution order:
    - BRIDGE_DATA_PATH env var
    - /data (when it exists and is writable, e.g. a mounted volume)
    - ~/.stdio-bridge

    Returns:
        Path to the data directory
    """
    data_path = os.environ.get("BRIDGE_DATA_PATH")
    if data_path:
        return Path(data_path).expanduser()
    if VOLUME_DATA_PATH.exists() and os.access(VOLUME_DATA_PATH, os.W_OK):
        return VOLUME_DATA_PATH
    return DEFAULT_DATA_PATH


def get_default_credential_dir() -> Path:
    """Directory where the subprocess persists OAuth tokens."""
    return get_data_path() / ".mcp-auth"


def ensure_dir(path: Path) -> Path:
    """Create ``path`` (and parents) if missing and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path
