"""
Bridge Constants

Static configuration values: protocol limits, subprocess defaults,
and timeout configuration.
"""

# --- Protocol Limits ---

MAX_MESSAGE_SIZE = 16 * 1024 * 1024  # Largest accepted Content-Length from the subprocess
MAX_HEADER_SIZE = 8 * 1024  # Header bytes tolerated before a separator must appear
MAX_REQUEST_BODY = 1024 * 1024  # Largest accepted HTTP request body
READ_CHUNK_SIZE = 64 * 1024

# --- Subprocess Defaults ---

DEFAULT_LAUNCHER = "npx -y mcp-remote"
DEFAULT_TARGET_URL = "https://mcp.notion.com/mcp"
DEFAULT_TRANSPORT = "http-first"
CREDENTIAL_DIR_ENV = "MCP_REMOTE_CONFIG_DIR"

# --- Timeout Configuration ---
# Centralized timeout values (in seconds)

TIMEOUTS = {
    "rpc_request": 250,  # Wait for a subprocess reply
    "subprocess_shutdown": 5,  # Grace period before killing the subprocess
    "http_default": 10,  # Default outbound HTTP request timeout
    "http_health_check": 5,  # Health probe against a running bridge
}


def get_timeout(key: str, default: int | float | None = None) -> int | float:
    """
    Get a timeout value by key.

    Args:
        key: Timeout key from TIMEOUTS dict
        default: Default value if key not found

    Returns:
        Timeout value in seconds
    """
    if default is None:
        default = TIMEOUTS.get("http_default", 10)
    return TIMEOUTS.get(key, default)
