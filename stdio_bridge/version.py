"""
Version Information

Build metadata reported by the /info endpoint.
"""

import os

__version__ = "0.1.0"


def get_current_version() -> dict:
    """
    Get current bridge version info.

    Returns:
        Dict with git_commit, build_time, version
    """
    return {
        "git_commit": os.environ.get("BRIDGE_GIT_COMMIT", "unknown"),
        "build_time": os.environ.get("BRIDGE_BUILD_TIME", "unknown"),
        "version": __version__,
    }
