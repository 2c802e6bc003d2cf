"""
stdio-bridge

HTTP bridge to a long-lived subprocess speaking Content-Length framed
JSON-RPC on stdio.
"""

from stdio_bridge.version import __version__

__all__ = ["__version__"]
