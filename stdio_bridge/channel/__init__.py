"""
Subprocess Channel

The long-lived subprocess, its stdio pipes, and how it is launched.
"""

from stdio_bridge.channel.launcher import build_command, build_env, create_channel
from stdio_bridge.channel.subprocess_channel import SubprocessChannel

__all__ = ["SubprocessChannel", "build_command", "build_env", "create_channel"]
