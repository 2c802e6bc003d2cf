"""
Subprocess Launcher

Turns BridgeSettings into the argv and environment of the bridged
subprocess (mcp-remote by default) and builds the channel around it.
"""

import os
import shlex
from typing import Mapping, Optional

from stdio_bridge.channel.subprocess_channel import SubprocessChannel
from stdio_bridge.configs.constants import CREDENTIAL_DIR_ENV
from stdio_bridge.configs.logging import get_logger
from stdio_bridge.configs.paths import ensure_dir
from stdio_bridge.configs.runtime import BridgeSettings
from stdio_bridge.exceptions import ConfigurationError

logger = get_logger("launcher")


def build_command(settings: BridgeSettings) -> list[str]:
    """
    Build the subprocess argv.

    Shape: <launcher...> <target_url> <oauth_port> --host <public_hostname>
           --transport <transport> [--debug]
    """
    launcher = shlex.split(settings.launcher)
    if not launcher:
        raise ConfigurationError("BRIDGE_LAUNCHER must not be empty")
    command = launcher + [
        settings.target_url,
        str(settings.oauth_port),
        "--host",
        settings.public_hostname,
        "--transport",
        settings.transport,
    ]
    if settings.subprocess_debug:
        command.append("--debug")
    return command


def build_env(settings: BridgeSettings, base: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Inherited environment plus the credential storage directory."""
    env = dict(os.environ if base is None else base)
    env[CREDENTIAL_DIR_ENV] = str(settings.credential_dir)
    return env


def create_channel(settings: BridgeSettings, on_exit=None) -> SubprocessChannel:
    """Create (but do not start) the channel described by ``settings``."""
    ensure_dir(settings.credential_dir)
    command = build_command(settings)
    logger.debug(f"Subprocess command: {command}")
    return SubprocessChannel(
        command,
        env=build_env(settings),
        request_timeout=settings.request_timeout,
        max_message_size=settings.max_message_size,
        on_exit=on_exit,
    )
