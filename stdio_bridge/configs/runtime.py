"""
Bridge Runtime Configuration

Builds the validated BridgeSettings from defaults, YAML config and
environment variables. Required values are checked here so the process
fails fast at startup.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from stdio_bridge.configs.constants import (
    CREDENTIAL_DIR_ENV,
    DEFAULT_LAUNCHER,
    DEFAULT_TARGET_URL,
    DEFAULT_TRANSPORT,
    MAX_MESSAGE_SIZE,
    MAX_REQUEST_BODY,
    get_timeout,
)
from stdio_bridge.configs.paths import get_default_credential_dir
from stdio_bridge.configs.yaml_config import load_yaml_config
from stdio_bridge.exceptions import ConfigurationError, MissingConfigError


class BridgeSettings(BaseModel):
    """Everything the bridge needs to launch the subprocess and serve HTTP."""

    bridge_token: str = Field(..., min_length=1)
    public_hostname: str = Field(..., min_length=1)
    host: str = "0.0.0.0"
    port: int = Field(8080, ge=1, le=65535)
    oauth_port: int = Field(8081, ge=1, le=65535)
    target_url: str = DEFAULT_TARGET_URL
    transport: str = DEFAULT_TRANSPORT
    launcher: str = DEFAULT_LAUNCHER
    subprocess_debug: bool = True
    credential_dir: Path = Field(default_factory=get_default_credential_dir)
    request_timeout: float = Field(get_timeout("rpc_request"), gt=0)
    max_message_size: int = Field(MAX_MESSAGE_SIZE, gt=0)
    max_request_body: int = Field(MAX_REQUEST_BODY, gt=0)

    def masked(self) -> dict:
        """Settings as a dict with the shared secret hidden."""
        data = self.model_dump(mode="json")
        data["bridge_token"] = "***"
        return data


# Environment variable -> settings field
ENV_VARS = {
    "BRIDGE_TOKEN": "bridge_token",
    "PUBLIC_HOSTNAME": "public_hostname",
    "BRIDGE_HOST": "host",
    "PORT": "port",
    "OAUTH_PORT": "oauth_port",
    "BRIDGE_TARGET_URL": "target_url",
    "BRIDGE_TRANSPORT": "transport",
    "BRIDGE_LAUNCHER": "launcher",
    "BRIDGE_SUBPROCESS_DEBUG": "subprocess_debug",
    CREDENTIAL_DIR_ENV: "credential_dir",
    "BRIDGE_REQUEST_TIMEOUT": "request_timeout",
    "BRIDGE_MAX_MESSAGE_SIZE": "max_message_size",
    "BRIDGE_MAX_REQUEST_BODY": "max_request_body",
}

REQUIRED = {
    "bridge_token": ("BRIDGE_TOKEN", "strong random secret"),
    "public_hostname": ("PUBLIC_HOSTNAME", "ex: my-app.fly.dev"),
}


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    yaml_config: Optional[dict] = None,
) -> BridgeSettings:
    """
    Get settings merged from defaults, YAML, and environment.

    Priority (highest wins):
    1. Environment variables
    2. ``bridge`` section of config.yaml
    3. BridgeSettings defaults

    Args:
        environ: Environment mapping. Defaults to os.environ.
        yaml_config: Parsed YAML config. Defaults to load_yaml_config().

    Returns:
        Validated BridgeSettings

    Raises:
        MissingConfigError: A required value is absent
        ConfigurationError: A value fails validation
    """
    if environ is None:
        environ = os.environ
    if yaml_config is None:
        yaml_config = load_yaml_config()

    values: dict = {}
    section = yaml_config.get("bridge") or {}
    for key, value in section.items():
        if key in BridgeSettings.model_fields:
            values[key] = value

    for env_name, field_name in ENV_VARS.items():
        raw = environ.get(env_name)
        if raw is not None and raw != "":
            values[field_name] = raw

    for field_name, (env_name, hint) in REQUIRED.items():
        if not values.get(field_name):
            raise MissingConfigError(env_name, hint)

    try:
        return BridgeSettings(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e
