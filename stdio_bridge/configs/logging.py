"""
Bridge Logging Configuration

Configures logging based on environment variables:
- BRIDGE_DEBUG: Enable debug logging (default: false)
- BRIDGE_LOG_FILE: Optional log file path (default: stderr only)
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


def setup_logging(
    debug: Optional[bool] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for the bridge.

    Args:
        debug: Enable debug level. Defaults to BRIDGE_DEBUG env var.
        log_file: Log file path. Defaults to BRIDGE_LOG_FILE env var;
                  when unset, everything goes to stderr.

    Returns:
        Root logger for the bridge
    """
    if debug is None:
        debug = os.environ.get("BRIDGE_DEBUG", "").lower() in ("true", "1", "yes")
    if log_file is None:
        log_file = os.environ.get("BRIDGE_LOG_FILE") or None

    level = logging.DEBUG if debug else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger = logging.getLogger("stdio_bridge")
    logger.setLevel(level)
    logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    if log_file:
        # If logging to file, only show warnings on stderr
        stderr_handler.setLevel(logging.WARNING)
    else:
        stderr_handler.setLevel(level)
    logger.addHandler(stderr_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)
        logger.info(f"Logging to file: {log_file}")

    return logger


def get_logger(component: str) -> logging.Logger:
    """
    Get a logger for a specific component.

    Args:
        component: Component name (e.g., "framing", "channel", "http")

    Returns:
        Logger instance for the component
    """
    return logging.getLogger(f"stdio_bridge.{component}")
