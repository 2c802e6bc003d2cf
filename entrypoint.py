#!/usr/bin/env python3
"""
stdio-bridge Entrypoint

Dispatches to the appropriate mode based on command line argument.

Modes:
  serve         - Launch the subprocess and serve HTTP (default)
  check-config  - Validate configuration and print it (token masked)
  probe [URL]   - Check a running bridge via GET /health (and /info with BRIDGE_TOKEN)
"""

import json
import os
import sys


def main():
    mode = sys.argv[1] if len(sys.argv) > 1 else "serve"

    from stdio_bridge.configs import get_logger, load_settings, setup_logging
    from stdio_bridge.exceptions import ConfigurationError

    # Initialize logging (must be called before get_logger)
    setup_logging()
    logger = get_logger("entrypoint")

    if mode == "serve":
        from stdio_bridge.controllers.http import run_server

        try:
            settings = load_settings()
        except ConfigurationError as e:
            logger.error(str(e))
            sys.exit(1)

        sys.exit(run_server(settings))

    elif mode == "check-config":
        try:
            settings = load_settings()
        except ConfigurationError as e:
            print(f"Invalid configuration: {e}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps(settings.masked(), indent=2))

    elif mode == "probe":
        from stdio_bridge.exceptions import ClientError
        from stdio_bridge.utils.http_client import bridge_health, bridge_info

        port = os.environ.get("PORT", "8080")
        base_url = sys.argv[2] if len(sys.argv) > 2 else f"http://localhost:{port}"

        if not bridge_health(base_url):
            print(f"Bridge at {base_url} is not healthy", file=sys.stderr)
            sys.exit(1)
        print(f"Bridge at {base_url} is healthy")

        token = os.environ.get("BRIDGE_TOKEN")
        if token:
            try:
                print(json.dumps(bridge_info(base_url, token), indent=2))
            except ClientError as e:
                print(f"Could not read /info: {e}", file=sys.stderr)
                sys.exit(1)

    else:
        print(f"Unknown mode: {mode}", file=sys.stderr)
        print("Usage: entrypoint.py [serve|check-config|probe [URL]]", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
