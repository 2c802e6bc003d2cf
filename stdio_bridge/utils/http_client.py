"""
Bridge HTTP Client

Synchronous `requests` helpers for talking to a running bridge, used by
the ``probe`` entrypoint mode and handy for smoke tests against a deploy.

Usage:
    from stdio_bridge.utils.http_client import bridge_health, bridge_call

    if bridge_health("http://localhost:8080"):
        reply = bridge_call(
            "http://localhost:8080",
            token,
            {"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
        )
"""

from typing import Any

import requests

from stdio_bridge.configs.constants import get_timeout
from stdio_bridge.exceptions import HTTPConnectionError, HTTPRequestError, HTTPTimeoutError

# Default timeout for HTTP requests (seconds)
DEFAULT_TIMEOUT = get_timeout("http_default", 10)


def _bearer(token: str | None) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


def http_request(
    method: str,
    url: str,
    json: Any = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> requests.Response:
    """
    Make a request with standardized error handling.

    Args:
        method: HTTP method
        url: Request URL
        json: JSON body
        headers: Optional headers dict
        timeout: Request timeout in seconds

    Returns:
        requests.Response object

    Raises:
        HTTPConnectionError: Connection failed
        HTTPTimeoutError: Request timed out
        HTTPRequestError: 4xx/5xx response
    """
    try:
        response = requests.request(method, url, json=json, headers=headers, timeout=timeout)
        response.raise_for_status()
        return response
    except requests.exceptions.ConnectionError as e:
        raise HTTPConnectionError(f"Connection failed: {url}") from e
    except requests.exceptions.Timeout as e:
        raise HTTPTimeoutError(f"Request timed out: {url}") from e
    except requests.exceptions.HTTPError as e:
        raise HTTPRequestError(
            f"HTTP {e.response.status_code}: {url}",
            status_code=e.response.status_code,
            response_text=e.response.text[:500] if e.response.text else None,
        ) from e


def bridge_health(base_url: str, timeout: float = get_timeout("http_health_check", 5)) -> bool:
    """True if GET /health answers {"ok": true}."""
    try:
        response = http_request("GET", f"{base_url.rstrip('/')}/health", timeout=timeout)
    except (HTTPConnectionError, HTTPTimeoutError, HTTPRequestError):
        return False
    try:
        return response.json().get("ok") is True
    except ValueError:
        return False


def bridge_info(base_url: str, token: str, timeout: float = DEFAULT_TIMEOUT) -> dict[str, Any]:
    """GET /info with bearer auth."""
    response = http_request(
        "GET", f"{base_url.rstrip('/')}/info", headers=_bearer(token), timeout=timeout
    )
    try:
        return response.json()
    except ValueError as e:
        raise HTTPRequestError(f"Invalid JSON response from {base_url}") from e


def bridge_call(
    base_url: str,
    token: str,
    payload: dict[str, Any],
    timeout: float = get_timeout("rpc_request"),
) -> Any:
    """POST /rpc and return the subprocess reply."""
    response = http_request(
        "POST",
        f"{base_url.rstrip('/')}/rpc",
        json=payload,
        headers=_bearer(token),
        timeout=timeout,
    )
    try:
        return response.json()
    except ValueError as e:
        raise HTTPRequestError(f"Invalid JSON response from {base_url}") from e
