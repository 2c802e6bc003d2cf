"""
Bearer Token Authentication

FastAPI dependency comparing the Authorization header against the shared
secret from BridgeSettings.
"""

import hmac
from typing import Optional

from fastapi import Header, Request

from stdio_bridge.exceptions import AuthenticationError, ForbiddenError

BEARER_PREFIX = "Bearer "


def require_bridge_token(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> None:
    """
    Reject the request unless it carries ``Authorization: Bearer <token>``.

    Raises:
        AuthenticationError: Header missing or not a bearer token (401)
        ForbiddenError: Token does not match (403)
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("missing bearer token")

    token = authorization[len(BEARER_PREFIX):]
    expected = request.app.state.settings.bridge_token
    if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise ForbiddenError("forbidden")
