"""
HTTP Error Mapping

Translates BridgeError subclasses into structured JSON error responses.
Bodies carry the error kind and message, never a traceback.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stdio_bridge.configs import get_logger
from stdio_bridge.exceptions import (
    AuthenticationError,
    BridgeError,
    ChannelError,
    DuplicateIdError,
    ForbiddenError,
    InvalidRequestError,
    PayloadTooLargeError,
    RequestTimeoutError,
)

logger = get_logger("http.errors")

# First match wins
STATUS_BY_ERROR: list[tuple[type[BridgeError], int]] = [
    (AuthenticationError, 401),
    (ForbiddenError, 403),
    (PayloadTooLargeError, 413),
    (InvalidRequestError, 400),
    (DuplicateIdError, 409),
    (RequestTimeoutError, 504),
    (ChannelError, 504),
]

GATEWAY_ERROR = "timeout or bridge error"


def status_for(error: BridgeError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 500


def error_body(error: BridgeError, status_code: int) -> dict:
    if status_code == 504:
        return {"error": GATEWAY_ERROR, "kind": error.kind, "detail": error.message}
    if status_code >= 500:
        return {"error": "internal bridge error", "kind": error.kind}
    return {"error": error.message}


async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=error_body(exc, status_code))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BridgeError, bridge_error_handler)
