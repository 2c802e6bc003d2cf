"""
JSON-RPC Endpoint

POST /rpc forwards one JSON-RPC request to the subprocess and returns the
matching reply verbatim.

Status codes:
- 200: reply from the subprocess
- 400: body is not a JSON-RPC 2.0 request with a non-null id
- 401/403: missing or wrong bearer token
- 409: a request with the same id is already in flight
- 413: body larger than max_request_body
- 504: timeout waiting for the reply, or the subprocess is gone
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from stdio_bridge.channel import SubprocessChannel
from stdio_bridge.configs import get_logger
from stdio_bridge.controllers.http.auth import require_bridge_token
from stdio_bridge.exceptions import InvalidRequestError, PayloadTooLargeError
from stdio_bridge.version import get_current_version

logger = get_logger("http.rpc")

router = APIRouter()


def get_channel(request: Request) -> SubprocessChannel:
    """The channel started by the app lifespan."""
    return request.app.state.channel


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


async def read_json_body(request: Request, limit: int) -> Any:
    """
    Read and parse the request body, enforcing ``limit`` bytes.

    Raises:
        PayloadTooLargeError: Body exceeds limit
        InvalidRequestError: Body is not valid JSON
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(f"request body exceeds {limit} bytes")

    body = bytearray()
    # Chunked bodies carry no Content-Length: stop as soon as the limit is passed
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError(f"request body exceeds {limit} bytes")

    try:
        return json.loads(body, parse_constant=_reject_constant)
    except ValueError as e:
        raise InvalidRequestError("invalid JSON") from e


def validate_rpc_request(payload: Any) -> dict:
    """
    Check the structural requirements for forwarding a request.

    Only the envelope is checked; method and params stay opaque.

    Raises:
        InvalidRequestError: With the message returned to the caller
    """
    if not isinstance(payload, dict):
        raise InvalidRequestError("invalid JSON")
    if payload.get("jsonrpc") != "2.0":
        raise InvalidRequestError('jsonrpc must be "2.0"')
    if payload.get("id") is None:
        raise InvalidRequestError("missing id")
    return payload


def render_reply(reply: Any) -> bytes:
    """
    Serialize a subprocess reply for the HTTP response.

    NaN and Infinity are written back as the subprocess sent them.
    """
    return json.dumps(reply, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


@router.post("/rpc", dependencies=[Depends(require_bridge_token)])
async def rpc(request: Request, channel: SubprocessChannel = Depends(get_channel)) -> Response:
    """Forward a JSON-RPC request and wait for its reply."""
    settings = request.app.state.settings
    payload = validate_rpc_request(await read_json_body(request, settings.max_request_body))

    logger.info(f"RPC {payload.get('method')} id={payload['id']}")
    reply = await channel.call(payload)
    logger.debug(f"RPC reply for id={payload['id']}")
    return Response(content=render_reply(reply), media_type="application/json")


@router.get("/info", dependencies=[Depends(require_bridge_token)])
async def info(request: Request, channel: SubprocessChannel = Depends(get_channel)) -> dict[str, Any]:
    """
    Build and runtime information.

    Returns version, startup time and subprocess/channel counters.
    """
    settings = request.app.state.settings
    return {
        **get_current_version(),
        "startup_time": request.app.state.startup_time,
        "target_url": settings.target_url,
        "subprocess": channel.stats(),
    }
