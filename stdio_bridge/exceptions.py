"""
Bridge Exception Hierarchy

Centralized exception classes for structured error handling across the bridge.
All bridge-specific exceptions inherit from BridgeError.

Usage:
    from stdio_bridge.exceptions import BridgeError, DuplicateIdError

    try:
        reply = await channel.call(payload)
    except DuplicateIdError as e:
        logger.warning(f"Rejected request: {e}")
"""


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    kind = "bridge_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(BridgeError):
    """Error in bridge configuration."""

    kind = "configuration_error"


class MissingConfigError(ConfigurationError):
    """Required configuration value is missing."""

    def __init__(self, name: str, hint: str | None = None):
        message = f"Missing {name} env var"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)
        self.name = name


# =============================================================================
# Correlation Errors
# =============================================================================


class CorrelationError(BridgeError):
    """Base class for request/reply correlation errors."""

    kind = "correlation_error"


class DuplicateIdError(CorrelationError):
    """A request with the same id is already in flight."""

    kind = "duplicate_id"

    def __init__(self, key: str):
        super().__init__("duplicate id in flight", {"id": key})
        self.key = key


class RequestTimeoutError(CorrelationError):
    """No reply arrived before the request deadline."""

    kind = "timeout"

    def __init__(self, key: str, timeout: float):
        super().__init__(f"timeout after {timeout:g}s waiting for id {key}")
        self.key = key
        self.timeout = timeout


# =============================================================================
# Channel Errors
# =============================================================================


class ChannelError(BridgeError):
    """Base class for subprocess channel errors."""

    kind = "channel_error"


class ChannelClosedError(ChannelError):
    """The channel no longer accepts calls."""

    kind = "channel_closed"


class SubprocessLaunchError(ChannelError):
    """The subprocess could not be started."""

    kind = "launch_failed"


class SubprocessTerminatedError(ChannelError):
    """The subprocess exited; every pending call fails with this."""

    kind = "subprocess_terminated"

    def __init__(self, returncode: int | None):
        super().__init__(f"subprocess exited with code {returncode}")
        self.returncode = returncode


# =============================================================================
# HTTP Request Errors
# =============================================================================


class RequestError(BridgeError):
    """Base class for errors in an inbound HTTP request."""

    kind = "request_error"


class InvalidRequestError(RequestError):
    """Request body is not an acceptable JSON-RPC request."""

    kind = "invalid_request"


class AuthenticationError(RequestError):
    """No bearer token was supplied."""

    kind = "unauthenticated"


class ForbiddenError(RequestError):
    """Bearer token does not match the shared secret."""

    kind = "forbidden"


class PayloadTooLargeError(RequestError):
    """Request body exceeds the configured limit."""

    kind = "payload_too_large"


# =============================================================================
# HTTP Client Errors
# =============================================================================


class ClientError(BridgeError):
    """Base class for errors talking to a running bridge over HTTP."""

    kind = "client_error"


class HTTPRequestError(ClientError):
    """HTTP request returned an error status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ):
        details = {}
        if status_code is not None:
            details["status_code"] = status_code
        if response_text:
            details["response_text"] = response_text[:200]
        super().__init__(message, details)
        self.status_code = status_code
        self.response_text = response_text


class HTTPConnectionError(ClientError):
    """Failed to connect to HTTP endpoint."""

    pass


class HTTPTimeoutError(ClientError):
    """HTTP request timed out."""

    pass
