"""
Bridge HTTP Server

FastAPI app exposing the subprocess over HTTP:
- GET /health: liveness, always {"ok": true}
- POST /rpc: forward one JSON-RPC request (bearer auth)
- GET /info: version and channel counters (bearer auth)
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI

from stdio_bridge.channel import SubprocessChannel, create_channel
from stdio_bridge.configs import BridgeSettings, get_logger
from stdio_bridge.controllers.http.errors import register_exception_handlers
from stdio_bridge.controllers.http.rpc import router as rpc_router
from stdio_bridge.version import __version__

logger = get_logger("http")


def create_app(
    settings: BridgeSettings,
    channel: Optional[SubprocessChannel] = None,
    on_subprocess_exit: Optional[Callable[[Optional[int]], None]] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    The channel is started in the lifespan and closed on shutdown.

    Args:
        settings: Validated bridge settings
        channel: Channel to serve. Defaults to one built from settings.
        on_subprocess_exit: Called with the return code if the subprocess dies
    """

    def handle_exit(returncode: Optional[int]) -> None:
        app.state.subprocess_exited = True
        logger.critical(f"Subprocess exited with code {returncode}, bridge is stopping")
        if on_subprocess_exit is not None:
            on_subprocess_exit(returncode)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        bridge = channel if channel is not None else create_channel(settings)
        bridge.on_exit = handle_exit
        await bridge.start()
        app.state.channel = bridge
        logger.info(f"Bridge listening on :{settings.port}")
        logger.info(
            f"OAuth callback expected on https://{settings.public_hostname}:{settings.oauth_port}/ "
            "(handled by the subprocess)"
        )
        try:
            yield
        finally:
            await bridge.close()

    app = FastAPI(
        title="stdio-bridge",
        description="HTTP bridge to a stdio JSON-RPC subprocess",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.subprocess_exited = False
    app.state.startup_time = datetime.now(timezone.utc).isoformat()

    register_exception_handlers(app)
    app.include_router(rpc_router)

    @app.get("/health")
    def health() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    return app


def run_server(settings: BridgeSettings) -> int:
    """
    Run the bridge until shutdown.

    Returns:
        Process exit status: 1 if startup failed or the subprocess died
    """
    import uvicorn

    server: Optional[uvicorn.Server] = None

    def stop(returncode: Optional[int]) -> None:
        if server is not None:
            server.should_exit = True

    app = create_app(settings, on_subprocess_exit=stop)
    server = uvicorn.Server(
        uvicorn.Config(app, host=settings.host, port=settings.port, log_level="warning")
    )
    logger.info(f"Starting HTTP server on {settings.host}:{settings.port}")
    server.run()

    if not server.started or app.state.subprocess_exited:
        return 1
    return 0


__all__ = ["create_app", "run_server"]
