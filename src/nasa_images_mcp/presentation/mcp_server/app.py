"""
HTTP surface of the NASA Images MCP server (Starlette).

Endpoints:
    POST   /mcp     JSON-RPC requests (the first one of a session must be initialize)
    GET    /mcp     Server-sent event stream for server notifications
    DELETE /mcp     Close a session
    GET    /health  Liveness check
    GET    /        Service info

``/mcp`` is served by :class:`McpEndpoint`, which owns session creation
and teardown and hands every request of a live session to that session's
StreamingTransport.

Failures outside the MCP SDK are answered with a JSON-RPC error body;
client mistakes use HTTP 400, unexpected faults HTTP 500 with a generic
message (details go to the log only). An unexpected fault while serving a
session closes that session.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from mcp.server.streamable_http import LAST_EVENT_ID_HEADER, MCP_PROTOCOL_VERSION_HEADER, MCP_SESSION_ID_HEADER
from mcp.types import ErrorData, JSONRPCError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from nasa_images_mcp.container import ApplicationContainer
from nasa_images_mcp.shared.exceptions import INTERNAL_ERROR, PARSE_ERROR, ProtocolError
from nasa_images_mcp.shared.settings import Settings, load_settings

from .handlers import SERVER_NAME, SERVER_VERSION

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from mcp.types import RequestId
    from starlette.types import Message, Receive, Scope, Send

    from nasa_images_mcp.application.session import Session, SessionRegistry

logger = logging.getLogger(__name__)

EXPOSED_HEADERS = [MCP_SESSION_ID_HEADER, MCP_PROTOCOL_VERSION_HEADER, LAST_EVENT_ID_HEADER]


# =============================================================================
# Helpers
# =============================================================================


def _error_response(error: ErrorData, status_code: int, request_id: RequestId | None = None) -> Response:
    body = JSONRPCError(jsonrpc="2.0", id="server-error" if request_id is None else request_id, error=error)
    return Response(
        body.model_dump_json(by_alias=True, exclude_none=True),
        status_code=status_code,
        media_type="application/json",
    )


def _replay_body(body: bytes, receive: Receive) -> Receive:
    """Receive channel that yields an already-read request body once more."""
    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


# =============================================================================
# MCP endpoint
# =============================================================================


class McpEndpoint:
    """ASGI app for ``/mcp``."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        started = False

        async def watch_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            if request.method == "DELETE":
                response = await self._delete(session_id)
                await response(scope, receive, watch_send)
            elif session_id is None and request.method == "POST":
                await self._initialize(request, scope, watch_send)
            else:
                session = self.registry.resolve(session_id)
                await session.transport.handle_request(scope, receive, watch_send)
        except ProtocolError as e:
            logger.log(e.log_level, f"{request.method} /mcp rejected: {e.message}")
            if not started:
                await _error_response(e.to_error_data(), 400)(scope, receive, send)
        except Exception:
            logger.exception(f"Error handling {request.method} /mcp")
            if session_id is not None and await self.registry.end(session_id):
                logger.warning(f"Session {session_id} closed after a transport error")
            if not started:
                error = ErrorData(code=INTERNAL_ERROR, message="Internal error")
                await _error_response(error, 500)(scope, receive, send)

    async def _initialize(self, request: Request, scope: Scope, send: Send) -> None:
        body = await request.body()
        try:
            message = json.loads(body)
        except ValueError:
            error = ErrorData(code=PARSE_ERROR, message="Parse error: invalid JSON")
            await _error_response(error, 400)(scope, request.receive, send)
            return
        if not isinstance(message, dict):
            raise ProtocolError("Invalid Request: batch messages are not supported")
        if message.get("method") != "initialize":
            raise ProtocolError("Invalid Request: Session is not initialized.")

        session: Session = await self.registry.begin()
        established = False
        try:
            established = await session.transport.initialize(scope, _replay_body(body, request.receive), send)
        finally:
            if not established:
                await self.registry.end(session.session_id)

    async def _delete(self, session_id: str | None) -> Response:
        if not session_id:
            raise ProtocolError("Invalid Request: missing Mcp-Session-Id header")
        closed = await self.registry.end(session_id)
        return JSONResponse({"closed": closed})


# =============================================================================
# Application
# =============================================================================


def create_app(
    settings: Settings | None = None,
    container: ApplicationContainer | None = None,
) -> Starlette:
    """
    Create the Starlette application.

    Args:
        settings: Runtime settings (default: read from the environment)
        container: Pre-configured DI container (tests override providers here)

    Returns:
        Configured Starlette app
    """
    settings = settings or load_settings()
    if container is None:
        container = ApplicationContainer()
        container.config.from_dict(settings.to_dict())

    registry: SessionRegistry = container.session_registry()

    async def health(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "activeSessions": registry.active_count,
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

    async def info(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "name": "NASA Images MCP Server",
                "server": SERVER_NAME,
                "version": SERVER_VERSION,
                "endpoints": {
                    "POST /mcp": "Send JSON-RPC requests",
                    "GET /mcp": "SSE stream for server notifications",
                    "DELETE /mcp": "Close a session",
                    "GET /health": "Health check",
                },
                "documentation": "https://github.com/modelcontextprotocol/specification",
            }
        )

    async def sweep_idle_sessions() -> None:
        while True:
            await asyncio.sleep(settings.session_sweep_interval)
            try:
                await registry.sweep_idle(settings.session_idle_timeout)
            except Exception:
                logger.exception("Idle session sweep failed")

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        """Application lifecycle: startup -> yield -> shutdown."""
        sweeper = asyncio.create_task(sweep_idle_sessions())
        logger.info(
            f"Lifecycle: startup (idle timeout {settings.session_idle_timeout:.0f}s, "
            f"sweep every {settings.session_sweep_interval:.0f}s)"
        )
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
            logger.info(f"Lifecycle: shutdown, closing {registry.active_count} session(s)")
            await registry.close_all()
            await container.nasa_client().close()
            logger.info("Lifecycle: shutdown complete")

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=EXPOSED_HEADERS,
        ),
    ]
    if settings.allowed_hosts:
        middleware.append(Middleware(TrustedHostMiddleware, allowed_hosts=list(settings.allowed_hosts)))

    routes = [
        Route("/", info),
        Route("/health", health),
        Route("/mcp", McpEndpoint(registry), methods=["GET", "POST", "DELETE"]),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.container = container
    app.state.registry = registry
    return app
