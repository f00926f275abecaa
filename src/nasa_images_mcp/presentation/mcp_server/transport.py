"""
Streaming Transport - one per session, bound to it for life.

Wraps the MCP SDK's ``StreamableHTTPServerTransport`` (with the session's
EventLog as its event store) and runs the session's ``Server`` on it in a
background task.

State machine::

    UNINITIALIZED --initialize--> ACTIVE --close / crash--> CLOSED

- UNINITIALIZED accepts only the opening ``initialize`` request.
- ACTIVE accepts requests, notifications, client responses and stream opens.
- CLOSED rejects everything with SessionNotFoundError.

When the server task ends for any reason, the registry is told through
the ``on_exit`` callback given to :meth:`StreamingTransport.start`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import TYPE_CHECKING

from mcp.server.streamable_http import LAST_EVENT_ID_HEADER, StreamableHTTPServerTransport
from starlette.datastructures import Headers

from nasa_images_mcp.application.session.event_log import parse_event_id
from nasa_images_mcp.shared.exceptions import ProtocolError, SessionNotFoundError

from .handlers import build_server

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.types import Message, Receive, Scope, Send

    from nasa_images_mcp.application.browse import OperationDispatcher
    from nasa_images_mcp.application.session import Session

logger = logging.getLogger(__name__)

__all__ = ["StreamingTransport", "TransportState"]

# Seconds close() waits for the server task before cancelling it.
CLOSE_TIMEOUT = 5.0


class TransportState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CLOSED = "closed"


async def _send_and_report_status(
    app: Callable[[Scope, Receive, Send], Awaitable[None]],
    scope: Scope,
    receive: Receive,
    send: Send,
) -> int | None:
    """Run ``app`` for one request and return the HTTP status it answered with."""
    status: int | None = None

    async def watch_status(message: Message) -> None:
        nonlocal status
        if message["type"] == "http.response.start":
            status = message["status"]
        await send(message)

    await app(scope, receive, watch_status)
    return status


class StreamingTransport:
    """Per-session protocol endpoint."""

    def __init__(self, session: Session, dispatcher: OperationDispatcher) -> None:
        self._session = session
        self._state = TransportState.UNINITIALIZED
        self._task: asyncio.Task[None] | None = None
        self._open_streams = 0
        self.server = build_server(session, dispatcher)
        # POST answers are plain JSON; server notifications go to the GET stream.
        self.http = StreamableHTTPServerTransport(
            mcp_session_id=session.session_id,
            is_json_response_enabled=True,
            event_store=session.events,
        )

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_streaming(self) -> bool:
        return self._open_streams > 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, on_exit: Callable[[], Awaitable[object]]) -> None:
        """Start the server task; returns once the transport accepts requests."""
        started = asyncio.Event()
        self._task = asyncio.create_task(self._run(started, on_exit), name=f"mcp-session-{self.session_id}")
        await started.wait()
        if self._task.done():
            self._task.result()
            raise SessionNotFoundError(self.session_id)

    async def _run(self, started: asyncio.Event, on_exit: Callable[[], Awaitable[object]]) -> None:
        try:
            async with self.http.connect() as (read_stream, write_stream):
                started.set()
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                    stateless=False,
                )
        except Exception:
            logger.exception(f"[{self.session_id}] session crashed")
        finally:
            started.set()
            self._state = TransportState.CLOSED
            logger.info(f"[{self.session_id}] server task ended")
            await on_exit()

    async def close(self) -> None:
        """Terminate the transport; open streams end and the server task stops."""
        self._state = TransportState.CLOSED
        if not self.http.is_terminated:
            await self.http.terminate()

        task = self._task
        if task is None or task is asyncio.current_task():
            return
        done, _ = await asyncio.wait({task}, timeout=CLOSE_TIMEOUT)
        if not done:
            logger.warning(f"[{self.session_id}] server task did not stop, cancelling it")
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def initialize(self, scope: Scope, receive: Receive, send: Send) -> bool:
        """
        Serve the request that opens the session.

        Returns:
            True if the session is now ACTIVE
        """
        if self._state is not TransportState.UNINITIALIZED:
            raise ProtocolError("Invalid Request: Session is already initialized.")
        status = await self._serve(scope, receive, send)
        if status is not None and status < 400 and self._state is TransportState.UNINITIALIZED:
            self._state = TransportState.ACTIVE
            logger.info(f"[{self.session_id}] initialized")
        return self._state is TransportState.ACTIVE

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> int | None:
        """
        Serve one request of an established session.

        A GET with ``Last-Event-ID`` is checked against the event log
        first, so an unrecoverable reconnect fails before any byte is sent.

        Raises:
            SessionNotFoundError: Transport closed
            ProtocolError: Session not initialized yet
            StreamStateLostError: The resume point is no longer retained
        """
        if self._state is TransportState.CLOSED:
            raise SessionNotFoundError(self.session_id)
        if self._state is TransportState.UNINITIALIZED:
            raise ProtocolError("Invalid Request: Session is not initialized.")

        if scope["method"] == "GET":
            last_event_id = parse_event_id(Headers(scope=scope).get(LAST_EVENT_ID_HEADER))
            if last_event_id is not None:
                self._session.events.check_resumable(last_event_id)
            return await self._stream(scope, receive, send, last_event_id)
        return await self._serve(scope, receive, send)

    async def _stream(self, scope: Scope, receive: Receive, send: Send, last_event_id: int | None) -> int | None:
        self._open_streams += 1
        logger.info(f"[{self.session_id}] stream opened (Last-Event-ID: {last_event_id})")
        try:
            return await self._serve(scope, receive, send)
        finally:
            self._open_streams -= 1
            logger.info(f"[{self.session_id}] stream ended")

    async def _serve(self, scope: Scope, receive: Receive, send: Send) -> int | None:
        self._session.touch()
        try:
            return await _send_and_report_status(self.http.handle_request, scope, receive, send)
        finally:
            self._session.touch()
            if self.http.is_terminated:
                self._state = TransportState.CLOSED
