"""
Session Registry - maps session ids to their transport and state.

Guarantees:
- ``begin()`` never hands out an id that ``resolve()`` cannot find: the
  entry is fully built (transport, result store, event log) before it is
  inserted, and the id is only returned after insertion and after the
  transport is running.
- Inserts and removals are serialized by one asyncio.Lock; lookups are
  plain dict reads and never see a half-built entry.
- ``end()`` is idempotent.
- A transport that stops on its own (client DELETE, crash) ends its session.
- Teardown of one session never blocks or fails teardown of another.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING, Protocol

from nasa_images_mcp.shared.exceptions import SessionNotFoundError

from .event_log import EventLog
from .state import ResultPageStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class SessionTransport(Protocol):
    """What the registry needs from a transport: start it, watch it, shut it down."""

    @property
    def is_streaming(self) -> bool: ...

    async def start(self, on_exit: Callable[[], Awaitable[object]]) -> None: ...

    async def close(self) -> None: ...


@dataclass(eq=False)
class Session:
    """
    One isolated conversation.

    The session exclusively owns its result store and event log; the
    transport is bound to it for its whole lifetime.
    """

    session_id: str
    results: ResultPageStore
    events: EventLog
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: float = 0.0
    transport: SessionTransport | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.last_activity = self.clock()

    def touch(self) -> None:
        self.last_activity = self.clock()

    def idle_for(self) -> float:
        return self.clock() - self.last_activity

    @property
    def is_streaming(self) -> bool:
        return self.transport is not None and self.transport.is_streaming


def _new_session_id() -> str:
    return str(uuid.uuid4())


class SessionRegistry:
    """
    Concurrency-safe registry of live sessions.

    Args:
        transport_factory: Builds the transport for a freshly created session
        max_events: Per-session event log retention
        clock: Monotonic clock used for idle tracking
        id_factory: Session id generator
    """

    def __init__(
        self,
        transport_factory: Callable[[Session], SessionTransport],
        *,
        max_events: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        id_factory: Callable[[], str] = _new_session_id,
    ) -> None:
        self._transport_factory = transport_factory
        self._max_events = max_events
        self._clock = clock
        self._id_factory = id_factory
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    async def begin(self) -> Session:
        """Create, register, start and return a new session."""
        async with self._lock:
            session_id = self._id_factory()
            while session_id in self._sessions:
                logger.warning("Session id collision, drawing a new one")
                session_id = self._id_factory()

            session = Session(
                session_id=session_id,
                results=ResultPageStore(),
                events=EventLog(max_events=self._max_events),
                clock=self._clock,
            )
            session.transport = self._transport_factory(session)
            self._sessions[session_id] = session

        try:
            await session.transport.start(partial(self._transport_exited, session_id))
        except BaseException:
            await self.end(session_id)
            raise

        logger.info(f"Session initialized: {session_id}")
        return session

    def resolve(self, session_id: str | None) -> Session:
        """
        Look up a live session and mark it active.

        Raises:
            SessionNotFoundError: Unknown, expired or closed id
        """
        session = self._sessions.get(session_id) if session_id else None
        if session is None:
            raise SessionNotFoundError(session_id)
        session.touch()
        return session

    async def end(self, session_id: str) -> bool:
        """
        Remove a session and close its transport.

        Returns:
            True if a session was removed, False if it was already gone
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        session.results.clear()
        if session.transport is not None:
            await session.transport.close()
        logger.info(f"Session closed: {session_id}")
        return True

    async def _transport_exited(self, session_id: str) -> None:
        if await self.end(session_id):
            logger.info(f"Session {session_id} ended by its transport")

    async def sweep_idle(self, max_idle: float) -> list[str]:
        """
        End sessions idle for longer than ``max_idle`` seconds.

        Sessions with an open stream are kept.
        """
        expired = [
            s.session_id for s in list(self._sessions.values()) if s.idle_for() > max_idle and not s.is_streaming
        ]
        evicted: list[str] = []
        for session_id in expired:
            try:
                if await self.end(session_id):
                    evicted.append(session_id)
            except Exception:
                logger.exception(f"Error evicting idle session {session_id}")
        if evicted:
            logger.info(f"Evicted {len(evicted)} idle session(s)")
        return evicted

    async def close_all(self) -> None:
        """Shutdown path: end every session, each one independently."""
        for session_id in self.session_ids():
            try:
                await self.end(session_id)
                logger.info(f"Closed transport for session {session_id}")
            except Exception:
                logger.exception(f"Error closing transport for session {session_id}")
