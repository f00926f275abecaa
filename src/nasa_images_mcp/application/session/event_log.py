"""
Transport Event Log - per-session, append-only record of outbound events.

Implements the MCP SDK's ``EventStore``: the streamable HTTP transport
stores every outbound message here before it tries to deliver it, so a
client that was not connected (or dropped its stream) can resume with
``Last-Event-ID``.

Replay contract:
- ids are decimal strings of a per-session counter that starts at 1 and
  increases by one per stored event, across all streams of the session
- ``replay_events_after(n)`` sends every retained event with id > n that
  belongs to the same stream as event n, in id order
- a resume point older than the oldest retained event (or newer than the
  newest) raises StreamStateLostError

Storing never waits on a reader, so a slow or absent stream consumer
never delays the message that produced the event.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mcp.server.streamable_http import EventMessage, EventStore

from nasa_images_mcp.shared.exceptions import StreamStateLostError

if TYPE_CHECKING:
    from mcp.server.streamable_http import EventCallback, EventId, StreamId
    from mcp.types import JSONRPCMessage

logger = logging.getLogger(__name__)

# Stream key the SDK uses for the standalone GET stream; server-initiated
# notifications that answer no particular request are stored under it.
STANDALONE_STREAM_ID = "_GET_stream"


@dataclass(frozen=True, slots=True)
class TransportEvent:
    """One sequence-numbered outbound message. ``message`` is None for SSE priming events."""

    event_id: int
    stream_id: str
    message: JSONRPCMessage | None


def parse_event_id(raw: str | None) -> int | None:
    """
    Parse a ``Last-Event-ID`` value.

    Returns:
        The event id, or None when the header is absent or blank

    Raises:
        StreamStateLostError: Not an id this log could have issued
    """
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise StreamStateLostError(None) from e
    if value < 0:
        raise StreamStateLostError(value)
    return value


class EventLog(EventStore):
    """Bounded, append-only event log with per-stream replay."""

    def __init__(self, max_events: int = 1000) -> None:
        if max_events < 1:
            msg = "max_events must be at least 1"
            raise ValueError(msg)
        self._events: deque[TransportEvent] = deque(maxlen=max_events)
        self._next_id = 1

    @property
    def last_event_id(self) -> int:
        """Id of the newest event, 0 when nothing was stored yet."""
        return self._next_id - 1

    @property
    def oldest_event_id(self) -> int:
        """Id of the oldest retained event (``last_event_id + 1`` when empty)."""
        return self._events[0].event_id if self._events else self._next_id

    def __len__(self) -> int:
        return len(self._events)

    def append(self, stream_id: str, message: JSONRPCMessage | None) -> TransportEvent:
        """Record a message under the next id."""
        event = TransportEvent(event_id=self._next_id, stream_id=stream_id, message=message)
        self._next_id += 1
        self._events.append(event)
        return event

    def events_after(self, after: int, stream_id: str | None = None) -> list[TransportEvent]:
        """
        Retained events with id > ``after``, optionally limited to one stream.

        Raises:
            StreamStateLostError: If events after ``after`` were already trimmed,
                or ``after`` is beyond the newest event.
        """
        self.check_resumable(after)
        return [
            event
            for event in self._events
            if event.event_id > after and (stream_id is None or event.stream_id == stream_id)
        ]

    def check_resumable(self, after: int) -> None:
        """Raise StreamStateLostError unless every event after ``after`` is still retained."""
        if after < self.oldest_event_id - 1 or after > self.last_event_id:
            raise StreamStateLostError(after, oldest_available=self.oldest_event_id)

    def stream_of(self, event_id: int) -> str:
        """Stream an event was stored under; trimmed or unknown ids map to the standalone stream."""
        for event in self._events:
            if event.event_id == event_id:
                return event.stream_id
        return STANDALONE_STREAM_ID

    # ------------------------------------------------------------------
    # EventStore
    # ------------------------------------------------------------------

    async def store_event(self, stream_id: StreamId, message: JSONRPCMessage | None) -> EventId:
        event = self.append(stream_id, message)
        logger.debug(f"Stored event {event.event_id} on stream {stream_id}")
        return str(event.event_id)

    async def replay_events_after(self, last_event_id: EventId, send_callback: EventCallback) -> StreamId | None:
        """
        Send the events of ``last_event_id``'s stream that came after it.

        Keeps sending until nothing newer is left, and returns without
        yielding to the event loop after that final check, so the transport
        attaches its live tail before the next event can be stored.
        """
        after = parse_event_id(last_event_id)
        if after is None:
            raise StreamStateLostError(None)
        stream_id = self.stream_of(after)

        cursor = after
        while cursor < self.last_event_id:
            horizon = self.last_event_id
            for event in self.events_after(cursor, stream_id):
                if event.event_id > horizon:
                    break
                if event.message is not None:
                    await send_callback(EventMessage(event.message, str(event.event_id)))
            cursor = horizon
        logger.debug(f"Replayed stream {stream_id} up to event {cursor}")
        return stream_id
