"""Session Management."""

from __future__ import annotations

from .event_log import EventLog, TransportEvent
from .registry import Session, SessionRegistry, SessionTransport
from .state import ResultPageStore

__all__ = [
    "EventLog",
    "ResultPageStore",
    "Session",
    "SessionRegistry",
    "SessionTransport",
    "TransportEvent",
]
