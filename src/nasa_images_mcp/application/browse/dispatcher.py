"""
Operation Dispatcher - runs browse operations against one session.

Per-session serialization: every operation runs under the session's
result-store lock, so a slow upstream search and a premature advance on the
same session queue up instead of interleaving. Different sessions never
share a lock and run concurrently.

State-changing operations publish two notifications while still holding
the lock, so notification order matches mutation order:
- ``notifications/resources/updated`` for the current-image resource
- ``notifications/message`` carrying the status text

The publisher is the MCP server session of the calling request; its
notifications land in the session's event log and reach the client on
the standalone stream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import AnyUrl

from nasa_images_mcp.domain.entities import ImageItem, ResultPage

from .operations import CurrentImage, NextImage, SearchImages

if TYPE_CHECKING:
    from mcp.types import LoggingLevel, RequestId

    from nasa_images_mcp.application.session import Session

logger = logging.getLogger(__name__)

CURRENT_IMAGE_URI = "nasa-image://current"
NOTIFICATION_LOGGER = "nasa-images"


class ImageSearchClient(Protocol):
    """Upstream search collaborator."""

    async def search(self, query: str) -> list[ImageItem]: ...


class NotificationPublisher(Protocol):
    """Server-to-client notification channel (``mcp.server.session.ServerSession``)."""

    async def send_resource_updated(self, uri: AnyUrl) -> None: ...

    async def send_log_message(
        self,
        level: LoggingLevel,
        data: Any,
        logger: str | None = None,
        related_request_id: RequestId | None = None,
    ) -> None: ...


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Outcome of one operation: status text plus the item it points at."""

    text: str
    item: ImageItem | None = None
    changed: bool = False


def describe_image(item: ImageItem) -> str:
    """Multi-line description of an item, used by the current-image tool."""
    lines = [
        f"Title: {item.title}",
        f"Image: {item.image_url}",
        f"NASA ID: {item.nasa_id}",
    ]
    if item.date_created:
        lines.append(f"Date: {item.date_created}")
    lines.append(f"Center: {item.center}")
    lines.append(f"Description: {item.description}")
    return "\n".join(lines)


class OperationDispatcher:
    """Executes validated operations; see :mod:`.operations` for parsing."""

    def __init__(self, search_client: ImageSearchClient) -> None:
        self._search_client = search_client

    async def dispatch(
        self,
        session: Session,
        operation: SearchImages | NextImage | CurrentImage,
        publisher: NotificationPublisher | None = None,
    ) -> OperationResult:
        if isinstance(operation, SearchImages):
            return await self.search(session, operation.query, publisher)
        if isinstance(operation, NextImage):
            return await self.advance(session, publisher)
        if isinstance(operation, CurrentImage):
            item = await self.current(session)
            return OperationResult(text=describe_image(item), item=item)
        msg = f"Unsupported operation: {operation!r}"
        raise TypeError(msg)

    async def search(
        self,
        session: Session,
        query: str,
        publisher: NotificationPublisher | None = None,
    ) -> OperationResult:
        """
        Replace the session's page with the first page of results for ``query``.

        Upstream failures propagate as UpstreamUnavailableError and leave the
        previous page exactly as it was.
        """
        async with session.results.lock:
            items = await self._search_client.search(query)
            page = session.results.replace(ResultPage.from_search(query, items))
            result = OperationResult(
                text=f"Searched for: {query}. Found {page.total_results} images.",
                item=page.items[0] if page.items else None,
                changed=True,
            )
            await self._publish(publisher, result)
        logger.info(f"[{session.session_id}] search {query!r}: {page.total_results} images")
        return result

    async def advance(self, session: Session, publisher: NotificationPublisher | None = None) -> OperationResult:
        """Move to the next image; fails with NoActiveSearchError before any search."""
        async with session.results.lock:
            item = session.results.advance()
            result = OperationResult(text=f"Loaded next image: {item.title or 'Unknown'}", item=item, changed=True)
            await self._publish(publisher, result)
        return result

    async def current(self, session: Session) -> ImageItem:
        """Item under the cursor; fails with NoImageAvailableError on an absent or empty page."""
        async with session.results.lock:
            return session.results.current()

    @staticmethod
    async def _publish(publisher: NotificationPublisher | None, result: OperationResult) -> None:
        if publisher is None:
            return
        await publisher.send_resource_updated(AnyUrl(CURRENT_IMAGE_URI))
        await publisher.send_log_message(level="info", data=result.text, logger=NOTIFICATION_LOGGER)
