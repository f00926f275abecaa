"""
Result Page Store - the single browse cursor a session owns.

The store starts without a page. ``search`` installs one, ``advance`` moves
its cursor. ``lock`` is the per-session critical section: every operation
that reads or writes the page runs while holding it.
"""

from __future__ import annotations

import asyncio

from nasa_images_mcp.domain.entities import ImageItem, ResultPage
from nasa_images_mcp.shared.exceptions import NoActiveSearchError, NoImageAvailableError


class ResultPageStore:
    """Holds at most one ResultPage for one session."""

    def __init__(self) -> None:
        self._page: ResultPage | None = None
        self.lock = asyncio.Lock()

    @property
    def page(self) -> ResultPage | None:
        return self._page

    @property
    def has_page(self) -> bool:
        return self._page is not None

    def replace(self, page: ResultPage) -> ResultPage:
        """Install a new page, discarding the previous one entirely."""
        self._page = page
        return page

    def advance(self) -> ImageItem:
        """Advance the cursor cyclically; fails when there is nothing to browse."""
        if self._page is None:
            raise NoActiveSearchError
        return self._page.advance()

    def current(self) -> ImageItem:
        if self._page is None:
            raise NoImageAvailableError
        return self._page.current()

    def clear(self) -> None:
        self._page = None
