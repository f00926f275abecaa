"""
Domain Entity: ResultPage

The materialized result set of the latest search plus a browse cursor.

Invariant: ``0 <= cursor < len(items)`` whenever ``items`` is non-empty.
Browsing is cyclic: advancing past the last item wraps to the first.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from nasa_images_mcp.shared.exceptions import NoActiveSearchError, NoImageAvailableError

from .image import ImageItem


@dataclass
class ResultPage:
    """One fixed-size page of results for a single query."""

    query: str
    items: tuple[ImageItem, ...] = field(default_factory=tuple)
    cursor: int = 0
    total_results: int = 0

    def __post_init__(self) -> None:
        self.items = tuple(self.items)
        if self.items and not 0 <= self.cursor < len(self.items):
            msg = f"cursor {self.cursor} out of range for {len(self.items)} items"
            raise ValueError(msg)

    @classmethod
    def from_search(cls, query: str, items: list[ImageItem] | tuple[ImageItem, ...]) -> ResultPage:
        """Build a fresh page positioned on the first item."""
        items = tuple(items)
        return cls(query=query, items=items, cursor=0, total_results=len(items))

    @property
    def is_empty(self) -> bool:
        return not self.items

    def current(self) -> ImageItem:
        """Item under the cursor."""
        if self.is_empty:
            raise NoImageAvailableError
        return self.items[self.cursor]

    def advance(self) -> ImageItem:
        """Move the cursor forward by one, wrapping to 0 after the last item."""
        if self.is_empty:
            raise NoActiveSearchError
        self.cursor = (self.cursor + 1) % len(self.items)
        return self.items[self.cursor]
