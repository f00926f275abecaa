"""
Domain Entity: ImageItem

One entry of a NASA Image and Video Library search result.
Pure domain entity; mapping from the upstream JSON lives in the
infrastructure layer.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ImageItem:
    """
    Immutable search result item, identified by its catalog ``nasa_id``.

    Items are never deduplicated: two searches returning the same image
    produce two independent items.
    """

    nasa_id: str
    image_url: str
    title: str = "Untitled"
    description: str = "No description available"
    date_created: str = ""
    center: str = "NASA"

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return dataclasses.asdict(self)
