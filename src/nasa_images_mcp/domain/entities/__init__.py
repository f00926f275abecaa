"""Domain entities."""

from __future__ import annotations

from .image import ImageItem
from .result_page import ResultPage

__all__ = [
    "ImageItem",
    "ResultPage",
]
