"""Domain layer: pure entities with no I/O."""

from __future__ import annotations

from .entities import ImageItem, ResultPage

__all__ = ["ImageItem", "ResultPage"]
