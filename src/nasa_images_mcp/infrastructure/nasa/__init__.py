"""NASA Image and Video Library client."""

from __future__ import annotations

from .client import NASA_API_BASE, NasaImagesClient

__all__ = ["NASA_API_BASE", "NasaImagesClient"]
