"""
NASA Image and Video Library Search Client

API Documentation: https://images.nasa.gov/docs/images.nasa.gov_api_docs.pdf

Behaviour:
- One request per search, bounded to a single page (``page_size`` items)
- Fails closed: any transport error, non-2xx status or malformed body
  raises UpstreamUnavailableError, never a partial result
- No automatic retries; callers decide whether to search again
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from typing_extensions import Self

from nasa_images_mcp.domain.entities import ImageItem
from nasa_images_mcp.shared.exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)

NASA_API_BASE = "https://images-api.nasa.gov"


class NasaImagesClient:
    """
    Async client for the NASA image search endpoint.

    Usage:
        async with NasaImagesClient() as client:
            items = await client.search("apollo 11")
    """

    _service_name = "NASA Images"

    def __init__(
        self,
        base_url: str = NASA_API_BASE,
        page_size: int = 20,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: API root, without trailing slash
            page_size: Number of results requested per search
            timeout: Request timeout in seconds
            client: Pre-built httpx client (tests inject a MockTransport here)
        """
        self._base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json", "User-Agent": "nasa-images-mcp/1.0"},
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10, keepalive_expiry=30.0),
        )

    @property
    def page_size(self) -> int:
        return self._page_size

    async def search(self, query: str) -> list[ImageItem]:
        """
        Search the image library.

        Args:
            query: Free-text query (e.g., "apollo 11", "mars rover")

        Returns:
            Up to ``page_size`` items; empty list when nothing matches

        Raises:
            UpstreamUnavailableError: On any network, status or parse failure
        """
        params = {"q": query, "media_type": "image", "page_size": str(self._page_size)}
        try:
            response = await self._client.get(f"{self._base_url}/search", params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"{self._service_name} HTTP error {e.response.status_code}: {e.response.reason_phrase}")
            raise UpstreamUnavailableError(reason=f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"{self._service_name} request failed: {e!r}")
            raise UpstreamUnavailableError(reason=type(e).__name__) from e
        except ValueError as e:
            logger.error(f"{self._service_name} returned invalid JSON: {e}")
            raise UpstreamUnavailableError(reason="invalid JSON") from e

        try:
            raw_items = payload["collection"]["items"]
        except (KeyError, TypeError) as e:
            logger.error(f"{self._service_name} response missing collection.items")
            raise UpstreamUnavailableError(reason="malformed response") from e
        if not isinstance(raw_items, list):
            raise UpstreamUnavailableError(reason="malformed response")

        items: list[ImageItem] = []
        for raw in raw_items:
            if len(items) >= self._page_size:
                break
            item = self._map_to_image_item(raw)
            if item is not None:
                items.append(item)

        logger.info(f"{self._service_name}: {len(items)} images for {query!r}")
        return items

    @staticmethod
    def _map_to_image_item(raw: Any) -> ImageItem | None:
        """
        Map one ``collection.items[]`` entry to an ImageItem.

        Entries without metadata or without an image link are skipped.
        """
        if not isinstance(raw, dict):
            return None
        data_list = raw.get("data") or []
        if not data_list or not isinstance(data_list[0], dict):
            return None
        data = data_list[0]

        links = raw.get("links") or []
        image_url = ""
        if links and isinstance(links[0], dict):
            image_url = links[0].get("href") or ""
        if not image_url:
            return None

        return ImageItem(
            nasa_id=str(data.get("nasa_id", "")),
            image_url=image_url,
            title=data.get("title") or "Untitled",
            description=data.get("description") or "No description available",
            date_created=data.get("date_created") or "",
            center=data.get("center") or "NASA",
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
