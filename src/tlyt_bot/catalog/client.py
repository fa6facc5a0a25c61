"""YouTube Data API client for the regional ``mostPopular`` chart."""

from __future__ import annotations

import httpx
import structlog
from pydantic import ValidationError

from tlyt_bot.catalog.models import CatalogItem
from tlyt_bot.exceptions import CatalogError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_DEFAULT_BASE_URL = "https://www.googleapis.com/youtube/v3"
_PARTS = "id,snippet,contentDetails,statistics"


class YouTubeCatalogClient:
    """Fetch trending videos per region from the YouTube Data API."""

    def __init__(
        self,
        api_key: str,
        client: httpx.Client | None = None,
        base_url: str = _DEFAULT_BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise CatalogError("YouTube API key is required")
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)
        self._base_url = base_url.rstrip("/")

    def close(self) -> None:
        self._client.close()

    def most_popular(self, region: str, max_results: int = 50) -> list[CatalogItem]:
        """Return the region's trending chart, each item tagged with ``region``.

        Raises:
            CatalogError: On a non-2xx response or an unparseable payload.
        """
        response = self._client.get(
            f"{self._base_url}/videos",
            params={
                "part": _PARTS,
                "chart": "mostPopular",
                "regionCode": region,
                "maxResults": str(max_results),
                "key": self._api_key,
            },
        )
        if response.is_error:
            raise CatalogError(
                f"YouTube API error for {region}: "
                f"{response.status_code} - {response.text[:200]}"
            )

        payload = response.json()
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise CatalogError(f"YouTube API returned malformed items for {region}")

        videos: list[CatalogItem] = []
        for raw in items:
            if not isinstance(raw, dict):
                continue
            try:
                item = CatalogItem.model_validate(raw)
            except ValidationError as exc:
                logger.warning(
                    "catalog_item_skipped",
                    region=region,
                    video_id=raw.get("id"),
                    error=str(exc),
                )
                continue
            videos.append(item.model_copy(update={"region": region}))
        return videos
