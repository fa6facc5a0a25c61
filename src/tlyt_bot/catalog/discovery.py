"""Multi-region trending discovery and the known-id deduplication gate.

Regions are queried one at a time with a fixed pacing delay between calls.
The iteration order doubles as the dedup tie-break: when two regions return
the same video, the first region's copy (and its region tag) is kept.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

import structlog

from tlyt_bot.catalog.duration import ZERO_DURATION
from tlyt_bot.config import DEFAULT_REGIONS
from tlyt_bot.logging import unit_logging_context
from tlyt_bot.models import ItemOutcome, TrendingVideoRecord

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from tlyt_bot.catalog.models import CatalogItem
    from tlyt_bot.storage import VideoRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_DEFAULT_REGION = "US"


class CatalogProvider(Protocol):
    def most_popular(self, region: str, max_results: int = 50) -> list[CatalogItem]: ...


@dataclass(slots=True)
class DiscoveryBatch:
    """Deduplicated discovery items plus one outcome per region queried."""

    items: list[CatalogItem] = field(default_factory=list)
    region_outcomes: list[ItemOutcome] = field(default_factory=list)


def collect_trending(
    catalog: CatalogProvider,
    regions: Sequence[str] = DEFAULT_REGIONS,
    max_results: int = 50,
    pacing_delay: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> DiscoveryBatch:
    """Query each region's trending chart and merge the results.

    A failing region is logged and recorded; it never aborts discovery.
    """
    batch = DiscoveryBatch()
    collected: list[CatalogItem] = []

    for index, region in enumerate(regions):
        if index > 0 and pacing_delay > 0:
            sleep(pacing_delay)

        try:
            with unit_logging_context("region", region) as log:
                region_items = catalog.most_popular(region, max_results=max_results)
                log.info("region_fetched", region=region, count=len(region_items))
        except Exception as exc:
            batch.region_outcomes.append(
                ItemOutcome(key=region, error=f"Region {region} failed: {exc}")
            )
            continue

        collected.extend(
            item if item.region == region else item.model_copy(update={"region": region})
            for item in region_items
        )
        batch.region_outcomes.append(ItemOutcome(key=region))

    batch.items = dedupe_by_id(collected)
    logger.info(
        "discovery_collected",
        total=len(collected),
        unique=len(batch.items),
        failed_regions=sum(1 for o in batch.region_outcomes if not o.ok),
    )
    return batch


def dedupe_by_id(items: Iterable[CatalogItem]) -> list[CatalogItem]:
    """Keep the first occurrence of each catalog id, preserving order."""
    seen: set[str] = set()
    unique: list[CatalogItem] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def _parse_count(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def to_video_record(
    item: CatalogItem,
    discovered_at: datetime | None = None,
) -> TrendingVideoRecord:
    """Map a catalog item onto a ``TrendingVideoRecord``.

    Raises:
        ValueError: If a counter or the publish timestamp cannot be parsed.
    """
    snippet = item.snippet
    details = item.content_details
    stats = item.statistics

    return TrendingVideoRecord(
        video_id=item.id,
        title=snippet.title,
        description=snippet.description or None,
        channel_id=snippet.channel_id,
        channel_title=snippet.channel_title,
        published_at=snippet.published_at,
        duration=(details.duration if details and details.duration else ZERO_DURATION),
        tags=list(snippet.tags or []),
        category_id=snippet.category_id or None,
        view_count=_parse_count(stats.view_count) if stats else None,
        like_count=_parse_count(stats.like_count) if stats else None,
        comment_count=_parse_count(stats.comment_count) if stats else None,
        region=item.region or _DEFAULT_REGION,
        discovered_at=discovered_at or datetime.now(tz=UTC),
    )


def persist_new_videos(
    items: Iterable[CatalogItem],
    known_ids: frozenset[str] | set[str],
    repository: VideoRepository,
) -> list[ItemOutcome]:
    """Save every item whose id is not in the pre-batch ``known_ids`` snapshot.

    Returns one outcome per item that was attempted; known items are skipped
    without an outcome.
    """
    outcomes: list[ItemOutcome] = []
    skipped = 0

    for item in items:
        if item.id in known_ids:
            skipped += 1
            continue

        try:
            repository.create_video(to_video_record(item))
        except Exception as exc:
            error = f"Failed to save video {item.id}: {exc}"
            logger.error("video_save_failed", video_id=item.id, error=str(exc))
            outcomes.append(ItemOutcome(key=item.id, error=error))
            continue

        outcomes.append(ItemOutcome(key=item.id))

    logger.info(
        "discovery_persisted",
        saved=sum(1 for o in outcomes if o.ok),
        skipped_known=skipped,
        failed=sum(1 for o in outcomes if not o.ok),
    )
    return outcomes
