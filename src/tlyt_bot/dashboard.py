"""Dashboard statistics and their Rich rendering."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel
from rich.table import Table

if TYPE_CHECKING:
    from tlyt_bot.storage import VideoRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class DashboardStats(BaseModel):
    """Counts shown on the dashboard."""

    total_videos: int = 0
    total_analyses: int = 0
    total_publish_records: int = 0
    recent_posts: int = 0
    partial_posts: int = 0
    failed_posts: int = 0
    pending_videos: int = 0


def collect_stats(
    repository: VideoRepository, now: datetime | None = None
) -> DashboardStats:
    """Read dashboard counts, falling back to all zeros if storage is down.

    The dashboard is read-only and must keep rendering while the store is
    unavailable; the failure is logged.
    """
    try:
        return repository.stats(now)
    except Exception as exc:
        logger.error("dashboard_stats_failed", error=str(exc))
        return DashboardStats()


def build_stats_table(stats: DashboardStats) -> Table:
    """Build a two-column Rich table of dashboard counts.

    Args:
        stats: The counts to render.

    Returns:
        A Rich Table with one row per metric.
    """
    table = Table(title="tlyt-bot", show_header=False, padding=(0, 2))
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Videos", f"{stats.total_videos:,}")
    table.add_row("Analyses", f"{stats.total_analyses:,}")
    table.add_row("Awaiting analysis", f"{stats.pending_videos:,}")
    table.add_row("Publish records", f"{stats.total_publish_records:,}")
    table.add_row("Posted (24h)", f"{stats.recent_posts:,}")
    table.add_row("Partial", f"{stats.partial_posts:,}", style="yellow")
    table.add_row("Failed", f"{stats.failed_posts:,}", style="red")
    return table
