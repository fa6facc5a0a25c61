"""Pipeline orchestrator: Discover and ProcessAndPost.

Both operations are sequential. Per-unit failures (one region, one video
save, one video's analyze-and-publish chain) become entries in the report's
``errors`` list and never stop the batch. ``run_discover``/``run_process``
additionally turn any unexpected top-level failure into a
``PipelineFailure`` so that raw exceptions never reach callers.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from tlyt_bot.catalog.discovery import collect_trending, persist_new_videos
from tlyt_bot.config import CatalogSettings, PipelineSettings
from tlyt_bot.logging import unit_logging_context
from tlyt_bot.models import (
    AnalysisRecord,
    DiscoverReport,
    PipelineFailure,
    ProcessReport,
    PublishStatus,
    VideoOutcome,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from tlyt_bot.analysis.requestor import AnalysisRequestor
    from tlyt_bot.catalog.discovery import CatalogProvider
    from tlyt_bot.config import Settings
    from tlyt_bot.forum.publisher import Publisher
    from tlyt_bot.models import TrendingVideoRecord
    from tlyt_bot.storage import VideoRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class Pipeline:
    """Sequences discovery, analysis and publishing against a repository."""

    def __init__(
        self,
        repository: VideoRepository,
        catalog: CatalogProvider,
        requestor: AnalysisRequestor,
        publisher: Publisher,
        catalog_settings: CatalogSettings | None = None,
        pipeline_settings: PipelineSettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
        closers: list[Callable[[], None]] | None = None,
    ) -> None:
        self.repository = repository
        self._catalog = catalog
        self._requestor = requestor
        self._publisher = publisher
        self._catalog_settings = catalog_settings or CatalogSettings()
        self._pipeline_settings = pipeline_settings or PipelineSettings()
        self._sleep = sleep
        self._closers = closers or []

    def close(self) -> None:
        for close in self._closers:
            close()

    # -- Discover -----------------------------------------------------------

    def discover(self) -> DiscoverReport:
        """Fetch trending videos and save the ones not seen before.

        The known-id snapshot is read once, before any region is queried.
        """
        known_ids = frozenset(self.repository.list_video_ids())
        logger.info("discover_start", known_videos=len(known_ids))

        settings = self._catalog_settings
        batch = collect_trending(
            self._catalog,
            regions=settings.regions,
            max_results=settings.max_results,
            pacing_delay=settings.pacing_delay,
            sleep=self._sleep,
        )
        saves = persist_new_videos(batch.items, known_ids, self.repository)
        report = DiscoverReport.from_outcomes(batch.region_outcomes, saves)

        logger.info(
            "discover_complete",
            discovered=report.discovered,
            num_errors=len(report.errors),
        )
        return report

    # -- ProcessAndPost -----------------------------------------------------

    def process_and_post(self, batch_size: int | None = None) -> ProcessReport:
        """Analyze and publish up to ``batch_size`` unanalyzed videos, newest first."""
        limit = batch_size if batch_size is not None else self._pipeline_settings.batch_size
        videos = self.repository.find_videos_missing_analysis(limit)
        if not videos:
            logger.info("process_nothing_pending")
            return ProcessReport()

        logger.info("process_start", num_videos=len(videos))
        outcomes = [self._process_video(video) for video in videos]
        report = ProcessReport.from_outcomes(outcomes)

        logger.info(
            "process_complete",
            analyzed=report.analyzed,
            posted=report.posted,
            num_errors=len(report.errors),
        )
        return report

    def _process_video(self, video: TrendingVideoRecord) -> VideoOutcome:
        outcome = VideoOutcome(video_id=video.video_id)
        try:
            with unit_logging_context("video", video.video_id) as log:
                result = self._requestor.analyze(video)
                analysis = AnalysisRecord.from_result(video.video_id, result)
                self.repository.create_analysis(analysis)
                outcome.analyzed = True
                log.info(
                    "analysis_saved",
                    analysis_id=analysis.id,
                    used_fallback=result.used_fallback,
                )

                record = self._publisher.publish(video, analysis.id, result)
                self.repository.create_publish_record(record)
                outcome.status = record.status
                log.info("publish_saved", status=record.status.value)

                if record.status == PublishStatus.FAILED:
                    outcome.error = record.error_message
        except Exception as exc:
            outcome.error = f"Failed to process video {video.video_id}: {exc}"
        return outcome

    # -- Top-level wrappers -------------------------------------------------

    def run_discover(self) -> DiscoverReport | PipelineFailure:
        try:
            return self.discover()
        except Exception as exc:
            logger.exception("discover_aborted", error=str(exc))
            return PipelineFailure(error="Discovery failed", details=str(exc))

    def run_process(self, batch_size: int | None = None) -> ProcessReport | PipelineFailure:
        try:
            return self.process_and_post(batch_size)
        except Exception as exc:
            logger.exception("process_aborted", error=str(exc))
            return PipelineFailure(error="Processing failed", details=str(exc))


def build_pipeline(settings: Settings) -> Pipeline:
    """Wire the concrete catalog, generative, forum and storage backends.

    Raises:
        CatalogError: If no catalog API key is configured.
    """
    from tlyt_bot.analysis.requestor import AnalysisRequestor
    from tlyt_bot.catalog.client import YouTubeCatalogClient
    from tlyt_bot.forum.client import RedditClient
    from tlyt_bot.forum.publisher import Publisher
    from tlyt_bot.storage import JsonRepository

    catalog = YouTubeCatalogClient(
        settings.catalog.api_key.get_secret_value(),
        base_url=settings.catalog.base_url,
        timeout=float(settings.catalog.timeout),
    )
    forum = RedditClient(settings.forum)

    return Pipeline(
        repository=JsonRepository(settings.storage.path),
        catalog=catalog,
        requestor=AnalysisRequestor(settings.generation),
        publisher=Publisher(forum, subreddit=settings.forum.subreddit),
        catalog_settings=settings.catalog,
        pipeline_settings=settings.pipeline,
        closers=[catalog.close, forum.close],
    )
