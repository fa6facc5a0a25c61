"""Repository contract consumed by the pipeline, plus a JSON-file backend."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, Field, ValidationError

from tlyt_bot.dashboard import DashboardStats
from tlyt_bot.exceptions import RepositoryError
from tlyt_bot.models import (
    AnalysisRecord,
    PublishRecord,
    PublishStatus,
    TrendingVideoRecord,
)

if TYPE_CHECKING:
    from pathlib import Path

_RECENT_WINDOW = timedelta(hours=24)


class VideoRepository(Protocol):
    """Query/write contract the pipeline needs from persistent storage."""

    def list_video_ids(self) -> set[str]: ...

    def exists(self, video_id: str) -> bool: ...

    def create_video(self, record: TrendingVideoRecord) -> None: ...

    def find_videos_missing_analysis(self, limit: int) -> list[TrendingVideoRecord]: ...

    def create_analysis(self, record: AnalysisRecord) -> None: ...

    def create_publish_record(self, record: PublishRecord) -> None: ...

    def stats(self, now: datetime | None = None) -> DashboardStats: ...


class _StorePayload(BaseModel):
    videos: list[TrendingVideoRecord] = Field(default_factory=list)
    analyses: list[AnalysisRecord] = Field(default_factory=list)
    publish_records: list[PublishRecord] = Field(default_factory=list)


class JsonRepository:
    """JSON-backed repository holding videos, analyses and publish records."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> _StorePayload:
        if not self._path.exists():
            return _StorePayload()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StorePayload.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise RepositoryError(f"Cannot read store {self._path}: {exc}") from exc

    def _save(self, payload: _StorePayload) -> None:
        try:
            self._path.write_text(payload.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise RepositoryError(f"Cannot write store {self._path}: {exc}") from exc

    def list_video_ids(self) -> set[str]:
        return {video.video_id for video in self._load().videos}

    def exists(self, video_id: str) -> bool:
        return any(video.video_id == video_id for video in self._load().videos)

    def create_video(self, record: TrendingVideoRecord) -> None:
        payload = self._load()
        if any(video.video_id == record.video_id for video in payload.videos):
            raise RepositoryError(f"Video {record.video_id} already exists")
        payload.videos.append(record)
        self._save(payload)

    def find_videos_missing_analysis(self, limit: int) -> list[TrendingVideoRecord]:
        payload = self._load()
        analyzed = {analysis.video_id for analysis in payload.analyses}
        pending = [video for video in payload.videos if video.video_id not in analyzed]
        pending.sort(key=lambda video: video.discovered_at, reverse=True)
        return pending[: max(limit, 0)]

    def create_analysis(self, record: AnalysisRecord) -> None:
        payload = self._load()
        if not any(video.video_id == record.video_id for video in payload.videos):
            raise RepositoryError(f"Unknown video {record.video_id}")
        payload.analyses.append(record)
        self._save(payload)

    def create_publish_record(self, record: PublishRecord) -> None:
        payload = self._load()
        if not any(analysis.id == record.analysis_id for analysis in payload.analyses):
            raise RepositoryError(f"Unknown analysis {record.analysis_id}")
        payload.publish_records.append(record)
        self._save(payload)

    def stats(self, now: datetime | None = None) -> DashboardStats:
        payload = self._load()
        current = now or datetime.now(tz=UTC)
        since = current - _RECENT_WINDOW
        analyzed = {analysis.video_id for analysis in payload.analyses}
        records = payload.publish_records

        return DashboardStats(
            total_videos=len(payload.videos),
            total_analyses=len(payload.analyses),
            total_publish_records=len(records),
            recent_posts=sum(
                1
                for r in records
                if r.status == PublishStatus.POSTED and r.created_at >= since
            ),
            partial_posts=sum(1 for r in records if r.status == PublishStatus.PARTIAL),
            failed_posts=sum(1 for r in records if r.status == PublishStatus.FAILED),
            pending_videos=sum(
                1 for video in payload.videos if video.video_id not in analyzed
            ),
        )
