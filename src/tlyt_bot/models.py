"""Domain records, per-item outcomes and batch reports.

Records are created once and never mutated: ``TrendingVideoRecord`` by
discovery, ``AnalysisRecord`` by the analysis step and ``PublishRecord``
by the publisher. Reports are what the pipeline hands back to its callers.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tlyt_bot.catalog.duration import parse_duration


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PublishStatus(StrEnum):
    """Terminal outcome of one publish attempt."""

    POSTED = "POSTED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class TrendingVideoRecord(BaseModel):
    """A trending video as discovered from the catalog."""

    model_config = ConfigDict(frozen=True)

    video_id: str = Field(min_length=1)
    title: str
    description: str | None = None
    channel_id: str
    channel_title: str
    published_at: datetime
    duration: str = Field(default="PT0S", description="ISO-8601 duration string.")
    tags: list[str] = Field(default_factory=list)
    category_id: str | None = None
    view_count: int | None = None
    like_count: int | None = None
    comment_count: int | None = None
    region: str = "US"
    discovered_at: datetime = Field(default_factory=_utcnow)

    @property
    def duration_seconds(self) -> int:
        """Duration in seconds, 300 when the stored duration is unparseable."""
        return parse_duration(self.duration)


class AnalysisResult(BaseModel):
    """Generated (or fallback) analysis for one video, before persistence."""

    tldr: str
    summary: str
    timestamp_seconds: list[int] = Field(default_factory=list)
    timestamp_descriptions: list[str] = Field(default_factory=list)
    used_fallback: bool = False

    @model_validator(mode="after")
    def _check_timestamps(self) -> AnalysisResult:
        if len(self.timestamp_seconds) != len(self.timestamp_descriptions):
            raise ValueError("timestamp seconds and descriptions must be index-aligned")
        if any(a > b for a, b in zip(self.timestamp_seconds, self.timestamp_seconds[1:])):
            raise ValueError("timestamp seconds must be non-decreasing")
        return self


class AnalysisRecord(BaseModel):
    """Persisted analysis; its existence excludes the video from processing."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    video_id: str
    tldr: str
    summary: str
    timestamp_seconds: list[int] = Field(default_factory=list)
    timestamp_descriptions: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_result(cls, video_id: str, result: AnalysisResult) -> AnalysisRecord:
        return cls(
            video_id=video_id,
            tldr=result.tldr,
            summary=result.summary,
            timestamp_seconds=list(result.timestamp_seconds),
            timestamp_descriptions=list(result.timestamp_descriptions),
        )


class PublishRecord(BaseModel):
    """Outcome of one publish attempt, written exactly once."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    video_id: str
    analysis_id: str
    forum_post_id: str | None = None
    title: str
    content: str
    url: str
    status: PublishStatus
    error_message: str | None = None
    posted_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _check_status(self) -> PublishRecord:
        if self.status == PublishStatus.FAILED:
            if self.forum_post_id is not None:
                raise ValueError("FAILED publish cannot carry a forum post id")
            if not self.error_message:
                raise ValueError("FAILED publish requires an error message")
        elif self.status == PublishStatus.PARTIAL and not self.error_message:
            raise ValueError("PARTIAL publish requires an error message")
        return self


# ---------------------------------------------------------------------------
# Per-item outcomes
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ItemOutcome:
    """Result of one discovery unit: a region fetch or a video save."""

    key: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class VideoOutcome:
    """Result of one video's analyze-and-publish chain."""

    video_id: str
    analyzed: bool = False
    status: PublishStatus | None = None
    error: str | None = None

    @property
    def posted(self) -> bool:
        return self.status in (PublishStatus.POSTED, PublishStatus.PARTIAL)


# ---------------------------------------------------------------------------
# Batch reports
# ---------------------------------------------------------------------------


class DiscoverReport(BaseModel):
    """Summary of one discovery run."""

    discovered: int = 0
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_outcomes(
        cls,
        region_outcomes: list[ItemOutcome],
        save_outcomes: list[ItemOutcome],
    ) -> DiscoverReport:
        errors = [o.error for o in [*region_outcomes, *save_outcomes] if o.error]
        return cls(
            discovered=sum(1 for o in save_outcomes if o.ok),
            errors=errors,
        )


class ProcessReport(BaseModel):
    """Summary of one analyze-and-post run."""

    analyzed: int = 0
    posted: int = 0
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: list[VideoOutcome]) -> ProcessReport:
        return cls(
            analyzed=sum(1 for o in outcomes if o.analyzed),
            posted=sum(1 for o in outcomes if o.posted),
            errors=[o.error for o in outcomes if o.error],
        )


class PipelineFailure(BaseModel):
    """Top-level failure that aborted an operation before it could report."""

    error: str
    details: str
