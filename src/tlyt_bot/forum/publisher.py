"""Publish state machine: link post, then analysis comment.

Transitions, each terminal and recorded exactly once::

    submit post fails             -> FAILED   (no post id, error recorded)
    submit ok, comment ok         -> POSTED
    submit ok, comment fails      -> PARTIAL  (post id kept, error recorded)

A submission that succeeds without returning a usable post id leaves
nothing to comment on and is recorded as PARTIAL. No call is retried.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from tlyt_bot.forum.formatter import (
    DEFAULT_SUBREDDIT,
    canonical_video_url,
    format_analysis_comment,
    format_post_title,
)
from tlyt_bot.models import PublishRecord, PublishStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from tlyt_bot.models import AnalysisResult, TrendingVideoRecord

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# Fullname (``t3_abc``) is what the comment endpoint wants; the bare id is
# only a fallback.
POST_ID_FIELDS: tuple[str, ...] = ("name", "id")


class ForumProvider(Protocol):
    def submit_post(
        self,
        subreddit: str,
        title: str,
        text: str | None = None,
        url: str | None = None,
    ) -> dict[str, Any]: ...

    def submit_comment(self, parent_id: str, text: str) -> dict[str, Any]: ...


def first_present(data: Mapping[str, Any], fields: Sequence[str]) -> str | None:
    """Return the first non-empty value among ``fields``, checked in order."""
    for name in fields:
        value = data.get(name)
        if value is None or value == "":
            continue
        return str(value)
    return None


def extract_post_id(response: Mapping[str, Any]) -> str | None:
    """Pull the new post's id from a submit response (``json.data``)."""
    envelope = response.get("json")
    data = envelope.get("data") if isinstance(envelope, Mapping) else None
    if not isinstance(data, Mapping):
        return None
    return first_present(data, POST_ID_FIELDS)


class Publisher:
    """Posts a video link and its analysis comment, yielding a PublishRecord."""

    def __init__(
        self,
        forum: ForumProvider,
        subreddit: str = DEFAULT_SUBREDDIT,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._forum = forum
        self.subreddit = subreddit
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def publish(
        self,
        video: TrendingVideoRecord,
        analysis_id: str,
        analysis: AnalysisResult,
    ) -> PublishRecord:
        url = canonical_video_url(video.video_id)
        title = format_post_title(video.title)
        body = format_analysis_comment(analysis, url, subreddit=self.subreddit)

        try:
            response = self._forum.submit_post(self.subreddit, title, url=url)
        except Exception as exc:
            error = f"Failed to post to Reddit: {exc}"
            logger.error("publish_failed", video_id=video.video_id, error=str(exc))
            return PublishRecord(
                video_id=video.video_id,
                analysis_id=analysis_id,
                title=title,
                content=body,
                url=url,
                status=PublishStatus.FAILED,
                error_message=error,
            )

        posted_at = self._clock()
        post_id = extract_post_id(response)
        comment_error = self._comment(post_id, body)
        status = PublishStatus.POSTED if comment_error is None else PublishStatus.PARTIAL

        logger.info(
            "publish_complete",
            video_id=video.video_id,
            post_id=post_id,
            status=status.value,
        )
        return PublishRecord(
            video_id=video.video_id,
            analysis_id=analysis_id,
            forum_post_id=post_id,
            title=title,
            content=body,
            url=url,
            status=status,
            error_message=comment_error,
            posted_at=posted_at,
        )

    def _comment(self, post_id: str | None, body: str) -> str | None:
        """Attempt the analysis comment; return an error message on failure."""
        if not post_id:
            logger.warning("publish_comment_skipped", reason="no_post_id")
            return "Submission response did not include a post id"
        try:
            self._forum.submit_comment(post_id, body)
        except Exception as exc:
            logger.error("publish_comment_failed", post_id=post_id, error=str(exc))
            return f"Failed to post analysis comment: {exc}"
        return None
