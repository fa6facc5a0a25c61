"""Shared pytest fixtures for the tlyt-bot test suite."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

from tlyt_bot.catalog.models import CatalogItem
from tlyt_bot.models import TrendingVideoRecord
from tlyt_bot.storage import JsonRepository

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


# ---------------------------------------------------------------------------
# Catalog payloads
# ---------------------------------------------------------------------------


def catalog_payload(video_id: str, **overrides: Any) -> dict[str, Any]:
    """Return one ``videos`` item shaped like the YouTube Data API."""
    payload: dict[str, Any] = {
        "id": video_id,
        "snippet": {
            "title": f"Video {video_id}",
            "description": "A trending video.",
            "channelId": f"UC{video_id}",
            "channelTitle": "Some Channel",
            "publishedAt": "2026-10-18T12:00:00Z",
            "tags": ["news", "tech"],
            "categoryId": "28",
        },
        "contentDetails": {"duration": "PT10M"},
        "statistics": {
            "viewCount": "123456789012",
            "likeCount": "4200",
            "commentCount": "17",
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def item_payload() -> Callable[..., dict[str, Any]]:
    return catalog_payload


@pytest.fixture()
def make_item() -> Callable[..., CatalogItem]:
    """Factory for validated ``CatalogItem`` objects."""

    def _make(video_id: str, region: str | None = None, **overrides: Any) -> CatalogItem:
        item = CatalogItem.model_validate(catalog_payload(video_id, **overrides))
        return item.model_copy(update={"region": region})

    return _make


class FakeCatalog:
    """In-memory catalog: region -> items, or an exception to raise."""

    def __init__(self, responses: dict[str, list[CatalogItem] | Exception]) -> None:
        self.responses = responses
        self.calls: list[tuple[str, int]] = []

    def most_popular(self, region: str, max_results: int = 50) -> list[CatalogItem]:
        self.calls.append((region, max_results))
        response = self.responses.get(region, [])
        if isinstance(response, Exception):
            raise response
        return list(response)


@pytest.fixture()
def fake_catalog() -> type[FakeCatalog]:
    return FakeCatalog


# ---------------------------------------------------------------------------
# Records and storage
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_video() -> Callable[..., TrendingVideoRecord]:
    """Factory for ``TrendingVideoRecord`` with sensible defaults."""

    def _make(video_id: str = "abc123", **overrides: Any) -> TrendingVideoRecord:
        fields: dict[str, Any] = {
            "video_id": video_id,
            "title": "How Rockets Land",
            "description": "Engineers explain propulsive landing.",
            "channel_id": "UCrocket",
            "channel_title": "Rocket Lab Talks",
            "published_at": datetime(2026, 10, 1, 15, 30, tzinfo=UTC),
            "duration": "PT10M",
            "tags": ["rockets", "space"],
            "category_id": "28",
            "view_count": 1_234_567,
            "like_count": 89_000,
            "comment_count": 1_200,
            "region": "US",
        }
        fields.update(overrides)
        return TrendingVideoRecord(**fields)

    return _make


@pytest.fixture()
def repository(tmp_path: Path) -> JsonRepository:
    return JsonRepository(tmp_path / "store.json")


# ---------------------------------------------------------------------------
# Forum fake
# ---------------------------------------------------------------------------


class FakeForum:
    """Records forum calls; raises the configured errors instead of posting."""

    def __init__(
        self,
        post_error: Exception | None = None,
        comment_error: Exception | None = None,
        post_response: dict[str, Any] | None = None,
    ) -> None:
        self.post_error = post_error
        self.comment_error = comment_error
        self.post_response = post_response or {
            "json": {"errors": [], "data": {"id": "p1", "name": "t3_p1"}}
        }
        self.posts: list[dict[str, Any]] = []
        self.comments: list[tuple[str, str]] = []

    def submit_post(
        self,
        subreddit: str,
        title: str,
        text: str | None = None,
        url: str | None = None,
    ) -> dict[str, Any]:
        self.posts.append({"subreddit": subreddit, "title": title, "text": text, "url": url})
        if self.post_error is not None:
            raise self.post_error
        return self.post_response

    def submit_comment(self, parent_id: str, text: str) -> dict[str, Any]:
        self.comments.append((parent_id, text))
        if self.comment_error is not None:
            raise self.comment_error
        return {"json": {"errors": [], "data": {"things": []}}}


@pytest.fixture()
def fake_forum() -> type[FakeForum]:
    return FakeForum


# ---------------------------------------------------------------------------
# Mock generative provider
# ---------------------------------------------------------------------------


def completion_response(content: str | None) -> MagicMock:
    """Build a litellm-style response whose first choice carries ``content``."""
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture()
def completion_for() -> Callable[[Any], MagicMock]:
    """Return a factory of mock ``completion`` callables.

    Dicts are JSON-encoded; strings are returned verbatim; exceptions are
    raised from the call.
    """

    def _factory(reply: Any) -> MagicMock:
        if isinstance(reply, Exception):
            return MagicMock(side_effect=reply)
        content = json.dumps(reply) if isinstance(reply, dict) else reply
        return MagicMock(return_value=completion_response(content))

    return _factory


@pytest.fixture()
def good_analysis_payload() -> dict[str, Any]:
    return {
        "summary": "Engineers walk through how boosters land upright.",
        "tldr": "Rockets can land themselves.",
        "timestamps": [
            {"seconds": 300, "description": "Grid fins deploy"},
            {"seconds": 30, "description": "Boost-back burn"},
            {"seconds": 590, "description": "Touchdown"},
        ],
    }
