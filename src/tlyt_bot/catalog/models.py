"""Wire models for the YouTube Data API ``videos`` resource.

Optional fields are spelled out per field so that a missing description,
tag list or counter is an explicit ``None`` rather than a loose absence.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Snippet(_WireModel):
    title: str
    description: str | None = None
    channel_id: str = Field(alias="channelId")
    channel_title: str = Field(alias="channelTitle")
    published_at: str = Field(alias="publishedAt")
    tags: list[str] | None = None
    category_id: str | None = Field(default=None, alias="categoryId")


class ContentDetails(_WireModel):
    duration: str | None = None


class Statistics(_WireModel):
    view_count: str | None = Field(default=None, alias="viewCount")
    like_count: str | None = Field(default=None, alias="likeCount")
    comment_count: str | None = Field(default=None, alias="commentCount")


class CatalogItem(_WireModel):
    """One ``mostPopular`` item, tagged with the region it was fetched from."""

    id: str
    snippet: Snippet
    content_details: ContentDetails | None = Field(default=None, alias="contentDetails")
    statistics: Statistics | None = None
    region: str | None = None
