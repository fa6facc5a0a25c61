"""Prompt construction for video analysis requests."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date, datetime

    from tlyt_bot.models import TrendingVideoRecord

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DESCRIPTION_LIMIT = 500
TAG_LIMIT = 15
ELLIPSIS = "..."

_ANALYSIS_INSTRUCTIONS = """\
ANALYSIS INSTRUCTIONS:
Analyze this video comprehensively using the provided metadata context. Provide a detailed summary and create a concise TL;DR.

Use the video title, channel expertise, tags, and description to understand the subject matter and use appropriate terminology. Consider the publication date relative to today's date for temporal context.

This video is {duration} seconds long.

MANDATORY REQUIREMENT: You MUST include timestamps from BOTH categories below:

1. REQUIRED STRUCTURED TIMESTAMPS: You are REQUIRED to analyze and include ALL of these {anchor_count} specific times in your response. These ensure complete video coverage:
{anchor_lines}

2. ADDITIONAL CONTENT-DRIVEN TIMESTAMPS: After including all required structured timestamps above, you may also add up to {extra_moments} additional significant moments:
- Key transitions or topic changes
- Important points or revelations
- Dramatic or pivotal moments
- Critical information or insights
- Major shifts in tone, content, or direction

CRITICAL INSTRUCTIONS:
- ALL {anchor_count} structured timestamps listed above are MANDATORY - you must describe what happens at each one
- Do not skip any of the required structured timestamps
- Use specific terms and concepts from the video title, tags, and description
- Do not include timestamp values (like "30s", "1:45", etc.) in descriptions
- Descriptions should only describe what happens, not when it happens
- Focus on the content and action, not the timing

Your response must include ALL {anchor_count} mandatory structured timestamps plus any additional significant moments. Ensure all timestamps are between 0 and {duration} seconds and are sorted chronologically."""

_JSON_INSTRUCTION = """\
Respond with a JSON object with this structure:
{
  "summary": "Comprehensive video summary",
  "tldr": "Concise TL;DR summary",
  "timestamps": [
    {
      "seconds": 123,
      "description": "What happens at this timestamp"
    }
  ]
}"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_long_date(value: date | datetime) -> str:
    """Format a date as ``October 19, 2026``."""
    return f"{value:%B} {value.day}, {value.year}"


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def build_metadata_context(video: TrendingVideoRecord, today: date) -> str:
    """Render the metadata block that precedes the analysis instructions.

    Optional fields (description, tags, category, counters) only appear
    when present.
    """
    lines = [
        "VIDEO CONTEXT & METADATA:",
        f"- Today's Date: {format_long_date(today)}",
        f'- Video Title: "{video.title}"',
        f"- Channel: {video.channel_title}",
        f"- Published: {format_long_date(video.published_at)}",
    ]
    if video.description:
        lines.append(f"- Description: {_truncate(video.description, DESCRIPTION_LIMIT)}")
    if video.tags:
        tags = ", ".join(video.tags[:TAG_LIMIT])
        if len(video.tags) > TAG_LIMIT:
            tags += ELLIPSIS
        lines.append(f"- Tags: {tags}")
    if video.category_id:
        lines.append(f"- Category: {video.category_id}")
    if video.view_count:
        lines.append(f"- Views: {video.view_count:,}")
    if video.like_count:
        lines.append(f"- Likes: {video.like_count:,}")
    return "\n".join(lines)


def build_analysis_prompt(
    video: TrendingVideoRecord,
    anchors: Sequence[int],
    duration: int,
    today: date,
    extra_moments: int = 5,
) -> str:
    """Combine metadata context, anchor instructions and the JSON contract."""
    instructions = _ANALYSIS_INSTRUCTIONS.format(
        duration=duration,
        anchor_count=len(anchors),
        anchor_lines="\n".join(f"- {t} seconds (MANDATORY)" for t in anchors),
        extra_moments=extra_moments,
    )
    return "\n\n".join(
        [build_metadata_context(video, today), instructions, _JSON_INSTRUCTION]
    )
