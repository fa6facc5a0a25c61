"""Rendering of analyses into forum post titles and comment bodies."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tlyt_bot.models import AnalysisResult

TITLE_PREFIX = "📺 "
DEFAULT_SUBREDDIT = "tlyt"


def canonical_video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def format_timestamp(seconds: int) -> str:
    """Render seconds as ``M:SS``: minutes unpadded, seconds zero-padded."""
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def format_post_title(video_title: str) -> str:
    return f"{TITLE_PREFIX}{video_title}"


def format_analysis_comment(
    analysis: AnalysisResult,
    video_url: str,
    subreddit: str = DEFAULT_SUBREDDIT,
) -> str:
    """Render the TL;DR, linked timestamp list, summary and footer.

    Each timestamp links to ``video_url + "&t=<seconds>s"``.
    """
    lines = [f"**🎯 TL;DR:** {analysis.tldr}", "", "**📋 Timestamps:**", ""]
    for seconds, description in zip(
        analysis.timestamp_seconds, analysis.timestamp_descriptions, strict=True
    ):
        link = f"{video_url}&t={seconds}s"
        lines.append(f"• [{format_timestamp(seconds)}]({link}) - {description}")

    body = "\n".join(lines) + "\n"
    body += f"\n**📖 Full Summary:**\n\n{analysis.summary}\n\n"
    body += f"---\n*🤖 Automated analysis for r/{subreddit} community*"
    return body
