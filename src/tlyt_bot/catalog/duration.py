"""ISO-8601 video duration parsing."""

from __future__ import annotations

import re

FALLBACK_DURATION_SECONDS = 300
ZERO_DURATION = "PT0S"

_DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


def parse_duration(value: str) -> int:
    """Convert a ``PT#H#M#S`` duration into whole seconds.

    Strings that do not match (day components, empty or garbled values)
    return ``FALLBACK_DURATION_SECONDS`` instead of raising; timestamp
    bounds downstream depend on that exact value.
    """
    match = _DURATION_RE.match(value or "")
    if not match:
        return FALLBACK_DURATION_SECONDS

    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: int) -> str:
    """Encode whole seconds as a ``PT#H#M#S`` duration string."""
    if seconds < 0:
        raise ValueError(f"duration cannot be negative: {seconds}")
    if seconds == 0:
        return ZERO_DURATION

    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = ["PT"]
    if hours:
        parts.append(f"{hours}H")
    if minutes:
        parts.append(f"{minutes}M")
    if secs:
        parts.append(f"{secs}S")
    return "".join(parts)
