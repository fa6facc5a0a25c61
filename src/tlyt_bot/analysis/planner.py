"""Coverage-anchor planning for generated timestamps.

Anchors are spread evenly across the video with a small random jitter and
handed to the generative provider as timestamps it must describe. They do
not become the final timestamps themselves.
"""

from __future__ import annotations

import math
import random

DEFAULT_ANCHOR_COUNT = 15

_EDGE_SECONDS = 5
_JITTER_FRACTION = 0.1
_JITTER_CAP_SECONDS = 20


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return math.floor(value + 0.5)


def plan_anchor_timestamps(
    duration: int,
    count: int = DEFAULT_ANCHOR_COUNT,
    rng: random.Random | None = None,
) -> list[int]:
    """Return ``count`` sorted anchor seconds for a video of ``duration`` seconds.

    Each anchor is ``round(i * interval)`` plus a jitter of at most half of
    ``min(interval * 0.1, 20)`` seconds, clamped to ``[5, duration - 5]``.
    For videos shorter than about ten seconds the clamp collapses anchors
    onto the same value; duplicates are kept.
    """
    source = rng or random.Random()
    interval = duration / (count + 1)
    jitter_span = min(interval * _JITTER_FRACTION, _JITTER_CAP_SECONDS)

    anchors: list[int] = []
    for i in range(1, count + 1):
        base = round_half_up(i * interval)
        jitter = round_half_up((source.random() - 0.5) * jitter_span)
        anchors.append(max(_EDGE_SECONDS, min(duration - _EDGE_SECONDS, base + jitter)))

    anchors.sort()
    return anchors
