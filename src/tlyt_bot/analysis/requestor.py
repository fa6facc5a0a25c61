"""Generative video analysis with validation and a deterministic fallback.

One structured-output request is made per video. The response must carry
a non-empty ``summary`` and ``tldr`` and a ``timestamps`` array; invalid
timestamp entries are dropped individually, anything worse is replaced by
the fixed fallback analysis. ``AnalysisRequestor.analyze`` never raises.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

import structlog

from tlyt_bot.analysis.planner import plan_anchor_timestamps
from tlyt_bot.analysis.prompt import build_analysis_prompt
from tlyt_bot.exceptions import GenerationError
from tlyt_bot.models import AnalysisResult

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from tlyt_bot.config import GenerationSettings
    from tlyt_bot.models import TrendingVideoRecord

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

FALLBACK_TIMESTAMPS: tuple[tuple[int, str], ...] = (
    (60, "Introduction and overview"),
    (180, "Main discussion points"),
    (300, "Conclusion and key takeaways"),
)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_JSON_BRACE_RE = re.compile(r"\{.*\}", re.DOTALL)


def extract_json(text: str) -> dict[str, Any]:
    """Extract a JSON object from provider response text.

    Handles cases where JSON is wrapped in markdown code fences or
    surrounded by explanation text.

    Args:
        text: Raw response content.

    Returns:
        Parsed JSON dictionary.

    Raises:
        GenerationError: If no valid JSON object can be extracted.
    """
    text = text.strip()

    try:
        result = json.loads(text)
        if isinstance(result, dict):
            return result
    except json.JSONDecodeError:
        pass

    fence_match = _JSON_FENCE_RE.search(text)
    if fence_match:
        try:
            result = json.loads(fence_match.group(1).strip())
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    brace_match = _JSON_BRACE_RE.search(text)
    if brace_match:
        try:
            result = json.loads(brace_match.group(0))
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    raise GenerationError(f"Could not extract JSON from response: {text[:200]}")


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def validate_timestamps(
    entries: list[Any], duration: int
) -> tuple[list[int], list[str]]:
    """Filter, sort and split provider timestamps into aligned sequences.

    Entries are dropped (and logged) when they are not objects, when
    ``seconds`` is not a number, when ``description`` is not a string, or
    when ``seconds`` falls outside ``[0, duration]``. The sort is stable, so
    entries sharing a second keep their response order. Fractional seconds
    are truncated after the bounds check.
    """
    kept: list[tuple[int | float, str]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("timestamp_dropped", reason="not_an_object", entry=entry)
            continue
        seconds = entry.get("seconds")
        description = entry.get("description")
        if not _is_number(seconds) or not isinstance(description, str):
            logger.warning("timestamp_dropped", reason="wrong_types", entry=entry)
            continue
        if not 0 <= seconds <= duration:
            logger.warning(
                "timestamp_dropped",
                reason="out_of_bounds",
                seconds=seconds,
                duration=duration,
            )
            continue
        kept.append((seconds, description))

    kept.sort(key=lambda item: item[0])
    return [int(s) for s, _ in kept], [d for _, d in kept]


def parse_analysis(data: dict[str, Any], duration: int) -> AnalysisResult:
    """Validate a decoded response and build an ``AnalysisResult``.

    Raises:
        GenerationError: If ``summary``/``tldr`` are missing or empty, or
            ``timestamps`` is not a list.
    """
    summary = data.get("summary")
    tldr = data.get("tldr")
    timestamps = data.get("timestamps")

    if not isinstance(summary, str) or not summary.strip():
        raise GenerationError("Invalid analysis data: missing summary")
    if not isinstance(tldr, str) or not tldr.strip():
        raise GenerationError("Invalid analysis data: missing tldr")
    if not isinstance(timestamps, list):
        raise GenerationError("Invalid analysis data: timestamps is not a list")

    seconds, descriptions = validate_timestamps(timestamps, duration)
    return AnalysisResult(
        tldr=tldr,
        summary=summary,
        timestamp_seconds=seconds,
        timestamp_descriptions=descriptions,
    )


def fallback_analysis(video: TrendingVideoRecord) -> AnalysisResult:
    """Return the fixed placeholder analysis for ``video``."""
    return AnalysisResult(
        tldr=f'Analysis of "{video.title}" - a video from {video.channel_title}',
        summary=(
            f"This video covers content related to {video.title}. The analysis "
            "provides insights into the main topics discussed and key takeaways "
            "for viewers interested in this subject matter."
        ),
        timestamp_seconds=[seconds for seconds, _ in FALLBACK_TIMESTAMPS],
        timestamp_descriptions=[text for _, text in FALLBACK_TIMESTAMPS],
        used_fallback=True,
    )


# ---------------------------------------------------------------------------
# Requestor
# ---------------------------------------------------------------------------


class AnalysisRequestor:
    """Builds the analysis prompt, calls the provider and validates the reply.

    Attributes:
        settings: Generation model and prompt parameters.
    """

    def __init__(
        self,
        settings: GenerationSettings,
        completion: Callable[..., Any] | None = None,
        today: Callable[[], date] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the requestor.

        Args:
            settings: Generation settings (model, limits, anchor count).
            completion: Optional ``litellm.completion``-compatible callable;
                resolved from litellm at call time when omitted.
            today: Optional clock returning today's date for the prompt.
            rng: Optional random source for anchor jitter.
        """
        self.settings = settings
        self._completion = completion
        self._today = today or (lambda: datetime.now(tz=UTC).date())
        self._rng = rng

    def _complete(self, prompt: str) -> str:
        completion = self._completion
        if completion is None:
            import litellm

            completion = litellm.completion

        kwargs: dict[str, Any] = {
            "model": self.settings.model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {"type": "json_object"},
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
            "timeout": self.settings.timeout,
        }
        if self.settings.api_key is not None:
            kwargs["api_key"] = self.settings.api_key.get_secret_value()

        response = completion(**kwargs)
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise GenerationError("Empty response from generative provider")
        return content

    def analyze(self, video: TrendingVideoRecord) -> AnalysisResult:
        """Produce an analysis for ``video``; falls back instead of raising."""
        duration = video.duration_seconds
        try:
            anchors = plan_anchor_timestamps(
                duration, self.settings.anchor_count, rng=self._rng
            )
            prompt = build_analysis_prompt(
                video,
                anchors,
                duration,
                self._today(),
                extra_moments=self.settings.extra_moments,
            )
            data = extract_json(self._complete(prompt))
            result = parse_analysis(data, duration)
        except Exception as exc:
            logger.warning(
                "analysis_fallback",
                video_id=video.video_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return fallback_analysis(video)

        logger.info(
            "analysis_complete",
            video_id=video.video_id,
            duration=duration,
            num_timestamps=len(result.timestamp_seconds),
        )
        return result
