"""Unit tests for tlyt_bot.analysis.requestor - provider calls and validation."""

from __future__ import annotations

import random
from datetime import date
from typing import TYPE_CHECKING, Any

import pytest
from pydantic import SecretStr

from tlyt_bot.analysis.requestor import (
    FALLBACK_TIMESTAMPS,
    AnalysisRequestor,
    extract_json,
    fallback_analysis,
    parse_analysis,
    validate_timestamps,
)
from tlyt_bot.config import GenerationSettings
from tlyt_bot.exceptions import GenerationError

if TYPE_CHECKING:
    from collections.abc import Callable
    from unittest.mock import MagicMock

    from tlyt_bot.models import TrendingVideoRecord


def _requestor(completion: MagicMock, **settings: Any) -> AnalysisRequestor:
    return AnalysisRequestor(
        GenerationSettings(**settings),
        completion=completion,
        today=lambda: date(2026, 10, 19),
        rng=random.Random(0),
    )


# ---------------------------------------------------------------------------
# extract_json
# ---------------------------------------------------------------------------


class TestExtractJson:
    """JSON is recovered from plain, fenced or surrounded responses."""

    def test_plain_object(self) -> None:
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_object(self) -> None:
        text = 'Here you go:\n```json\n{"tldr": "x"}\n```\nThanks'
        assert extract_json(text) == {"tldr": "x"}

    def test_surrounding_text(self) -> None:
        assert extract_json('Sure! {"summary": "s"} Done.') == {"summary": "s"}

    def test_not_json_raises(self) -> None:
        with pytest.raises(GenerationError, match="Could not extract JSON"):
            extract_json("no json here")

    def test_top_level_array_rejected(self) -> None:
        with pytest.raises(GenerationError):
            extract_json("[1, 2, 3]")


# ---------------------------------------------------------------------------
# validate_timestamps / parse_analysis
# ---------------------------------------------------------------------------


class TestValidateTimestamps:
    """Invalid entries are dropped individually; the rest are sorted."""

    def test_drops_out_of_bounds(self) -> None:
        entries = [
            {"seconds": -1, "description": "a"},
            {"seconds": 601, "description": "b"},
            {"seconds": 50, "description": "c"},
        ]
        assert validate_timestamps(entries, 600) == ([50], ["c"])

    def test_bounds_are_inclusive(self) -> None:
        entries = [
            {"seconds": 600, "description": "end"},
            {"seconds": 0, "description": "start"},
        ]
        assert validate_timestamps(entries, 600) == ([0, 600], ["start", "end"])

    def test_drops_wrong_types(self) -> None:
        entries = [
            "not an object",
            {"seconds": "30", "description": "string seconds"},
            {"seconds": True, "description": "bool seconds"},
            {"seconds": 30, "description": 7},
            {"description": "missing seconds"},
            {"seconds": 30, "description": "ok"},
        ]
        assert validate_timestamps(entries, 600) == ([30], ["ok"])

    def test_sort_is_stable_for_equal_seconds(self) -> None:
        entries = [
            {"seconds": 90, "description": "late"},
            {"seconds": 10, "description": "first"},
            {"seconds": 10, "description": "second"},
        ]
        assert validate_timestamps(entries, 600) == (
            [10, 10, 90],
            ["first", "second", "late"],
        )

    def test_fractional_seconds_truncated(self) -> None:
        seconds, _ = validate_timestamps([{"seconds": 12.9, "description": "x"}], 600)
        assert seconds == [12]

    def test_empty(self) -> None:
        assert validate_timestamps([], 600) == ([], [])


class TestParseAnalysis:
    """Summary and tldr are required; timestamps must be a list."""

    def test_valid(self, good_analysis_payload: dict[str, Any]) -> None:
        result = parse_analysis(good_analysis_payload, 600)
        assert result.tldr == "Rockets can land themselves."
        assert result.timestamp_seconds == [30, 300, 590]
        assert result.timestamp_descriptions == [
            "Boost-back burn",
            "Grid fins deploy",
            "Touchdown",
        ]
        assert result.used_fallback is False

    @pytest.mark.parametrize("field", ["summary", "tldr"])
    def test_missing_text_field(
        self, good_analysis_payload: dict[str, Any], field: str
    ) -> None:
        del good_analysis_payload[field]
        with pytest.raises(GenerationError, match=field):
            parse_analysis(good_analysis_payload, 600)

    def test_blank_summary(self, good_analysis_payload: dict[str, Any]) -> None:
        good_analysis_payload["summary"] = "   "
        with pytest.raises(GenerationError):
            parse_analysis(good_analysis_payload, 600)

    def test_timestamps_not_a_list(self, good_analysis_payload: dict[str, Any]) -> None:
        good_analysis_payload["timestamps"] = {"seconds": 1}
        with pytest.raises(GenerationError, match="timestamps"):
            parse_analysis(good_analysis_payload, 600)

    def test_all_timestamps_dropped_is_still_valid(
        self, good_analysis_payload: dict[str, Any]
    ) -> None:
        good_analysis_payload["timestamps"] = [{"seconds": 9999, "description": "x"}]
        result = parse_analysis(good_analysis_payload, 600)
        assert result.timestamp_seconds == []


# ---------------------------------------------------------------------------
# fallback_analysis
# ---------------------------------------------------------------------------


def test_fallback_analysis_fields(make_video: Callable[..., TrendingVideoRecord]) -> None:
    result = fallback_analysis(make_video())
    assert result.tldr == 'Analysis of "How Rockets Land" - a video from Rocket Lab Talks'
    assert result.summary.startswith("This video covers content related to How Rockets Land.")
    assert result.timestamp_seconds == [60, 180, 300]
    assert list(zip(result.timestamp_seconds, result.timestamp_descriptions)) == list(
        FALLBACK_TIMESTAMPS
    )
    assert result.used_fallback is True


# ---------------------------------------------------------------------------
# AnalysisRequestor
# ---------------------------------------------------------------------------


class TestAnalysisRequestor:
    """analyze() calls the provider once and never raises."""

    def test_successful_analysis(
        self,
        make_video: Callable[..., TrendingVideoRecord],
        completion_for: Callable[[Any], MagicMock],
        good_analysis_payload: dict[str, Any],
    ) -> None:
        completion = completion_for(good_analysis_payload)
        result = _requestor(completion).analyze(make_video())

        assert result.used_fallback is False
        assert result.timestamp_seconds == [30, 300, 590]
        completion.assert_called_once()

    def test_request_parameters(
        self,
        make_video: Callable[..., TrendingVideoRecord],
        completion_for: Callable[[Any], MagicMock],
        good_analysis_payload: dict[str, Any],
    ) -> None:
        completion = completion_for(good_analysis_payload)
        _requestor(completion, api_key=SecretStr("g-key")).analyze(make_video())

        kwargs = completion.call_args.kwargs
        assert kwargs["model"] == "gemini/gemini-2.0-flash-001"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.4
        assert kwargs["max_tokens"] == 8192
        assert kwargs["api_key"] == "g-key"
        prompt = kwargs["messages"][0]["content"]
        assert "This video is 600 seconds long." in prompt
        assert prompt.count("(MANDATORY)") == 15

    def test_api_key_omitted_when_unset(
        self,
        make_video: Callable[..., TrendingVideoRecord],
        completion_for: Callable[[Any], MagicMock],
        good_analysis_payload: dict[str, Any],
    ) -> None:
        completion = completion_for(good_analysis_payload)
        _requestor(completion).analyze(make_video())
        assert "api_key" not in completion.call_args.kwargs

    def test_provider_exception_falls_back(
        self,
        make_video: Callable[..., TrendingVideoRecord],
        completion_for: Callable[[Any], MagicMock],
    ) -> None:
        video = make_video(title="Quantum Cats")
        result = _requestor(completion_for(RuntimeError("quota"))).analyze(video)

        assert result.used_fallback is True
        assert "Quantum Cats" in result.tldr
        assert result.timestamp_seconds == [60, 180, 300]

    @pytest.mark.parametrize("reply", ["", "   ", "not json at all", '{"tldr": "only"}'])
    def test_unusable_reply_falls_back(
        self,
        make_video: Callable[..., TrendingVideoRecord],
        completion_for: Callable[[Any], MagicMock],
        reply: str,
    ) -> None:
        result = _requestor(completion_for(reply)).analyze(make_video())
        assert result.used_fallback is True

    def test_fenced_reply_accepted(
        self,
        make_video: Callable[..., TrendingVideoRecord],
        completion_for: Callable[[Any], MagicMock],
    ) -> None:
        reply = (
            "```json\n"
            '{"summary": "s", "tldr": "t", '
            '"timestamps": [{"seconds": 5, "description": "d"}]}\n'
            "```"
        )
        result = _requestor(completion_for(reply)).analyze(make_video())
        assert result.used_fallback is False
        assert result.timestamp_seconds == [5]

    def test_unparseable_duration_bounds_at_300(
        self,
        make_video: Callable[..., TrendingVideoRecord],
        completion_for: Callable[[Any], MagicMock],
    ) -> None:
        reply = {
            "summary": "s",
            "tldr": "t",
            "timestamps": [
                {"seconds": 300, "description": "kept"},
                {"seconds": 301, "description": "dropped"},
            ],
        }
        result = _requestor(completion_for(reply)).analyze(make_video(duration="P1D"))
        assert result.timestamp_seconds == [300]
