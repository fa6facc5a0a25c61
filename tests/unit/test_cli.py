"""Unit tests for tlyt_bot.cli - version, commands and error handling."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
import structlog
from typer.testing import CliRunner

from tlyt_bot import __version__
from tlyt_bot.cli import app
from tlyt_bot.models import DiscoverReport, PipelineFailure, ProcessReport

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Empty working dir, store under tmp_path, logging restored afterwards."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("TLYT_BOT_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("TLYT_BOT_STORAGE__PATH", str(tmp_path / "store.json"))
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture()
def pipeline(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    fake = MagicMock()
    fake.run_discover.return_value = DiscoverReport(discovered=3)
    fake.run_process.return_value = ProcessReport(analyzed=2, posted=1, errors=["oops"])
    monkeypatch.setattr("tlyt_bot.cli.build_pipeline", lambda settings: fake)
    return fake


# ---- Version and help -------------------------------------------------------


class TestVersionAndHelp:
    """Version flag and help text output."""

    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_short_version_flag(self) -> None:
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("discover", "process", "stats", "serve"):
            assert command in result.output


# ---- Commands -----------------------------------------------------------------


class TestDiscoverCommand:
    """discover runs the pipeline and prints the count."""

    def test_success(self, pipeline: MagicMock) -> None:
        result = runner.invoke(app, ["discover"])
        assert result.exit_code == 0
        assert "Discovered 3 new videos" in result.output
        pipeline.close.assert_called_once()

    def test_failure_exits_nonzero(self, pipeline: MagicMock) -> None:
        pipeline.run_discover.return_value = PipelineFailure(
            error="Discovery failed", details="db down"
        )
        result = runner.invoke(app, ["discover"])
        assert result.exit_code == 1
        assert "db down" in result.output

    def test_build_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def boom(settings: object) -> None:
            raise RuntimeError("no key")

        monkeypatch.setattr("tlyt_bot.cli.build_pipeline", boom)
        result = runner.invoke(app, ["discover"])
        assert result.exit_code == 1
        assert "Cannot start pipeline" in result.output


class TestProcessCommand:
    """process forwards the batch size and prints errors."""

    def test_success(self, pipeline: MagicMock) -> None:
        result = runner.invoke(app, ["process", "--batch-size", "2"])
        assert result.exit_code == 0
        assert "Analyzed 2, posted 1" in result.output
        assert "oops" in result.output
        pipeline.run_process.assert_called_once_with(2)

    def test_default_batch_size(self, pipeline: MagicMock) -> None:
        runner.invoke(app, ["process"])
        pipeline.run_process.assert_called_once_with(None)

    def test_zero_batch_size_rejected(self, pipeline: MagicMock) -> None:
        result = runner.invoke(app, ["process", "-n", "0"])
        assert result.exit_code == 2
        pipeline.run_process.assert_not_called()


class TestErrorRendering:
    """Error text with square brackets is printed literally, not as markup."""

    def test_bracketed_field_list_kept(self, pipeline: MagicMock) -> None:
        pipeline.run_process.return_value = ProcessReport(
            errors=["Bad date [type=x, input_value='bad']"]
        )
        result = runner.invoke(app, ["process"])
        assert result.exit_code == 0
        assert "[type=x, input_value='bad']" in result.output

    def test_closing_tag_shape_does_not_crash(self, pipeline: MagicMock) -> None:
        pipeline.run_discover.return_value = DiscoverReport(
            discovered=1, errors=["Region US failed: bad path [/videos]"]
        )
        result = runner.invoke(app, ["discover"])
        assert result.exit_code == 0
        assert "Discovered 1 new videos" in result.output
        assert "bad path [/videos]" in result.output

    def test_failure_panel_keeps_brackets(self, pipeline: MagicMock) -> None:
        pipeline.run_discover.return_value = PipelineFailure(
            error="Discovery failed [/x]", details="store [/data] unreadable"
        )
        result = runner.invoke(app, ["discover"])
        assert result.exit_code == 1
        assert "store [/data] unreadable" in result.output

    def test_build_failure_keeps_brackets(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def boom(settings: object) -> None:
            raise RuntimeError("missing [bold]key[/bold]")

        monkeypatch.setattr("tlyt_bot.cli.build_pipeline", boom)
        result = runner.invoke(app, ["discover"])
        assert result.exit_code == 1
        assert "missing [bold]key[/bold]" in result.output


class TestConfigHandling:
    """Invalid configuration is reported without a traceback."""

    def test_invalid_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TLYT_BOT_PIPELINE__BATCH_SIZE", "0")
        result = runner.invoke(app, ["stats"])
        assert result.exit_code == 1
        assert "Configuration Error" in result.output

    def test_config_file_option(self, tmp_path: Path, pipeline: MagicMock) -> None:
        config = tmp_path / "bot.yaml"
        config.write_text("logging:\n  level: WARNING\n", encoding="utf-8")
        result = runner.invoke(app, ["--config", str(config), "discover"])
        assert result.exit_code == 0


def test_stats_command() -> None:
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Videos" in result.output
    assert "Awaiting analysis" in result.output


def test_serve_command(monkeypatch: pytest.MonkeyPatch) -> None:
    run_server = MagicMock()
    monkeypatch.setattr("tlyt_bot.api.server.run_server", run_server)
    result = runner.invoke(app, ["serve"])
    assert result.exit_code == 0
    run_server.assert_called_once()
