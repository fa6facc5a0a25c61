"""FastAPI application exposing the pipeline triggers and dashboard stats."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, TypeVar

import structlog
from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tlyt_bot import __version__
from tlyt_bot.api.auth import CronAuthError, verify_cron_secret
from tlyt_bot.api.models import DiscoverResponse, FailureResponse, ProcessResponse
from tlyt_bot.config import Settings
from tlyt_bot.dashboard import DashboardStats, collect_stats
from tlyt_bot.logging import generate_run_id
from tlyt_bot.models import PipelineFailure
from tlyt_bot.pipeline import build_pipeline
from tlyt_bot.storage import JsonRepository

if TYPE_CHECKING:
    from collections.abc import Callable

    from tlyt_bot.pipeline import Pipeline
    from tlyt_bot.storage import VideoRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

T = TypeVar("T")


def _failure_response(failure: PipelineFailure) -> JSONResponse:
    body = FailureResponse(error=failure.error, details=failure.details)
    return JSONResponse(status_code=500, content=body.model_dump())


def create_app(
    settings: Settings | None = None,
    pipeline_factory: Callable[[], Pipeline] | None = None,
    repository: VideoRepository | None = None,
) -> FastAPI:
    """Create and configure the FastAPI server app.

    Args:
        settings: Application settings; loaded from the environment if omitted.
        pipeline_factory: Builds a pipeline per trigger request. Defaults to
            ``build_pipeline(settings)``.
        repository: Repository read by the dashboard. Defaults to the JSON
            store configured in ``settings.storage``.
    """
    app_settings = settings or Settings.load()
    make_pipeline = pipeline_factory or (lambda: build_pipeline(app_settings))
    stats_repository = repository or JsonRepository(app_settings.storage.path)
    secret = app_settings.api.cron_secret

    app = FastAPI(title="tlyt-bot API", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.api.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.state.settings = app_settings

    def require_cron_secret(authorization: str | None) -> None:
        try:
            verify_cron_secret(
                authorization, secret.get_secret_value() if secret else None
            )
        except CronAuthError as exc:
            raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc

    def run_with_pipeline(
        operation: Callable[[Pipeline], T | PipelineFailure], error: str
    ) -> tuple[T | PipelineFailure, int]:
        started = time.monotonic()
        try:
            pipeline = make_pipeline()
        except Exception as exc:
            logger.exception("pipeline_setup_failed", error=str(exc))
            return PipelineFailure(error=error, details=str(exc)), 0
        structlog.contextvars.bind_contextvars(run_id=generate_run_id())
        try:
            result = operation(pipeline)
        finally:
            pipeline.close()
            structlog.contextvars.unbind_contextvars("run_id")
        return result, round(time.monotonic() - started)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route(
        "/api/cron/discover",
        methods=["GET", "POST"],
        response_model=DiscoverResponse,
        responses={500: {"model": FailureResponse}},
    )
    def trigger_discover(
        authorization: str | None = Header(default=None),
    ) -> DiscoverResponse | JSONResponse:
        require_cron_secret(authorization)
        result, duration = run_with_pipeline(
            lambda pipeline: pipeline.run_discover(), "Discovery failed"
        )
        if isinstance(result, PipelineFailure):
            return _failure_response(result)
        return DiscoverResponse(
            discovered=result.discovered,
            errors=result.errors,
            duration=duration,
        )

    @app.api_route(
        "/api/cron/process",
        methods=["GET", "POST"],
        response_model=ProcessResponse,
        responses={500: {"model": FailureResponse}},
    )
    def trigger_process(
        batch_size: int | None = None,
        authorization: str | None = Header(default=None),
    ) -> ProcessResponse | JSONResponse:
        require_cron_secret(authorization)
        if batch_size is not None and batch_size < 1:
            raise HTTPException(status_code=422, detail="batch_size must be positive")
        result, duration = run_with_pipeline(
            lambda pipeline: pipeline.run_process(batch_size), "Processing failed"
        )
        if isinstance(result, PipelineFailure):
            return _failure_response(result)
        return ProcessResponse(
            analyzed=result.analyzed,
            posted=result.posted,
            errors=result.errors,
            duration=duration,
        )

    @app.get("/api/dashboard", response_model=DashboardStats)
    def dashboard() -> DashboardStats:
        return collect_stats(stats_repository)

    return app
