"""HTTP response models for the trigger and dashboard endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


class _RunResponse(BaseModel):
    success: bool = True
    errors: list[str] = Field(default_factory=list)
    duration: int = Field(default=0, ge=0, description="Run time in whole seconds.")
    timestamp: str = Field(default_factory=_now_iso)


class DiscoverResponse(_RunResponse):
    discovered: int = 0


class ProcessResponse(_RunResponse):
    analyzed: int = 0
    posted: int = 0


class FailureResponse(BaseModel):
    success: bool = False
    error: str
    details: str
    timestamp: str = Field(default_factory=_now_iso)
