"""Uvicorn entry point for the trigger and dashboard API."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uvicorn

from tlyt_bot.api.app import create_app

if TYPE_CHECKING:
    from tlyt_bot.config import Settings


def run_server(settings: Settings) -> None:
    """Serve ``create_app(settings)`` on the configured host and port.

    Blocks until uvicorn shuts down.
    """
    uvicorn.run(
        create_app(settings),
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.logging.level.lower(),
    )
