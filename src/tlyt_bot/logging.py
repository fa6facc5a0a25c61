"""structlog configuration and per-unit logging context.

Every discover/process invocation gets a run id bound to all of its log
entries. Inside a run, ``unit_logging_context`` tags entries with the
region or video currently being worked on, so one failing unit can be
traced without reading the whole batch.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

# ---------------------------------------------------------------------------
# Run ID
# ---------------------------------------------------------------------------


def generate_run_id() -> str:
    """Return a fresh UUID4 string identifying one pipeline invocation."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# structlog configuration
# ---------------------------------------------------------------------------


_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Loggers that echo request URLs (and therefore the catalog API key) at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore")


def _resolve_level(level: str) -> int:
    name = level.upper()
    if name not in _VALID_LEVELS:
        msg = f"Invalid log level: {level!r}. Must be one of {sorted(_VALID_LEVELS)}"
        raise ValueError(msg)
    return getattr(logging, name)


def _build_handlers(numeric_level: int, log_file: str | Path | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(str(log_file), encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(numeric_level)
    return handlers


def configure_logging(
    level: str = "INFO",
    fmt: str = "console",
    log_file: str | Path | None = None,
    run_id: str | None = None,
) -> None:
    """Route structlog through stdlib logging with a console or JSON renderer.

    Safe to call more than once: root handlers are replaced, not appended.

    Args:
        level: Log level name, case-insensitive.
        fmt: ``"console"`` for human-readable output or ``"json"`` for one
            JSON object per line.
        log_file: Optional file receiving the same entries as stderr.
        run_id: Optional run ID bound to every subsequent entry.

    Raises:
        ValueError: If ``level`` is not a recognized log level.
    """
    numeric_level = _resolve_level(level)

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    for handler in _build_handlers(numeric_level, log_file):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    if run_id:
        structlog.contextvars.bind_contextvars(run_id=run_id)


# ---------------------------------------------------------------------------
# Unit-of-work logging context manager
# ---------------------------------------------------------------------------


@contextmanager
def unit_logging_context(
    unit: str,
    key: str,
    **extra: Any,
) -> Iterator[structlog.stdlib.BoundLogger]:
    """Tag log entries with the unit of work in progress.

    Emits ``unit_start``/``unit_end`` around the block and ``unit_error``
    (with traceback) when an exception escapes it. The exception is always
    re-raised; callers decide whether it becomes a batch error.

    Args:
        unit: Kind of work: ``"region"`` or ``"video"``.
        key: Region code or video id.
        **extra: Additional key-value pairs to bind for the duration.

    Yields:
        A structlog logger named after ``unit``.

    Example::

        with unit_logging_context("video", video.video_id) as log:
            log.info("analysis_saved", analysis_id=record.id)
    """
    structlog.contextvars.bind_contextvars(unit=unit, unit_key=key, **extra)

    log: structlog.stdlib.BoundLogger = structlog.get_logger(unit)
    log.info("unit_start", unit=unit, unit_key=key)

    try:
        yield log
    except Exception:
        log.exception("unit_error", unit=unit, unit_key=key)
        raise
    finally:
        log.info("unit_end", unit=unit, unit_key=key)
        structlog.contextvars.unbind_contextvars("unit", "unit_key", *extra.keys())
