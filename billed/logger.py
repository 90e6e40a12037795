from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from functools import lru_cache
from pathlib import Path
from typing import Any

from loguru import logger as loguru_logger

from .settings import Settings, load_settings

_REQUEST_ID: ContextVar[str] = ContextVar("billed_request_id", default="-")
_CONFIGURED = False

# Extras every record carries, "-" when unknown.
_SCOPE_KEYS = ("request_id", "principal", "bill_id")

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "rid=<yellow>{extra[request_id]}</yellow> "
    "user=<cyan>{extra[principal]}</cyan> "
    "bill=<magenta>{extra[bill_id]}</magenta> | "
    "{message}"
)

_STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "starlette", "asyncio")


def current_request_id() -> str:
    return str(_REQUEST_ID.get() or "").strip() or "-"


@contextmanager
def request_scope(request_id: str) -> Iterator[str]:
    """Make ``request_id`` the id stamped on every record logged inside the block."""
    value = str(request_id or "").strip() or "-"
    token = _REQUEST_ID.set(value)
    try:
        yield value
    finally:
        _REQUEST_ID.reset(token)


def _fill_scope(record: dict[str, Any]) -> None:
    extra = record["extra"]
    for key in _SCOPE_KEYS:
        extra[key] = str(extra.get(key) or "-").strip() or "-"
    if extra["request_id"] == "-":
        extra["request_id"] = current_request_id()


class _ToLoguru(logging.Handler):
    """Forward stdlib records (uvicorn, starlette) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        loguru_logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _add_file_sink(settings: Settings) -> None:
    path = Path(str(settings.log_path))
    path.parent.mkdir(parents=True, exist_ok=True)
    loguru_logger.add(
        str(path),
        level=settings.log_level,
        serialize=True,
        enqueue=True,
        backtrace=True,
        diagnose=False,
        rotation=f"{settings.log_rotation_mb} MB",
        retention=f"{settings.log_retention_days} days",
        compression="gz",
    )


def _route_stdlib(level: str) -> None:
    handler = _ToLoguru()
    logging.basicConfig(handlers=[handler], level=level, force=True)
    for name in _STDLIB_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.propagate = False
        std_logger.setLevel(level)


def setup_logging(settings: Settings | None = None) -> None:
    """Configure loguru sinks once per process; later calls are no-ops."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    settings = settings or load_settings()

    loguru_logger.remove()
    loguru_logger.configure(patcher=_fill_scope)
    loguru_logger.add(
        sys.stdout,
        level=settings.log_level,
        format=_CONSOLE_FORMAT,
        colorize=not settings.log_json,
        serialize=settings.log_json,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )
    if settings.log_path:
        _add_file_sink(settings)
    _route_stdlib(settings.log_level)

    _CONFIGURED = True


@lru_cache(maxsize=1)
def get_logger():
    setup_logging()
    return loguru_logger.bind(**{key: "-" for key in _SCOPE_KEYS})
