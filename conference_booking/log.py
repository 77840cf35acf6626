"""Centralized logging configuration."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from loguru import logger as loguru_logger

if TYPE_CHECKING:
    from .config import Settings

EVENT = "event"

log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        f"<y>{{extra[{EVENT}]:<22}}</>",
        "<c>{name}:{function}:{line}</>",
        "{message}",
    )
)

logger = loguru_logger.bind(**{EVENT: "-"})


def setup_logging(settings: Settings) -> None:
    """Replace loguru's default handler with the project's console and optional file sinks."""
    loguru_logger.remove()
    loguru_logger.add(sys.stderr, format=log_format, level=settings.log_level)
    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        loguru_logger.add(
            str(settings.log_file),
            format=log_format,
            level=settings.log_level,
            rotation=settings.log_rotation,
            retention=settings.log_retention,
            compression="zip",
            enqueue=True,
        )
