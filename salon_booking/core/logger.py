"""Logging setup with Loguru."""

import contextvars
import logging
import sys
from pathlib import Path
from types import FrameType
from typing import Any, Dict, Optional

from loguru import logger

# Context variable for request correlation ID
correlation_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)

__all__ = ["correlation_id_ctx", "setup_structured_logging", "InterceptHandler"]


def _correlation_patcher(record: Dict[str, Any]) -> None:
    """Inject the current correlation_id into each Loguru record's extra fields."""
    corr_id = correlation_id_ctx.get()
    if corr_id:
        record["extra"]["correlation_id"] = corr_id


class InterceptHandler(logging.Handler):
    """Route stdlib logging records (repositories, asyncpg, uvicorn) into Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the frame that issued the logging call
        frame: Optional[FrameType] = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_structured_logging(
    level: str = "INFO",
    json_format: bool = True,
    logs_dir: Optional[Path] = None,
    diagnose: bool = False,
) -> None:
    """
    Setup Loguru logging with structured output.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Serialize the file sink as JSON lines
        logs_dir: Directory for file sinks; console only when None
        diagnose: Include variable values in tracebacks (development only)
    """
    logger.remove()
    logger.configure(patcher=_correlation_patcher)

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )
    logger.add(sys.stdout, format=console_format, level=level, colorize=True)

    if logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)
        if json_format:
            logger.add(
                logs_dir / "salon_booking.jsonl",
                format="{message}",
                level=level,
                rotation="10 MB",
                retention="30 days",
                compression="zip",
                serialize=True,
            )
        else:
            logger.add(
                logs_dir / "salon_booking.log",
                format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
                level=level,
                rotation="10 MB",
                retention="30 days",
                compression="zip",
            )
        logger.add(
            logs_dir / "errors_{time:YYYY-MM-DD}.log",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} - {message}",
            level="ERROR",
            rotation="10 MB",
            retention="90 days",
            backtrace=True,
            diagnose=diagnose,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logging.root.setLevel(getattr(logging, level))

    logger.info(f"Logging initialized (level={level}, json={json_format})")
