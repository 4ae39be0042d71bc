"""
Structured logging setup for the video moderation worker.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def bind_job_context(**fields: Any) -> None:
    """Attach fields (video_id, attempt, ...) to every log line of the current task."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_job_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_moderation_outcome(
    video_id: str,
    status: str,
    frames_checked: int,
    duration_ms: float,
    reasons: list[str] | None = None,
):
    """Log the terminal state of a moderation job with consistent fields."""
    logger = get_logger("moderation")

    log_data = {
        "video_id": video_id,
        "status": status,
        "frames_checked": frames_checked,
        "duration_ms": duration_ms,
        "log_type": "moderation_completed",
    }

    if reasons:
        log_data["reasons"] = reasons

    if status == "pending":
        logger.warning("Moderation inconclusive, left for manual review", **log_data)
    else:
        logger.info("Moderation completed", **log_data)
