"""structlog setup shared by the API, services and live channel."""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.types import Processor

from campusknot.config import settings

# Third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiohttp.access", "multipart")


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging() -> None:
    """
    Send stdlib and structlog output to stdout as one stream.

    Key/value events render for humans in development and as JSON lines
    everywhere else.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=level, stream=sys.stdout)
    if level != logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    renderer: Processor
    if settings.ENVIRONMENT.lower() == "development":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*_shared_processors(), renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Module logger, optionally pre-bound with context such as ``user_id``."""
    return structlog.get_logger(name).bind(**context)


def log_error(
    logger: structlog.stdlib.BoundLogger,
    error: Exception,
    message: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log an exception with its type, text and traceback.

    ``details`` of a CampusKnot error are attached as ``error_details``.
    """
    context: Dict[str, Any] = {
        **(extra or {}),
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    details = getattr(error, "details", None)
    if details is not None:
        context["error_details"] = details
    logger.error(message or "An error occurred", exc_info=error, **context)
