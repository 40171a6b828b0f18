"""Structured logging for the job board API.

Call `init_observability` once, before the FastAPI app is built. Every log
line then carries the service name, level, logger, ISO timestamp and any
request-scoped context bound by `RequestIdMiddleware`.
"""
from __future__ import annotations

import logging

import structlog

from settings import get_settings

__all__ = [
    "init_observability",
]

SERVICE_NAME = "job-board-api"

_configured = False


def _add_service(_, __, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def _setup_logging() -> None:
    settings = get_settings()

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _renderer(settings.log_format.lower()),
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # structlog renders the message; the stdlib handler only writes it out
    root_logger = logging.getLogger()
    if not any(isinstance(h, logging.StreamHandler) for h in root_logger.handlers):
        root_logger.addHandler(logging.StreamHandler())
    root_logger.setLevel(settings.log_level.upper())

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    sql_level = logging.INFO if settings.log_sql else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)


def init_observability() -> None:
    """Configure logging. Only the first call has any effect."""
    global _configured
    if _configured:
        return

    _setup_logging()
    _configured = True

    settings = get_settings()
    structlog.get_logger(__name__).info(
        "Logging configured", log_format=settings.log_format, log_level=settings.log_level
    )
