"""Structured logging configuration using structlog.

JSON output outside development, colored console output in development.
Request-scoped tenant and session ids are carried in structlog contextvars,
so every event logged while a session request is handled names its tenant.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from app import __version__
from app.config import settings

SERVICE_NAME = "category-assignment"

# Keys bound per request; cleared again when the request ends
REQUEST_CONTEXT_KEYS = ("tenant_id", "session_id", "request_path")


def add_service_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp each event with the service name, version and environment."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def setup_logging() -> None:
    """Configure structlog for the application.

    Sets up:
    - JSON formatting for staging/production
    - Console formatting for development
    - Integration with standard logging
    """
    # JSON only when requested and not running locally
    use_json = settings.log_json and settings.environment != "dev"

    # Common processors for all environments
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        # Production: one JSON object per line, service stamped for aggregation
        processors: list[Processor] = [
            *shared_processors,
            add_service_context,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # Development: colored console output
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route standard library logging through the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.getLevelName(settings.log_level),
    )

    # Reduce noise from third-party libraries; backend calls are logged by our clients
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def bind_request_context(
    tenant_id: str | None = None,
    session_id: str | None = None,
    request_path: str | None = None,
) -> None:
    """Bind tenant/session ids for the current request.

    Empty values are skipped so a request without a tenant header does not
    log `tenant_id=""`.
    """
    context = {
        "tenant_id": tenant_id,
        "session_id": session_id,
        "request_path": request_path,
    }
    structlog.contextvars.bind_contextvars(**{k: v for k, v in context.items() if v})


def clear_request_context() -> None:
    structlog.contextvars.unbind_contextvars(*REQUEST_CONTEXT_KEYS)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Logger name (usually __name__)
        **initial_context: Initial context to bind to the logger

    Returns:
        Bound structlog logger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
