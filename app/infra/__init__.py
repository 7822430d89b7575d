"""Infrastructure - logging."""

from app.infra.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_request_context",
    "clear_request_context",
]
