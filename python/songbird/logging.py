"""Structured logging for Songbird.

Every log line is a structlog event rendered as JSON (console output for
local development). Request-scoped fields are bound through
structlog.contextvars by the request-id middleware, so a saga step logged
deep inside a service carries the same request_id / user_id / path / method
as the access log entry for that request.

Usage:
    from songbird.logging import get_logger

    logger = get_logger(__name__)
    logger.warning("upload_saga_step_failed", step="upload_image", bucket="images")
"""

import logging
import sys

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    get_contextvars,
    merge_contextvars,
)

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _shared_processors() -> list:
    return [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        json_format: JSON lines when True, human-readable console output otherwise.
        level: Root log level.
    """
    shared = _shared_processors()
    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_context(
    request_id: str | None,
    user_id: str | None = None,
    path: str | None = None,
    method: str | None = None,
) -> None:
    """Bind request-scoped fields for every log event in this context.

    Fields passed as None are left as they are, so the middleware can add
    user_id once the session is known without repeating the rest.
    """
    fields = {"request_id": request_id, "user_id": user_id, "path": path, "method": method}
    bind_contextvars(**{key: value for key, value in fields.items() if value is not None})


def clear_request_context() -> None:
    clear_contextvars()


def get_request_id() -> str | None:
    """The request ID bound to the current context, if any."""
    return get_contextvars().get("request_id")
