"""Structured logging built on structlog.

Every event is rendered by the same processor chain, whether it comes from a
structlog logger or from a stdlib logger (sqlalchemy, uvicorn, celery, httpx).
Correlation fields are kept in structlog's contextvars and merged into each
event:

- request_id: X-Request-ID of the HTTP request, or the one handed to a task
- user_id: local id of the authenticated user
- path / method: request path (no query string) and HTTP method
- task_name / task_id / document_id: Celery task context

Usage:
    from medintake.logging import configure_logging, get_logger

    configure_logging(json_format=settings.log_json, level=settings.log_level)

    logger = get_logger(__name__)
    logger.info("document_created", document_id=str(document.id))
"""

import logging
import sys

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars
from structlog.types import Processor

# Third-party loggers that are too chatty at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "celery.app.trace")


def configure_logging(json_format: bool = True, level: int | str = logging.INFO) -> None:
    """Install the structlog processor chain and route stdlib logging through it.

    Safe to call more than once; the root handler is replaced each time.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_context(request_id: str | None, **fields: str | None) -> None:
    """Bind request correlation fields (path, method, user_id) for this context.

    None values are skipped so later calls can add fields without erasing
    earlier ones.
    """
    bind_contextvars(
        request_id=request_id,
        **{key: value for key, value in fields.items() if value is not None},
    )


def get_request_id() -> str | None:
    return get_contextvars().get("request_id")


def clear_request_context() -> None:
    clear_contextvars()


def configure_task_logging(
    request_id: str | None,
    task_name: str,
    task_id: str | None = None,
    **fields: str | None,
) -> None:
    """Start a fresh logging context for a Celery task run.

    Example:
        @celery_app.task(bind=True, name="analyze_document")
        def analyze_document(self, document_id, owner_id, request_id=None):
            configure_task_logging(request_id, "analyze_document", self.request.id,
                                   document_id=document_id)
    """
    clear_contextvars()
    bind_contextvars(
        request_id=request_id,
        task_name=task_name,
        task_id=task_id,
        **{key: value for key, value in fields.items() if value is not None},
    )


def clear_task_context() -> None:
    clear_contextvars()
