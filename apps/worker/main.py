"""Celery worker entrypoint.

Run with: celery -A apps.worker.main:celery_app worker -Q analysis,default --loglevel=info

Task definitions are in the medintake.tasks package - no autodiscovery.

Logging Convention:
- All task log entries include request_id, task_name, task_id when available
- Tasks accept `request_id: str | None = None` for correlation with the API request

Queue Configuration:
- analysis: document analysis (analysis engine calls)
- default: General background tasks
"""

from celery.signals import worker_process_init

from medintake.celery import celery_app
from medintake.config import get_settings
from medintake.logging import configure_logging, get_logger

# Each import registers the task with the celery_app
from medintake.tasks import analyze_document  # noqa: F401


@worker_process_init.connect
def setup_worker_logging(**kwargs):
    """Configure structlog when a worker process starts."""
    settings = get_settings()
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    logger = get_logger(__name__)
    logger.info("celery_worker_started", queues=["analysis", "default"])


__all__ = ["celery_app"]
