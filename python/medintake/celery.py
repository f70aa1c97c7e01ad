"""Celery application configuration.

Shared by the API (enqueuing) and the worker (executing). Broker and result
backend come from settings; REDIS_URL is the fallback for both.

Usage:
    from medintake.tasks import analyze_document
    analyze_document.apply_async(args=[document_id, owner_id], queue="analysis")
"""

from celery import Celery

from medintake.config import get_settings

settings = get_settings()

celery_app = Celery("medintake")

celery_app.conf.update(
    broker_url=settings.effective_celery_broker_url,
    result_backend=settings.effective_celery_result_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_routes={"analyze_document": {"queue": "analysis"}},
    task_default_queue="default",
    # One analysis per worker slot, acked after it finishes.
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_always_eager=False,
)
