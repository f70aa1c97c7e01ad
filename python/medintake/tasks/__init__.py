"""Celery tasks for medintake.

Tasks are explicitly imported here to register them with Celery.
No autodiscovery - all tasks must be imported in this module.

Usage in API (enqueue):
    from medintake.tasks import analyze_document
    analyze_document.apply_async(
        args=[document_id, owner_id],
        kwargs={"request_id": request_id},
        queue="analysis",
    )
"""

from medintake.tasks.analyze_document import analyze_document

__all__ = ["analyze_document"]
