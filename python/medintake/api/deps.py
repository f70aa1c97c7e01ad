"""FastAPI dependencies for route handlers.

Common dependencies like database sessions, storage and the analysis queue.
"""

from collections.abc import Callable
from uuid import UUID

from fastapi import Request

from medintake.db.session import Database, get_database, get_db
from medintake.services.analysis_pipeline import enqueue_analysis
from medintake.storage.client import StorageClientBase

__all__ = ["Database", "get_analysis_enqueuer", "get_database", "get_db", "get_storage"]


def get_storage(request: Request) -> StorageClientBase:
    """Get the shared storage client from app state."""
    return request.app.state.storage


def get_analysis_enqueuer(request: Request) -> Callable[[UUID, UUID, str | None], None]:
    """Get the function that queues document analysis (overridable in app state)."""
    return getattr(request.app.state, "enqueue_analysis", enqueue_analysis)
