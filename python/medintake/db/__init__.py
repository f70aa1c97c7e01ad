"""Database module for medintake.

Provides engine creation, the Database lifecycle handle, session management,
error classification and ORM models.
"""

from medintake.db.engine import create_db_engine
from medintake.db.errors import classify_db_error, db_errors
from medintake.db.models import (
    Analysis,
    AnalysisStatus,
    Base,
    Document,
    DocumentStatus,
    OverallHealthStatus,
    TimelineEventType,
    User,
    VitalStatus,
)
from medintake.db.session import Database, get_db

__all__ = [
    # Engine and session
    "create_db_engine",
    "Database",
    "get_db",
    # Errors
    "classify_db_error",
    "db_errors",
    # Base
    "Base",
    # Enums
    "DocumentStatus",
    "AnalysisStatus",
    "OverallHealthStatus",
    "VitalStatus",
    "TimelineEventType",
    # Models
    "User",
    "Document",
    "Analysis",
]
