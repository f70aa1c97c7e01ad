"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from medintake.schemas.analysis import (
    AnalysisDraft,
    AnalysisOut,
    HealthCard,
    Insights,
    TimelineEvent,
    Vital,
)
from medintake.schemas.base import ApiModel
from medintake.schemas.document import (
    AnalysisListResponse,
    CreateDocumentRequest,
    DocumentListResponse,
    DocumentOut,
    PaginationOut,
    UserOut,
)

__all__ = [
    "ApiModel",
    # Analysis
    "AnalysisDraft",
    "AnalysisOut",
    "HealthCard",
    "Insights",
    "TimelineEvent",
    "Vital",
    # Documents
    "AnalysisListResponse",
    "CreateDocumentRequest",
    "DocumentListResponse",
    "DocumentOut",
    "PaginationOut",
    "UserOut",
]
