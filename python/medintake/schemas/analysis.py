"""Analysis Pydantic schemas.

AnalysisDraft is the payload an analysis engine produces and the access layer
validates before insert; AnalysisOut is the response model. The structured
parts (insights, health card, timeline) are persisted as JSON with the same
camelCase keys they have on the wire.
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from medintake.db.models import (
    AnalysisStatus,
    OverallHealthStatus,
    TimelineEventType,
    VitalStatus,
)
from medintake.schemas.base import ApiModel


class Insights(ApiModel):
    """Key findings, concerns and recommendations, each an ordered list."""

    key_findings: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class Vital(ApiModel):
    """A single vital reading on the health card."""

    name: str
    value: str
    status: VitalStatus
    reference_range: str | None = None


class HealthCard(ApiModel):
    """Structured health summary."""

    overall_status: OverallHealthStatus
    vitals: list[Vital] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)


class TimelineEvent(ApiModel):
    """One dated event extracted from a document."""

    date: str
    event: str
    type: TimelineEventType
    details: str | None = None


class AnalysisDraft(ApiModel):
    """Validated analysis payload, ready to persist.

    extracted_text is written to the document, not the analysis.
    """

    summary: str = Field(min_length=1)
    insights: Insights
    health_card: HealthCard
    timeline: list[TimelineEvent] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list)
    processing_time_seconds: float | None = Field(default=None, ge=0)
    extracted_text: str | None = None


class AnalysisOut(ApiModel):
    """Response schema for an analysis."""

    id: UUID
    document_id: UUID
    summary: str
    insights: Insights
    health_card: HealthCard
    timeline: list[TimelineEvent]
    suggested_questions: list[str]
    status: AnalysisStatus
    error_message: str | None = None
    processing_time_seconds: float | None = None
    created_at: datetime
    updated_at: datetime
