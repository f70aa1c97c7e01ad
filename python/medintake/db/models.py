"""SQLAlchemy ORM models for medintake.

Defines the three tables (users, documents, analyses) using SQLAlchemy 2.x
declarative patterns. Status enums are Python str enums stored as short
strings guarded by CHECK constraints, so the schema stays portable across
PostgreSQL (production) and SQLite (tests).

Ownership chain: User 1--* Document 1--* Analysis, with ON DELETE CASCADE on
both foreign keys. Owner scoping itself is enforced in the access layer
(medintake.auth.permissions), not by the store.
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utcnow() -> datetime:
    """Timezone-aware now, used for client-side timestamp defaults."""
    return datetime.now(UTC)


# =============================================================================
# Enums
# =============================================================================


class DocumentStatus(str, PyEnum):
    """Document processing lifecycle states.

    States:
        uploaded: Blob stored, record created
        processing: Analysis in flight
        completed: Terminal success
        failed: Terminal failure recorded in error_message
    """

    uploaded = "uploaded"
    processing = "processing"
    completed = "completed"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.completed, DocumentStatus.failed)


class AnalysisStatus(str, PyEnum):
    """Analysis lifecycle states."""

    processing = "processing"
    completed = "completed"
    failed = "failed"


class OverallHealthStatus(str, PyEnum):
    """Overall status shown on a health card."""

    good = "good"
    fair = "fair"
    concerning = "concerning"
    critical = "critical"


class VitalStatus(str, PyEnum):
    """Status of a single vital reading."""

    normal = "normal"
    abnormal = "abnormal"
    borderline = "borderline"


class TimelineEventType(str, PyEnum):
    """Kinds of events on a document timeline."""

    test = "test"
    diagnosis = "diagnosis"
    treatment = "treatment"
    medication = "medication"
    other = "other"


def _check_in(column: str, enum: type[PyEnum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum)
    return f"{column} IN ({values})"


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """User account model.

    external_auth_id is the identity provider's subject id (JWT sub claim)
    and the join key from the provider into local storage.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    external_auth_id: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("uix_users_external_auth_id", "external_auth_id", unique=True),)

    # Relationships
    documents: Mapped[list["Document"]] = relationship(
        "Document",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Document(Base):
    """One uploaded file and its processing state."""

    __tablename__ = "documents"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    original_file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    storage_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(50), nullable=False)
    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), default=DocumentStatus.uploaded.value, nullable=False
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(_check_in("status", DocumentStatus), name="ck_documents_status"),
        CheckConstraint("file_size_bytes >= 0", name="ck_documents_file_size_nonneg"),
        Index("ix_documents_owner_id_created_at", "owner_id", "created_at"),
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="documents")
    analyses: Mapped[list["Analysis"]] = relationship(
        "Analysis",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: Analysis.created_at.desc(),
    )


class Analysis(Base):
    """One AI-generated assessment of a Document.

    JSON columns hold the structured payloads:
        insights: {keyFindings: [str], concerns: [str], recommendations: [str]}
        health_card: {overallStatus, vitals: [{name, value, status, referenceRange?}],
                      conditions: [str], medications: [str]}
        timeline: [{date, event, type, details?}]
        suggested_questions: [str]
    Payload shape is validated by medintake.schemas.analysis before insert.
    """

    __tablename__ = "analyses"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    document_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    insights: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    health_card: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    timeline: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    suggested_questions: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), default=AnalysisStatus.completed.value, nullable=False
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    processing_time_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(_check_in("status", AnalysisStatus), name="ck_analyses_status"),
        CheckConstraint(
            "processing_time_seconds IS NULL OR processing_time_seconds >= 0",
            name="ck_analyses_processing_time_nonneg",
        ),
        Index("ix_analyses_document_id_created_at", "document_id", "created_at"),
    )

    # Relationships
    document: Mapped["Document"] = relationship("Document", back_populates="analyses")
