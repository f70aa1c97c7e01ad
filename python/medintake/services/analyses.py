"""Analysis service layer.

Analyses are owned transitively through their document. Reads join to
documents and filter on the owner; updates restrict by the owned-documents
subquery. create_analysis trusts document_id: callers (the analysis pipeline)
have already resolved the document under its owner.
"""

from typing import Any
from uuid import UUID

import pydantic
from sqlalchemy import update
from sqlalchemy.orm import Session

from medintake.auth.permissions import owned_document_ids, select_owned_analyses
from medintake.db.errors import db_errors
from medintake.db.models import Analysis, AnalysisStatus
from medintake.errors import ApiErrorCode, NotFoundError, ValidationError
from medintake.logging import get_logger
from medintake.schemas.analysis import AnalysisDraft
from medintake.services.pagination import Page, fetch_page

logger = get_logger(__name__)


def _validate_draft(**fields: Any) -> AnalysisDraft:
    try:
        return AnalysisDraft.model_validate(fields)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(
            ApiErrorCode.E_INVALID_REQUEST,
            f"Invalid analysis payload at {location}: {first['msg']}",
        ) from e


def create_analysis(
    db: Session,
    document_id: UUID,
    *,
    summary: str,
    insights: Any,
    health_card: Any,
    timeline: Any,
    suggested_questions: list[str],
    processing_time_seconds: float | None = None,
) -> Analysis:
    """Insert a completed analysis for document_id.

    Structured fields may be schema instances or plain dicts (camelCase or
    snake_case keys); they are validated and stored with camelCase keys.

    Raises:
        ValidationError: If the payload is malformed or the document does not exist.
    """
    draft = _validate_draft(
        summary=summary,
        insights=insights,
        health_card=health_card,
        timeline=timeline,
        suggested_questions=suggested_questions,
        processing_time_seconds=processing_time_seconds,
    )
    payload = draft.model_dump(mode="json", by_alias=True, exclude_none=True)

    analysis = Analysis(
        document_id=document_id,
        summary=draft.summary,
        insights=payload["insights"],
        health_card=payload["healthCard"],
        timeline=payload["timeline"],
        suggested_questions=payload["suggestedQuestions"],
        processing_time_seconds=draft.processing_time_seconds,
        status=AnalysisStatus.completed.value,
    )

    document_missing = ValidationError(ApiErrorCode.E_INVALID_REQUEST, "Document does not exist")
    with db_errors(db, "create_analysis", foreign_key_error=document_missing):
        db.add(analysis)
        db.commit()

    logger.info("analysis_created", analysis_id=str(analysis.id), document_id=str(document_id))
    return analysis


def get_analysis(db: Session, analysis_id: UUID, owner_id: UUID) -> Analysis:
    """Fetch one analysis whose document is owned by owner_id.

    Raises:
        NotFoundError: If the analysis does not exist or is not owned.
    """
    stmt = select_owned_analyses(owner_id).where(Analysis.id == analysis_id)
    with db_errors(db, "get_analysis"):
        analysis = db.execute(stmt).scalar_one_or_none()
    if analysis is None:
        raise NotFoundError(ApiErrorCode.E_ANALYSIS_NOT_FOUND, "Analysis not found")
    return analysis


def page_analyses_by_owner(
    db: Session,
    owner_id: UUID,
    limit: int | None = None,
    offset: int | None = None,
) -> Page[Analysis]:
    """One page of the owner's analyses, newest first."""
    stmt = select_owned_analyses(owner_id).order_by(
        Analysis.created_at.desc(), Analysis.id.desc()
    )
    with db_errors(db, "list_analyses_by_owner"):
        return fetch_page(db, stmt, limit, offset)


def list_analyses_by_owner(
    db: Session,
    owner_id: UUID,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Analysis]:
    return page_analyses_by_owner(db, owner_id, limit, offset).items


def update_analysis_status(
    db: Session,
    analysis_id: UUID,
    owner_id: UUID,
    status: AnalysisStatus | str,
    error_message: str | None = None,
) -> int:
    """Update an analysis status if its document is owned by owner_id.

    Returns:
        Number of rows affected; 0 (no error) when missing or not owned.
    """
    try:
        status = AnalysisStatus(status)
    except ValueError as e:
        raise ValidationError(
            ApiErrorCode.E_INVALID_REQUEST, f"Invalid analysis status '{status}'"
        ) from e

    stmt = (
        update(Analysis)
        .where(
            Analysis.id == analysis_id,
            Analysis.document_id.in_(owned_document_ids(owner_id)),
        )
        .values(
            status=status.value,
            error_message=(error_message or None) if status == AnalysisStatus.failed else None,
        )
        .execution_options(synchronize_session="fetch")
    )
    with db_errors(db, "update_analysis_status"):
        result = db.execute(stmt)
        db.commit()

    logger.info(
        "analysis_status_updated",
        analysis_id=str(analysis_id),
        status=status.value,
        rows=result.rowcount,
    )
    return result.rowcount
