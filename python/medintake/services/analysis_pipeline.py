"""Document analysis pipeline.

Steps:
1. Load the document under its owner (NotFoundError if not visible)
2. Skip documents already in a terminal state (completed / failed)
3. Mark processing
4. Run the engine, timing it
5. Persist the analysis and mark completed, or mark failed with the
   engine's message

run_document_analysis runs inside the Celery worker; the API only calls
request_document_analysis, which checks state and enqueues.
"""

import time
from collections.abc import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from medintake.config import get_settings
from medintake.db.models import Analysis, Document, DocumentStatus
from medintake.errors import ApiErrorCode, ConflictError, UnavailableError
from medintake.logging import get_logger
from medintake.services.analyses import create_analysis
from medintake.services.analysis_engine import AnalysisEngine, AnalysisEngineError
from medintake.services.documents import get_document, update_document_status

logger = get_logger(__name__)


def run_document_analysis(
    db: Session,
    engine: AnalysisEngine,
    document_id: UUID,
    owner_id: UUID,
) -> Analysis | None:
    """Analyze one document end to end.

    Returns:
        The new Analysis, or None if the document was skipped or the engine failed.

    Raises:
        NotFoundError: If the document does not exist or is not owned by owner_id.
    """
    document = get_document(db, document_id, owner_id)

    if DocumentStatus(document.status).is_terminal:
        logger.info("analysis_skipped", document_id=str(document_id), status=document.status)
        return None

    update_document_status(db, document_id, owner_id, DocumentStatus.processing)

    started = time.perf_counter()
    try:
        draft = engine.analyze(document)
    except AnalysisEngineError as e:
        update_document_status(
            db, document_id, owner_id, DocumentStatus.failed, error_message=e.message
        )
        logger.warning("analysis_engine_failed", document_id=str(document_id), error=e.message)
        return None
    elapsed = round(time.perf_counter() - started, 3)

    analysis = create_analysis(
        db,
        document_id,
        summary=draft.summary,
        insights=draft.insights,
        health_card=draft.health_card,
        timeline=draft.timeline,
        suggested_questions=draft.suggested_questions,
        processing_time_seconds=elapsed,
    )
    update_document_status(
        db,
        document_id,
        owner_id,
        DocumentStatus.completed,
        extracted_text=draft.extracted_text,
    )

    logger.info(
        "analysis_completed",
        document_id=str(document_id),
        analysis_id=str(analysis.id),
        processing_time_seconds=elapsed,
    )
    return analysis


def enqueue_analysis(document_id: UUID, owner_id: UUID, request_id: str | None = None) -> None:
    """Send the analyze_document task to the analysis queue."""
    from medintake.tasks import analyze_document

    analyze_document.apply_async(
        args=[str(document_id), str(owner_id)],
        kwargs={"request_id": request_id},
        queue="analysis",
    )


def request_document_analysis(
    db: Session,
    document_id: UUID,
    owner_id: UUID,
    enqueue: Callable[[UUID, UUID, str | None], None] = enqueue_analysis,
    request_id: str | None = None,
) -> Document:
    """Queue analysis of an uploaded document.

    Only documents in status=uploaded can be queued; the worker moves them on.

    Raises:
        NotFoundError: If the document does not exist or is not owned.
        ConflictError: If the document is not in status=uploaded.
        UnavailableError: If no analysis engine is configured.
    """
    document = get_document(db, document_id, owner_id)

    if document.status != DocumentStatus.uploaded.value:
        raise ConflictError(
            ApiErrorCode.E_DOCUMENT_STATE_CONFLICT,
            f"Document is {document.status}; only uploaded documents can be analyzed",
        )
    if not get_settings().analysis_engine:
        raise UnavailableError(ApiErrorCode.E_UNAVAILABLE, "Analysis engine is not configured")

    enqueue(document_id, owner_id, request_id)
    logger.info("analysis_enqueued", document_id=str(document_id))
    return document
