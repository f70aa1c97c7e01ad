"""Celery task for document analysis.

This task:
1. Builds its own Database from settings (workers don't use FastAPI DI)
2. Resolves the configured analysis engine
3. Runs the analysis pipeline under the document's owner

- Task is idempotent: documents already completed or failed are skipped
- max_retries=0 (re-analysis is a new request)
- Unexpected errors mark the document failed and re-raise
"""

from uuid import UUID

from medintake.celery import celery_app
from medintake.config import get_settings
from medintake.db.models import DocumentStatus
from medintake.db.session import Database
from medintake.errors import NotFoundError
from medintake.logging import clear_task_context, configure_task_logging, get_logger
from medintake.services.analysis_engine import AnalysisEngine, load_analysis_engine
from medintake.services.analysis_pipeline import run_document_analysis
from medintake.services.documents import get_document, update_document_status

logger = get_logger(__name__)


@celery_app.task(bind=True, max_retries=0, name="analyze_document")
def analyze_document(
    self,
    document_id: str,
    owner_id: str,
    request_id: str | None = None,
) -> dict:
    """Analyze a document asynchronously.

    Args:
        document_id: UUID of the document to analyze.
        owner_id: UUID of the document's owner.
        request_id: Optional request ID for log correlation.

    Returns:
        Dict with result status.
    """
    configure_task_logging(
        request_id, "analyze_document", self.request.id, document_id=document_id
    )
    settings = get_settings()
    database = Database.from_settings(settings)
    try:
        engine = load_analysis_engine(settings.analysis_engine)
        return execute_analysis(database, engine, UUID(document_id), UUID(owner_id))
    finally:
        database.dispose()
        clear_task_context()


def execute_analysis(
    database: Database,
    engine: AnalysisEngine,
    document_id: UUID,
    owner_id: UUID,
) -> dict:
    """Run the pipeline in a fresh session and summarize the outcome."""
    logger.info("analyze_document_started", document_id=str(document_id))

    with database.session_scope() as db:
        try:
            analysis = run_document_analysis(db, engine, document_id, owner_id)
        except NotFoundError:
            logger.info("analyze_document_skipped", document_id=str(document_id))
            return {"status": "skipped", "reason": "document_not_found"}
        except Exception as e:
            logger.error("analyze_document_failed", document_id=str(document_id), error=str(e))
            db.rollback()
            update_document_status(
                db,
                document_id,
                owner_id,
                DocumentStatus.failed,
                error_message="Unexpected error during analysis",
            )
            raise

        if analysis is None:
            document = get_document(db, document_id, owner_id)
            return {"status": "not_analyzed", "document_status": document.status}

        logger.info(
            "analyze_document_completed",
            document_id=str(document_id),
            analysis_id=str(analysis.id),
        )
        return {"status": "completed", "analysis_id": str(analysis.id)}
