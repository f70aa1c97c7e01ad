"""Document service layer.

Owner-scoped CRUD over documents. Key invariants:
- Every read/update/delete embeds the owner predicate in the statement
  (medintake.auth.permissions); there is no fetch-then-check path
- Missing and not-owned documents are indistinguishable (NotFoundError / 0 rows)
- New documents start in status=uploaded
- Status updates against a document the caller does not own affect zero
  rows and raise nothing; callers inspect the returned row count
"""

from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from medintake.auth.permissions import document_owned_by, select_owned_documents
from medintake.db.errors import db_errors
from medintake.db.models import Document, DocumentStatus
from medintake.errors import ApiErrorCode, NotFoundError, ValidationError
from medintake.logging import get_logger
from medintake.services.pagination import Page, fetch_page

logger = get_logger(__name__)


def _coerce_status(status: DocumentStatus | str) -> DocumentStatus:
    try:
        return DocumentStatus(status)
    except ValueError as e:
        raise ValidationError(
            ApiErrorCode.E_INVALID_REQUEST, f"Invalid document status '{status}'"
        ) from e


def create_document(
    db: Session,
    owner_id: UUID,
    *,
    original_file_name: str,
    storage_path: str,
    storage_url: str | None = None,
    file_size_bytes: int,
    mime_type: str,
) -> Document:
    """Create a document record for a stored blob, in status=uploaded.

    Raises:
        ValidationError: If a required field is missing, the size is negative,
            or owner_id does not reference an existing user (no row written).
    """
    if not original_file_name or not storage_path or not mime_type:
        raise ValidationError(
            ApiErrorCode.E_INVALID_REQUEST,
            "original_file_name, storage_path and mime_type are required",
        )
    if file_size_bytes < 0:
        raise ValidationError(ApiErrorCode.E_INVALID_REQUEST, "file_size_bytes must be >= 0")

    document = Document(
        owner_id=owner_id,
        original_file_name=original_file_name,
        storage_path=storage_path,
        storage_url=storage_url or None,
        file_size_bytes=file_size_bytes,
        mime_type=mime_type,
        status=DocumentStatus.uploaded.value,
    )

    owner_missing = ValidationError(ApiErrorCode.E_OWNER_NOT_FOUND, "Owner does not exist")
    with db_errors(db, "create_document", foreign_key_error=owner_missing):
        db.add(document)
        db.commit()

    logger.info("document_created", document_id=str(document.id), owner_id=str(owner_id))
    return document


def list_documents_by_owner(
    db: Session,
    owner_id: UUID,
    limit: int | None = None,
    offset: int | None = None,
) -> Page[Document]:
    """List the owner's documents, newest first, with analyses eagerly loaded.

    limit/offset are clamped (see medintake.services.pagination).
    """
    stmt = (
        select_owned_documents(owner_id)
        .options(selectinload(Document.analyses))
        .order_by(Document.created_at.desc(), Document.id.desc())
    )
    with db_errors(db, "list_documents_by_owner"):
        return fetch_page(db, stmt, limit, offset)


def get_document(db: Session, document_id: UUID, owner_id: UUID) -> Document:
    """Fetch one document with the owner predicate joined into the query.

    Raises:
        NotFoundError: If the document does not exist or is not owned by owner_id.
    """
    stmt = (
        select_owned_documents(owner_id)
        .where(Document.id == document_id)
        .options(selectinload(Document.analyses))
    )
    with db_errors(db, "get_document"):
        document = db.execute(stmt).scalar_one_or_none()

    if document is None:
        raise NotFoundError(ApiErrorCode.E_DOCUMENT_NOT_FOUND, "Document not found")
    return document


def update_document_status(
    db: Session,
    document_id: UUID,
    owner_id: UUID,
    status: DocumentStatus | str,
    error_message: str | None = None,
    extracted_text: str | None = None,
) -> int:
    """Conditionally update a document's status.

    error_message is stored only for status=failed and cleared otherwise;
    extracted_text is only written when provided.

    Returns:
        Number of rows affected: 1 if updated, 0 if missing or not owned.
    """
    status = _coerce_status(status)

    values: dict = {
        "status": status.value,
        "error_message": (error_message or None) if status == DocumentStatus.failed else None,
    }
    if extracted_text:
        values["extracted_text"] = extracted_text

    stmt = (
        update(Document)
        .where(Document.id == document_id, document_owned_by(owner_id))
        .values(**values)
    )
    with db_errors(db, "update_document_status"):
        result = db.execute(stmt)
        db.commit()

    logger.info(
        "document_status_updated",
        document_id=str(document_id),
        status=status.value,
        rows=result.rowcount,
    )
    return result.rowcount


def delete_document(db: Session, document_id: UUID, owner_id: UUID) -> Document | None:
    """Delete an owned document; its analyses are removed by cascade.

    Returns:
        The deleted document (so the caller can remove the blob), or None if
        it does not exist or is not owned.
    """
    stmt = select_owned_documents(owner_id).where(Document.id == document_id)
    with db_errors(db, "delete_document"):
        document = db.execute(stmt).scalar_one_or_none()
        if document is None:
            return None
        db.delete(document)
        db.commit()

    logger.info("document_deleted", document_id=str(document_id))
    return document
