"""Upload coordinator.

Validates a file, streams it to object storage under the owner's prefix and
records the Document. Also registers blobs uploaded directly by clients and
removes documents together with their blobs.

Key invariants:
- Validation happens before any byte is sent to storage
- The blob is stored before the row is written; if the insert fails the blob
  is deleted (best-effort) so no row ever points at a missing object
- Storage failures surface as StorageError with retryable set for transient
  causes
"""

import threading
from dataclasses import dataclass
from typing import BinaryIO
from uuid import UUID

from sqlalchemy.orm import Session

from medintake.config import get_settings
from medintake.db.models import Document
from medintake.errors import (
    ApiError,
    ApiErrorCode,
    NotFoundError,
    ValidationError,
)
from medintake.logging import get_logger
from medintake.services.documents import create_document, delete_document
from medintake.storage.client import ProgressCallback, StorageClientBase
from medintake.storage.paths import build_storage_path, is_owner_path

logger = get_logger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"application/pdf", "image/jpeg", "image/png", "image/jpg"})
MAX_FILE_NAME_LENGTH = 255


@dataclass(frozen=True)
class UploadResult:
    """Where a stored file ended up and what was stored."""

    storage_path: str
    download_url: str
    size_bytes: int
    content_type: str
    file_name: str


def normalize_content_type(content_type: str | None) -> str:
    """Lowercase the MIME type and drop parameters ("; charset=...")."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def validate_upload(
    file_name: str,
    content_type: str | None,
    size_bytes: int,
    max_bytes: int | None = None,
) -> str:
    """Validate an upload before it is sent anywhere.

    Returns:
        The normalized content type.

    Raises:
        ValidationError: If the name is missing, the file is empty or too
            large, or the type is not allowed.
    """
    if max_bytes is None:
        max_bytes = get_settings().max_upload_bytes

    if not file_name:
        raise ValidationError(ApiErrorCode.E_INVALID_REQUEST, "A file name is required")
    if len(file_name) > MAX_FILE_NAME_LENGTH:
        raise ValidationError(
            ApiErrorCode.E_INVALID_REQUEST,
            f"File name must be at most {MAX_FILE_NAME_LENGTH} characters",
        )

    if size_bytes <= 0:
        raise ValidationError(ApiErrorCode.E_FILE_EMPTY, "File is empty")

    if size_bytes > max_bytes:
        raise ValidationError(
            ApiErrorCode.E_FILE_TOO_LARGE,
            f"File size exceeds {max_bytes // (1024 * 1024)}MB limit",
        )

    normalized = normalize_content_type(content_type)
    if normalized not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(
            ApiErrorCode.E_INVALID_CONTENT_TYPE,
            "Only PDF, JPG, and PNG files are allowed",
        )
    return normalized


def upload_file(
    storage: StorageClientBase,
    owner_id: UUID,
    data: bytes | BinaryIO,
    *,
    file_name: str,
    content_type: str | None,
    size_bytes: int,
    on_progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> UploadResult:
    """Validate and store one file under the owner's prefix.

    Raises:
        ValidationError: If the file fails validation (nothing is uploaded).
        StorageError: If storage fails or the upload is canceled.
    """
    normalized = validate_upload(file_name, content_type, size_bytes)
    storage_path = build_storage_path(owner_id, file_name)

    storage.upload_object(
        storage_path,
        data,
        size=size_bytes,
        content_type=normalized,
        on_progress=on_progress,
        cancel_event=cancel_event,
    )

    return UploadResult(
        storage_path=storage_path,
        download_url=storage.object_url(storage_path),
        size_bytes=size_bytes,
        content_type=normalized,
        file_name=file_name,
    )


def upload_document(
    db: Session,
    storage: StorageClientBase,
    owner_id: UUID,
    data: bytes | BinaryIO,
    *,
    file_name: str,
    content_type: str | None,
    size_bytes: int,
    on_progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> Document:
    """Store a file and create its Document (status=uploaded).

    Raises:
        ValidationError: If the file fails validation.
        StorageError: If storage fails or the upload is canceled.
        ApiError: If the document row cannot be written (blob is removed).
    """
    result = upload_file(
        storage,
        owner_id,
        data,
        file_name=file_name,
        content_type=content_type,
        size_bytes=size_bytes,
        on_progress=on_progress,
        cancel_event=cancel_event,
    )

    try:
        document = create_document(
            db,
            owner_id,
            original_file_name=result.file_name,
            storage_path=result.storage_path,
            storage_url=result.download_url,
            file_size_bytes=result.size_bytes,
            mime_type=result.content_type,
        )
    except ApiError:
        logger.warning("upload_orphan_cleanup", storage_path=result.storage_path)
        storage.delete_object(result.storage_path)
        raise

    logger.info(
        "document_uploaded",
        document_id=str(document.id),
        size_bytes=result.size_bytes,
        content_type=result.content_type,
    )
    return document


def register_uploaded_document(
    db: Session,
    storage: StorageClientBase,
    owner_id: UUID,
    *,
    original_file_name: str,
    storage_path: str,
    storage_url: str | None,
    file_size_bytes: int,
    mime_type: str,
) -> Document:
    """Record a Document for a blob the client uploaded directly to storage.

    Raises:
        ValidationError: If the file fails validation, storage_path is not a
            single object under the owner's prefix, or no object exists there.
        StorageError: If the existence check itself fails.
    """
    normalized = validate_upload(original_file_name, mime_type, file_size_bytes)

    if not is_owner_path(storage_path, owner_id):
        raise ValidationError(
            ApiErrorCode.E_STORAGE_PATH_INVALID,
            "storagePath must be inside the caller's upload folder",
        )
    if storage.head_object(storage_path) is None:
        raise ValidationError(
            ApiErrorCode.E_STORAGE_PATH_INVALID, "No stored file at storagePath"
        )

    return create_document(
        db,
        owner_id,
        original_file_name=original_file_name,
        storage_path=storage_path,
        storage_url=storage_url or storage.object_url(storage_path),
        file_size_bytes=file_size_bytes,
        mime_type=normalized,
    )


def remove_document(
    db: Session, storage: StorageClientBase, document_id: UUID, owner_id: UUID
) -> None:
    """Delete an owned document and, best-effort, its blob.

    Raises:
        NotFoundError: If the document does not exist or is not owned.
    """
    document = delete_document(db, document_id, owner_id)
    if document is None:
        raise NotFoundError(ApiErrorCode.E_DOCUMENT_NOT_FOUND, "Document not found")
    storage.delete_object(document.storage_path)
