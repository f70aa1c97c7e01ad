"""Document routes.

Routes are transport-only:
- Extract viewer from request.state
- Call exactly one service function
- Return the resource body or raise ApiError

No domain logic or raw DB access in routes.
"""

from collections.abc import Callable
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from medintake.api.deps import get_analysis_enqueuer, get_db, get_storage
from medintake.auth.middleware import Viewer, get_viewer
from medintake.config import get_settings
from medintake.db.models import Document
from medintake.errors import ApiErrorCode, ValidationError
from medintake.schemas import (
    CreateDocumentRequest,
    DocumentListResponse,
    DocumentOut,
    PaginationOut,
)
from medintake.services import analysis_pipeline
from medintake.services import documents as documents_service
from medintake.services import upload as upload_service
from medintake.storage.client import StorageClientBase

router = APIRouter()

# Dashboard list default
DEFAULT_LIST_LIMIT = 20


def _document_body(document: Document) -> dict:
    return {"document": DocumentOut.model_validate(document).to_json()}


async def _read_body(request: Request, max_bytes: int) -> bytes:
    """Read the raw request body, stopping once it exceeds max_bytes."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise ValidationError(
            ApiErrorCode.E_FILE_TOO_LARGE,
            f"File size exceeds {max_bytes // (1024 * 1024)}MB limit",
        )

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            break
    return bytes(body)


@router.get("/documents")
def list_documents(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
) -> dict:
    """List the viewer's documents, newest first, each with its analyses.

    limit/offset are clamped (limit to [0, 100], offset to [0, 2**31 - 1]) and the
    clamped values are echoed in the pagination block.
    """
    page = documents_service.list_documents_by_owner(db, viewer.user_id, limit, offset)
    return DocumentListResponse(
        documents=[DocumentOut.model_validate(d) for d in page.items],
        pagination=PaginationOut(limit=page.limit, offset=page.offset, has_more=page.has_more),
    ).to_json()


@router.post("/documents", status_code=201)
def create_document(
    body: CreateDocumentRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    """Register a file the client already uploaded to storage.

    storagePath must be a single object under documents/{viewer id}/.
    """
    document = upload_service.register_uploaded_document(
        db,
        storage,
        viewer.user_id,
        original_file_name=body.original_file_name,
        storage_path=body.storage_path,
        storage_url=body.storage_url,
        file_size_bytes=body.file_size_bytes,
        mime_type=body.mime_type,
    )
    return _document_body(document)


@router.post("/documents/upload", status_code=201)
async def upload_document(
    request: Request,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
    filename: Annotated[str, Query(min_length=1, max_length=255)],
) -> dict:
    """Upload a file (raw request body) and create its document.

    The Content-Type header is the file's MIME type.
    """
    max_bytes = get_settings().max_upload_bytes
    data = await _read_body(request, max_bytes)

    document = await run_in_threadpool(
        upload_service.upload_document,
        db,
        storage,
        viewer.user_id,
        data,
        file_name=filename,
        content_type=request.headers.get("content-type"),
        size_bytes=len(data),
    )
    return _document_body(document)


@router.get("/documents/{document_id}")
def get_document(
    document_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get one document with its analyses.

    Returns 404 if the document does not exist or is not the viewer's (masks existence).
    """
    document = documents_service.get_document(db, document_id, viewer.user_id)
    return _document_body(document)


@router.delete("/documents/{document_id}", status_code=204)
def delete_document(
    document_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> Response:
    """Delete a document, its analyses and (best-effort) its stored file."""
    upload_service.remove_document(db, storage, document_id, viewer.user_id)
    return Response(status_code=204)


@router.post("/documents/{document_id}/analyze", status_code=202)
def analyze_document(
    document_id: UUID,
    request: Request,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    enqueue: Annotated[Callable, Depends(get_analysis_enqueuer)],
) -> dict:
    """Queue analysis of an uploaded document.

    Returns 409 unless the document is in status=uploaded.
    """
    document = analysis_pipeline.request_document_analysis(
        db,
        document_id,
        viewer.user_id,
        enqueue=enqueue,
        request_id=getattr(request.state, "request_id", None),
    )
    return _document_body(document)
