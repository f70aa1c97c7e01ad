"""Document, user and pagination Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from medintake.db.models import DocumentStatus
from medintake.schemas.analysis import AnalysisOut
from medintake.schemas.base import ApiModel


class UserOut(ApiModel):
    """Response schema for the authenticated user."""

    id: UUID
    external_auth_id: str
    email: str
    display_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime


class DocumentOut(ApiModel):
    """Response schema for a document, with its analyses (newest first)."""

    id: UUID
    owner_id: UUID
    original_file_name: str
    storage_path: str
    storage_url: str | None = None
    file_size_bytes: int
    mime_type: str
    extracted_text: str | None = None
    status: DocumentStatus
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
    analyses: list[AnalysisOut] = Field(default_factory=list)


class PaginationOut(ApiModel):
    """Offset/limit pagination block (values echo the clamped request)."""

    limit: int
    offset: int
    has_more: bool


class DocumentListResponse(ApiModel):
    """Response schema for GET /api/documents."""

    documents: list[DocumentOut]
    pagination: PaginationOut


class AnalysisListResponse(ApiModel):
    """Response schema for GET /api/analyses."""

    analyses: list[AnalysisOut]
    pagination: PaginationOut


class CreateDocumentRequest(ApiModel):
    """Request schema for POST /api/documents.

    Registers a blob the client already uploaded to object storage.
    """

    original_file_name: str = Field(min_length=1, max_length=255)
    storage_path: str = Field(min_length=1, max_length=500)
    storage_url: str | None = Field(default=None, max_length=500)
    file_size_bytes: int = Field(ge=0)
    mime_type: str = Field(min_length=1, max_length=50)
