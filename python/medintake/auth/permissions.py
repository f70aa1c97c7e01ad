"""Ownership predicates for owner-scoped queries.

These predicates are the single source of truth for tenant scoping. Every
repository read/write embeds one of them directly in its statement; there is
no fetch-then-check path anywhere in the access layer.

All helpers:
- Return SQL expressions or statements, never HTTP errors
- Must not leak existence: "not found" and "not owned" are indistinguishable

Ownership chain:
- Document is owned iff documents.owner_id = viewer
- Analysis is owned iff its document (joined on analyses.document_id) is owned
"""

from uuid import UUID

from sqlalchemy import ColumnElement, Select, select

from medintake.db.models import Analysis, Document


def document_owned_by(owner_id: UUID) -> ColumnElement[bool]:
    """WHERE clause restricting documents to the owner."""
    return Document.owner_id == owner_id


def owned_document_ids(owner_id: UUID) -> Select:
    """Subquery of document ids owned by owner_id.

    Used where a join is not available, e.g. UPDATE ... WHERE document_id IN (...).
    """
    return select(Document.id).where(document_owned_by(owner_id))


def select_owned_documents(owner_id: UUID) -> Select:
    """SELECT documents owned by owner_id."""
    return select(Document).where(document_owned_by(owner_id))


def select_owned_analyses(owner_id: UUID) -> Select:
    """SELECT analyses whose document is owned by owner_id (inner join)."""
    return (
        select(Analysis)
        .join(Document, Analysis.document_id == Document.id)
        .where(document_owned_by(owner_id))
    )
