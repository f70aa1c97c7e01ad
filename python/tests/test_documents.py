"""Tests for the document service.

Tests cover:
- Creation defaults and validation (including dangling owners)
- Owner-scoped listing, newest first, with analyses loaded
- Owner-scoped get / status update / delete (not-owned == missing)
"""

from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy import select

from medintake.db.models import Analysis, Document, DocumentStatus
from medintake.errors import ApiErrorCode, NotFoundError, ValidationError
from medintake.services.documents import (
    create_document,
    delete_document,
    get_document,
    list_documents_by_owner,
    update_document_status,
)
from tests.factories import (
    create_documents_newest_last,
    create_test_analysis,
    create_test_document,
)


class TestCreateDocument:
    def test_new_document_is_uploaded(self, db_session, user):
        document = create_document(
            db_session,
            user.id,
            original_file_name="report.pdf",
            storage_path=f"documents/{user.id}/1_report.pdf",
            file_size_bytes=2_000_000,
            mime_type="application/pdf",
        )

        assert document.id is not None
        assert document.status == DocumentStatus.uploaded.value
        assert document.owner_id == user.id
        assert document.extracted_text is None
        assert document.error_message is None
        assert document.created_at is not None

    def test_unknown_owner_rejected_without_row(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            create_document(
                db_session,
                uuid4(),
                original_file_name="report.pdf",
                storage_path="documents/x/1_report.pdf",
                file_size_bytes=10,
                mime_type="application/pdf",
            )

        assert exc_info.value.code == ApiErrorCode.E_OWNER_NOT_FOUND
        assert db_session.execute(select(Document)).scalars().all() == []

    def test_missing_fields_rejected(self, db_session, user):
        with pytest.raises(ValidationError):
            create_document(
                db_session,
                user.id,
                original_file_name="",
                storage_path="documents/x/1_report.pdf",
                file_size_bytes=10,
                mime_type="application/pdf",
            )

    def test_negative_size_rejected(self, db_session, user):
        with pytest.raises(ValidationError):
            create_document(
                db_session,
                user.id,
                original_file_name="report.pdf",
                storage_path="documents/x/1_report.pdf",
                file_size_bytes=-1,
                mime_type="application/pdf",
            )


class TestListDocuments:
    def test_newest_first(self, db_session, user):
        documents = create_documents_newest_last(db_session, user, 3)

        page = list_documents_by_owner(db_session, user.id)

        assert [d.id for d in page.items] == [d.id for d in reversed(documents)]

    def test_only_owner_documents(self, db_session, user, other_user):
        mine = create_test_document(db_session, user)
        create_test_document(db_session, other_user)

        page = list_documents_by_owner(db_session, user.id)

        assert [d.id for d in page.items] == [mine.id]

    def test_analyses_loaded_newest_first(self, db_session, user):
        document = create_test_document(db_session, user)
        older = create_test_analysis(db_session, document, created_at=datetime(2026, 1, 1))
        newer = create_test_analysis(db_session, document, created_at=datetime(2026, 2, 1))
        db_session.expire_all()

        page = list_documents_by_owner(db_session, user.id)

        assert [a.id for a in page.items[0].analyses] == [newer.id, older.id]

    def test_clamped_window(self, db_session, user):
        create_documents_newest_last(db_session, user, 3)

        page = list_documents_by_owner(db_session, user.id, limit=500, offset=-4)

        assert page.limit == 100
        assert page.offset == 0
        assert len(page.items) == 3
        assert page.has_more is False


class TestGetDocument:
    def test_get_own_document(self, db_session, user):
        document = create_test_document(db_session, user)

        assert get_document(db_session, document.id, user.id).id == document.id

    def test_not_owned_is_not_found(self, db_session, user, other_user):
        document = create_test_document(db_session, user)

        with pytest.raises(NotFoundError) as exc_info:
            get_document(db_session, document.id, other_user.id)

        assert exc_info.value.code == ApiErrorCode.E_DOCUMENT_NOT_FOUND

    def test_missing_is_not_found(self, db_session, user):
        with pytest.raises(NotFoundError):
            get_document(db_session, uuid4(), user.id)


class TestUpdateDocumentStatus:
    def test_failed_records_error_message(self, db_session, user):
        document = create_test_document(db_session, user)

        rows = update_document_status(
            db_session, document.id, user.id, DocumentStatus.failed, error_message="unreadable"
        )

        assert rows == 1
        db_session.expire_all()
        reloaded = get_document(db_session, document.id, user.id)
        assert reloaded.status == "failed"
        assert reloaded.error_message == "unreadable"

    def test_non_failed_status_clears_error_message(self, db_session, user):
        document = create_test_document(db_session, user)
        update_document_status(db_session, document.id, user.id, "failed", error_message="x")

        update_document_status(
            db_session, document.id, user.id, "completed", error_message="ignored"
        )

        db_session.expire_all()
        reloaded = get_document(db_session, document.id, user.id)
        assert reloaded.status == "completed"
        assert reloaded.error_message is None

    def test_extracted_text_written_when_given(self, db_session, user):
        document = create_test_document(db_session, user)

        update_document_status(
            db_session, document.id, user.id, "completed", extracted_text="LDL 3.6 mmol/L"
        )

        db_session.expire_all()
        assert get_document(db_session, document.id, user.id).extracted_text == "LDL 3.6 mmol/L"

    def test_not_owned_updates_nothing(self, db_session, user, other_user):
        document = create_test_document(db_session, user)

        rows = update_document_status(db_session, document.id, other_user.id, "processing")

        assert rows == 0
        db_session.expire_all()
        assert get_document(db_session, document.id, user.id).status == "uploaded"

    def test_invalid_status_rejected(self, db_session, user):
        document = create_test_document(db_session, user)

        with pytest.raises(ValidationError):
            update_document_status(db_session, document.id, user.id, "archived")


class TestDeleteDocument:
    def test_delete_removes_document_and_analyses(self, db_session, user):
        document = create_test_document(db_session, user)
        create_test_analysis(db_session, document)

        deleted = delete_document(db_session, document.id, user.id)

        assert deleted is not None
        assert deleted.storage_path == document.storage_path
        assert db_session.execute(select(Document)).scalars().all() == []
        assert db_session.execute(select(Analysis)).scalars().all() == []

    def test_not_owned_returns_none(self, db_session, user, other_user):
        document = create_test_document(db_session, user)

        assert delete_document(db_session, document.id, other_user.id) is None
        assert get_document(db_session, document.id, user.id).id == document.id
