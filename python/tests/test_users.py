"""Tests for the user service: find-or-create on sign-in, lookups, deletion."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from medintake.db.models import Analysis, Document, User
from medintake.errors import ApiErrorCode, NotFoundError, ValidationError
from medintake.services.users import delete_user, find_or_create_user, get_user
from tests.factories import create_test_analysis, create_test_document


class TestFindOrCreateUser:
    def test_creates_on_first_sign_in(self, db_session):
        user = find_or_create_user(
            db_session,
            "auth|abc",
            email="a@example.com",
            display_name="Ada",
            avatar_url="https://img.test/a.png",
        )

        assert user.id is not None
        assert user.external_auth_id == "auth|abc"
        assert user.email == "a@example.com"
        assert user.display_name == "Ada"
        assert user.avatar_url == "https://img.test/a.png"

    def test_second_sign_in_returns_same_row_with_fresh_profile(self, db_session):
        first = find_or_create_user(db_session, "auth|abc", email="old@example.com")
        second = find_or_create_user(
            db_session, "auth|abc", email="new@example.com", display_name="New Name"
        )

        assert second.id == first.id
        assert second.email == "new@example.com"
        assert second.display_name == "New Name"
        count = db_session.execute(select(func.count()).select_from(User)).scalar()
        assert count == 1

    def test_blank_display_name_stored_as_null(self, db_session):
        user = find_or_create_user(db_session, "auth|abc", email="a@example.com", display_name="")

        assert user.display_name is None

    def test_sees_row_created_by_another_session(self, database, db_session):
        with database.session_scope() as other:
            created = find_or_create_user(other, "auth|shared", email="s@example.com")

        found = find_or_create_user(db_session, "auth|shared", email="s@example.com")

        assert found.id == created.id

    @pytest.mark.parametrize(("external_id", "email"), [("", "a@example.com"), ("auth|x", "")])
    def test_required_fields(self, db_session, external_id, email):
        with pytest.raises(ValidationError) as exc_info:
            find_or_create_user(db_session, external_id, email=email)

        assert exc_info.value.code == ApiErrorCode.E_INVALID_REQUEST


class TestLookups:
    def test_get_user(self, db_session, user):
        assert get_user(db_session, user.id).id == user.id

    def test_get_user_missing(self, db_session):
        with pytest.raises(NotFoundError):
            get_user(db_session, uuid4())


class TestDeleteUser:
    def test_delete_cascades_to_documents_and_analyses(self, db_session, user, other_user):
        document = create_test_document(db_session, user)
        create_test_analysis(db_session, document)
        kept = create_test_document(db_session, other_user)

        assert delete_user(db_session, user.id) is True

        remaining_docs = db_session.execute(select(Document.id)).scalars().all()
        remaining_analyses = db_session.execute(select(Analysis.id)).scalars().all()
        assert remaining_docs == [kept.id]
        assert remaining_analyses == []

    def test_delete_missing_user(self, db_session):
        assert delete_user(db_session, uuid4()) is False
