"""Tests for limit/offset clamping and page fetching."""

import pytest

from medintake.auth.permissions import select_owned_documents
from medintake.db.models import Document
from medintake.services.documents import list_documents_by_owner
from medintake.services.pagination import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    MAX_PAGE_OFFSET,
    clamp_page,
    fetch_page,
)
from tests.factories import create_documents_newest_last


class TestClampPage:
    @pytest.mark.parametrize(
        ("limit", "offset", "expected"),
        [
            (None, None, (DEFAULT_PAGE_LIMIT, 0)),
            (10, 5, (10, 5)),
            (-1, -10, (0, 0)),
            (1000, 0, (MAX_PAGE_LIMIT, 0)),
            (0, 3, (0, 3)),
            (10, 10**23, (10, MAX_PAGE_OFFSET)),
            (10, MAX_PAGE_OFFSET + 1, (10, MAX_PAGE_OFFSET)),
        ],
    )
    def test_clamping(self, limit, offset, expected):
        assert clamp_page(limit, offset) == expected


class TestFetchPage:
    def test_has_more_and_window(self, db_session, user):
        create_documents_newest_last(db_session, user, 5)
        stmt = select_owned_documents(user.id).order_by(Document.created_at.desc())

        first = fetch_page(db_session, stmt, 2, 0)
        last = fetch_page(db_session, stmt, 2, 4)

        assert len(first.items) == 2
        assert first.has_more is True
        assert len(last.items) == 1
        assert last.has_more is False

    def test_limit_zero_returns_empty_page(self, db_session, user):
        create_documents_newest_last(db_session, user, 2)

        page = list_documents_by_owner(db_session, user.id, limit=0)

        assert page.items == []
        assert page.limit == 0
        assert page.has_more is True

    def test_offset_past_end(self, db_session, user):
        create_documents_newest_last(db_session, user, 2)

        page = list_documents_by_owner(db_session, user.id, limit=10, offset=50)

        assert page.items == []
        assert page.has_more is False

    def test_huge_offset_runs_against_the_database(self, db_session, user):
        create_documents_newest_last(db_session, user, 2)

        page = list_documents_by_owner(db_session, user.id, limit=10, offset=10**23)

        assert page.items == []
        assert page.offset == MAX_PAGE_OFFSET
        assert page.has_more is False
