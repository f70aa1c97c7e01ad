"""Pytest configuration and fixtures for medintake tests.

Test isolation strategy:
- Every test gets a fresh in-memory SQLite database (StaticPool, one shared
  connection) with the schema created from the ORM models
- The API under test receives that Database and a FakeStorageClient directly,
  so routes, services and assertions all see the same store
- Auth tests use MockJwtVerifier with locally minted RS256 tokens
- Analysis enqueueing is replaced by a recorder on app.state
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

# Settings are validated on first use; provide test values before any import
os.environ.setdefault("MEDINTAKE_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_JWKS_URL", "https://auth.test/.well-known/jwks.json")
os.environ.setdefault("AUTH_ISSUER", "test-issuer")
os.environ.setdefault("AUTH_AUDIENCES", "test-audience")

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from medintake.app import add_request_id_middleware, create_app
from medintake.config import clear_settings_cache
from medintake.db.engine import create_db_engine
from medintake.db.models import User
from medintake.db.session import Database
from medintake.storage.client import FakeStorageClient
from tests.factories import create_user
from tests.support.test_verifier import MockJwtVerifier


class EnqueueRecorder:
    """Stands in for the Celery enqueue function; records each call."""

    def __init__(self):
        self.calls: list[tuple] = []

    def __call__(self, document_id, owner_id, request_id=None) -> None:
        self.calls.append((document_id, owner_id, request_id))


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def database() -> Generator[Database, None, None]:
    """Fresh in-memory database with all tables created."""
    database = Database(create_db_engine("sqlite://"))
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db_session(database: Database) -> Generator[Session, None, None]:
    """Session on the per-test database."""
    with database.session_scope() as session:
        yield session


@pytest.fixture
def fake_storage() -> FakeStorageClient:
    """In-memory storage client."""
    return FakeStorageClient(chunk_size=1024)


@pytest.fixture
def enqueue_recorder() -> EnqueueRecorder:
    return EnqueueRecorder()


@pytest.fixture
def app(database: Database, fake_storage: FakeStorageClient, enqueue_recorder) -> FastAPI:
    """App with auth (MockJwtVerifier) and request-id middleware."""
    app = create_app(
        token_verifier=MockJwtVerifier(),
        database=database,
        storage=fake_storage,
    )
    app.state.enqueue_analysis = enqueue_recorder
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client for the authenticated app. Use tests.helpers.auth_headers()."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def user(db_session: Session) -> User:
    """A persisted user."""
    return create_user(db_session)


@pytest.fixture
def other_user(db_session: Session) -> User:
    """A second persisted user, for ownership tests."""
    return create_user(db_session, email="other@example.com")
