"""Database lifecycle and session management.

Provides:
- Database: explicitly constructed access-layer handle (engine + session
  factory) with an open/close lifecycle. The API builds one in its lifespan
  and stores it on app.state; workers and scripts build their own.
- Request-scoped database sessions via the get_db() dependency
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from medintake.config import Settings
from medintake.db.engine import create_db_engine
from medintake.logging import get_logger

logger = get_logger(__name__)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to an engine."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


class Database:
    """Pooled handle on the relational store.

    Usage:
        database = Database.from_settings(settings)   # startup: open pool
        with database.session_scope() as db:
            ...
        database.dispose()                            # shutdown: close pool
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = create_session_factory(engine)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Database":
        """Build a Database from application settings."""
        return cls(create_db_engine(settings=settings))

    def session(self) -> Session:
        """Open a new session. Caller is responsible for closing it."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Context manager yielding a session that is always closed."""
        db = self.session()
        try:
            yield db
        finally:
            db.close()

    def create_all(self) -> None:
        """Create all mapped tables (tests and local bootstrap only)."""
        from medintake.db.models import Base

        Base.metadata.create_all(bind=self.engine)

    def health_check(self) -> bool:
        """Issue a trivial round-trip query.

        Returns False on any failure and never raises; the only consumer is a
        liveness probe.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("database_health_check_failed", error=str(e))
            return False

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the app-wide Database from app.state."""
    return request.app.state.database


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, closed when the response is done."""
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()


def session_info(db: Session) -> dict[str, Any]:
    """Describe the store a session is bound to (used by scripts/init_db.py)."""
    bind = db.get_bind()
    return {
        "dialect": bind.dialect.name,
        "database": bind.url.database,
    }
