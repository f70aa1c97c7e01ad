"""Classification of store exceptions into API errors.

The access layer never lets raw SQLAlchemy / driver exceptions reach callers.
Every repository function runs its statements inside db_errors(), which maps:

- foreign key, NOT NULL and CHECK violations -> ValidationError
- unique violations                          -> ConflictError
- pool exhaustion, lost/refused connections  -> UnavailableError (retryable)
- anything else from SQLAlchemy              -> InternalError

PostgreSQL drivers expose a SQLSTATE on the original exception; SQLite only
offers a message, so both are inspected.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from medintake.errors import (
    ApiError,
    ApiErrorCode,
    ConflictError,
    InternalError,
    UnavailableError,
    ValidationError,
)
from medintake.logging import get_logger

logger = get_logger(__name__)

# SQLSTATE codes (class 23: integrity constraint violation)
SQLSTATE_NOT_NULL = "23502"
SQLSTATE_FOREIGN_KEY = "23503"
SQLSTATE_UNIQUE = "23505"
SQLSTATE_CHECK = "23514"


def _sqlstate(error: sa_exc.DBAPIError) -> str | None:
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def classify_integrity_error(
    error: sa_exc.IntegrityError, foreign_key_error: ApiError | None = None
) -> ApiError:
    """Map an IntegrityError to ValidationError or ConflictError.

    Args:
        error: The integrity error raised by the store.
        foreign_key_error: Error to use for foreign key violations, so callers
            can name the dangling reference (e.g. the owner).
    """
    state = _sqlstate(error)
    message = str(error.orig).lower()

    if state == SQLSTATE_UNIQUE or "unique" in message or "duplicate key" in message:
        return ConflictError(ApiErrorCode.E_CONFLICT, "Resource already exists")

    if state == SQLSTATE_FOREIGN_KEY or "foreign key" in message:
        if foreign_key_error is not None:
            return foreign_key_error
        return ValidationError(ApiErrorCode.E_INVALID_REQUEST, "Referenced resource does not exist")

    if state in (SQLSTATE_NOT_NULL, SQLSTATE_CHECK) or "not null" in message or "check" in message:
        return ValidationError(ApiErrorCode.E_INVALID_REQUEST, "Missing or invalid field")

    return ValidationError(ApiErrorCode.E_INVALID_REQUEST, "Constraint violation")


def classify_db_error(error: Exception, foreign_key_error: ApiError | None = None) -> ApiError:
    """Map any store exception to the API error taxonomy."""
    if isinstance(error, ApiError):
        return error

    if isinstance(error, sa_exc.IntegrityError):
        return classify_integrity_error(error, foreign_key_error)

    # QueuePool limit reached and pool_timeout elapsed
    if isinstance(error, sa_exc.TimeoutError):
        return UnavailableError(ApiErrorCode.E_UNAVAILABLE, "Database connection pool exhausted")

    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return UnavailableError(ApiErrorCode.E_UNAVAILABLE, "Database connection lost")

    if isinstance(
        error, sa_exc.OperationalError | sa_exc.InterfaceError | sa_exc.DisconnectionError
    ):
        return UnavailableError(ApiErrorCode.E_UNAVAILABLE, "Database unavailable")

    return InternalError(ApiErrorCode.E_INTERNAL, "Internal server error")


@contextmanager
def db_errors(
    db: Session, operation: str, foreign_key_error: ApiError | None = None
) -> Generator[None, None, None]:
    """Run a unit of work, rolling back and classifying any store failure.

    Args:
        db: The session the work runs on.
        operation: Short operation name for logs (e.g. "create_document").
        foreign_key_error: Optional replacement for foreign key violations.

    Raises:
        ApiError: The classified error, chained to the original exception.
    """
    try:
        yield
    except ApiError:
        db.rollback()
        raise
    except sa_exc.SQLAlchemyError as e:
        db.rollback()
        classified = classify_db_error(e, foreign_key_error)
        log = logger.warning if classified.status_code < 500 else logger.error
        log(
            "db_operation_failed",
            operation=operation,
            error_code=classified.code.value,
            error_type=type(e).__name__,
        )
        raise classified from e
