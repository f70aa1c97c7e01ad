"""User service layer.

Provides race-safe find-or-create of the local User row on sign-in.
The identity provider's subject id (external_auth_id) is the lookup key;
email/display name/avatar are refreshed from the provider on every call.
"""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from medintake.db.errors import db_errors
from medintake.db.models import User
from medintake.errors import ApiErrorCode, ConflictError, NotFoundError, ValidationError
from medintake.logging import get_logger

logger = get_logger(__name__)


def _select_by_external_id(external_auth_id: str):
    return select(User).where(User.external_auth_id == external_auth_id)


def _refresh_profile(
    user: User, email: str, display_name: str | None, avatar_url: str | None
) -> None:
    user.email = email
    user.display_name = display_name or None
    user.avatar_url = avatar_url or None


def find_or_create_user(
    db: Session,
    external_auth_id: str,
    *,
    email: str,
    display_name: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """Return the User for external_auth_id, creating it on first sign-in.

    Idempotent: concurrent calls converge on a single row. A lost insert race
    (unique violation on external_auth_id) is recovered by re-reading the
    winner and applying this call's profile values to it.

    Raises:
        ValidationError: If external_auth_id or email is empty.
        ConflictError: If the race cannot be resolved.
    """
    if not external_auth_id:
        raise ValidationError(ApiErrorCode.E_INVALID_REQUEST, "external_auth_id is required")
    if not email:
        raise ValidationError(ApiErrorCode.E_INVALID_REQUEST, "email is required")

    with db_errors(db, "find_or_create_user"):
        user = db.execute(_select_by_external_id(external_auth_id)).scalar_one_or_none()

        if user is not None:
            _refresh_profile(user, email, display_name, avatar_url)
            db.commit()
            return user

        user = User(external_auth_id=external_auth_id)
        _refresh_profile(user, email, display_name, avatar_url)
        db.add(user)
        try:
            db.commit()
            logger.info("user_created", user_id=str(user.id))
            return user
        except IntegrityError:
            # Lost race: another sign-in inserted the row first
            db.rollback()

        user = db.execute(_select_by_external_id(external_auth_id)).scalar_one_or_none()
        if user is None:
            logger.error("user_bootstrap_race_unresolved")
            raise ConflictError(ApiErrorCode.E_CONFLICT, "User could not be created")

        _refresh_profile(user, email, display_name, avatar_url)
        db.commit()
        return user


def get_user(db: Session, user_id: UUID) -> User:
    """Get a user by local id.

    Raises:
        NotFoundError: If no such user exists.
    """
    with db_errors(db, "get_user"):
        user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(ApiErrorCode.E_NOT_FOUND, "User not found")
    return user


def delete_user(db: Session, user_id: UUID) -> bool:
    """Delete a user; documents and their analyses go with it (ON DELETE CASCADE).

    Returns:
        True if a row was deleted.
    """
    with db_errors(db, "delete_user"):
        result = db.execute(
            delete(User).where(User.id == user_id).execution_options(synchronize_session="fetch")
        )
        db.commit()
    # Cascaded rows were removed by the store, not the ORM
    db.expire_all()
    deleted = result.rowcount > 0
    if deleted:
        logger.info("user_deleted", user_id=str(user_id))
    return deleted
