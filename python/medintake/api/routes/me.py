"""Current user endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from medintake.api.deps import get_db
from medintake.auth.middleware import Viewer, get_viewer
from medintake.schemas import UserOut
from medintake.services.users import get_user

router = APIRouter()


@router.get("/me")
def get_me(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get the authenticated user's profile (created on first sign-in)."""
    user = get_user(db, viewer.user_id)
    return {"user": UserOut.model_validate(user).to_json()}
