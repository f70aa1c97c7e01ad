"""Analysis routes.

Analyses are visible to the owner of the document they belong to; anything
else is a 404.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from medintake.api.deps import get_db
from medintake.auth.middleware import Viewer, get_viewer
from medintake.schemas import AnalysisListResponse, AnalysisOut, PaginationOut
from medintake.services import analyses as analyses_service
from medintake.services.pagination import DEFAULT_PAGE_LIMIT

router = APIRouter()


@router.get("/analyses")
def list_analyses(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    limit: int = DEFAULT_PAGE_LIMIT,
    offset: int = 0,
) -> dict:
    """List analyses across all of the viewer's documents, newest first."""
    page = analyses_service.page_analyses_by_owner(db, viewer.user_id, limit, offset)
    return AnalysisListResponse(
        analyses=[AnalysisOut.model_validate(a) for a in page.items],
        pagination=PaginationOut(limit=page.limit, offset=page.offset, has_more=page.has_more),
    ).to_json()


@router.get("/analyses/{analysis_id}")
def get_analysis(
    analysis_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get one analysis. Returns 404 if missing or not the viewer's."""
    analysis = analyses_service.get_analysis(db, analysis_id, viewer.user_id)
    return {"analysis": AnalysisOut.model_validate(analysis).to_json()}
