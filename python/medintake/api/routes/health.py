"""Health check endpoint.

Unauthenticated. Reports whether the database answers a round-trip query:
- 200 {"status": "healthy", "database": "connected"}
- 503 {"status": "unhealthy", "database": "disconnected"}
- 500 {"status": "error", "message": ...} if the check itself cannot run
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from medintake.db.session import get_database
from medintake.logging import get_logger

router = APIRouter()

logger = get_logger(__name__)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


@router.get("/health")
def health_check(request: Request) -> JSONResponse:
    """Readiness check including a database round-trip."""
    try:
        healthy = get_database(request).health_check()
    except Exception:
        logger.exception("health_check_error")
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "Health check failed",
                "timestamp": _timestamp(),
            },
        )

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "database": "connected" if healthy else "disconnected",
            "timestamp": _timestamp(),
        },
    )
