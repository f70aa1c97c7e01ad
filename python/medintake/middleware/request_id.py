"""X-Request-ID handling and the per-request access log.

RequestIDMiddleware must be the outermost middleware (added last) so that
responses produced by AuthMiddleware also carry the header and get logged.
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from medintake.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._-]{1,128}")

logger = get_logger(__name__)


def normalize_request_id(value: str | None) -> str:
    """Keep a caller-supplied ID if it is a safe token, else mint a UUID4.

    UUIDs come back lowercased in canonical form.
    """
    if value is None or not _REQUEST_ID_RE.fullmatch(value):
        return str(uuid.uuid4())
    if len(value) == 36:
        try:
            return str(uuid.UUID(value))
        except ValueError:
            pass
    return value


class RequestIDMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        request_id = normalize_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed")
            raise
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        if self.log_requests:
            # user_id is bound further in; read it back off request.state
            viewer = getattr(request.state, "viewer", None)
            logger.info(
                "request_completed",
                request_id=request_id,
                path=request.url.path,
                method=request.method,
                status_code=response.status_code,
                duration_ms=elapsed_ms,
                user_id=str(viewer.user_id) if viewer else None,
            )
        return response
