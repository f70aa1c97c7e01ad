"""Bearer-token authentication for the API.

AuthMiddleware verifies the token on every non-public request, resolves the
local user through a bootstrap callback and stores a Viewer on
request.state. Routes read it back with the get_viewer dependency.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from medintake.auth.verifier import TokenVerifier
from medintake.errors import ApiError, ApiErrorCode
from medintake.logging import get_logger, get_request_id, set_request_context
from medintake.responses import error_response

logger = get_logger(__name__)

PUBLIC_PATHS = frozenset({"/api/health", "/docs", "/redoc", "/openapi.json"})

# verified claims -> local users.id
BootstrapCallback = Callable[[dict[str, Any]], UUID]


@dataclass(frozen=True)
class Viewer:
    """The authenticated caller: local user id plus the token's sub claim."""

    user_id: UUID
    external_auth_id: str


def parse_bearer_token(header: str | None) -> str | None:
    """Return the token from an Authorization header, or None if unusable.

    The scheme is matched case-insensitively.
    """
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def _reject(error: ApiError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if error.status_code == 401 else None
    return JSONResponse(
        status_code=error.status_code,
        content=error_response(error.code, error.message),
        headers=headers,
    )


class AuthMiddleware(BaseHTTPMiddleware):
    def __init__(
        self, app: ASGIApp, verifier: TokenVerifier, bootstrap_callback: BootstrapCallback
    ):
        super().__init__(app)
        self.verifier = verifier
        self.bootstrap_callback = bootstrap_callback

    def authenticate(self, token: str) -> Viewer:
        """Verify the token and bootstrap the local user (blocking)."""
        claims = self.verifier.verify(token)
        user_id = self.bootstrap_callback(claims)
        return Viewer(user_id=user_id, external_auth_id=claims["sub"])

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        token = parse_bearer_token(request.headers.get("authorization"))
        if token is None:
            logger.warning("auth_failure", reason="missing_or_malformed_header")
            return _reject(ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required"))

        try:
            viewer = await run_in_threadpool(self.authenticate, token)
        except ApiError as e:
            return _reject(e)
        except Exception:
            logger.exception("auth_bootstrap_failed")
            return _reject(ApiError(ApiErrorCode.E_INTERNAL, "Internal server error"))

        request.state.viewer = viewer
        set_request_context(get_request_id(), user_id=str(viewer.user_id))
        return await call_next(request)


def get_viewer(request: Request) -> Viewer:
    """Dependency returning the authenticated Viewer.

    Raises:
        ApiError(E_UNAUTHENTICATED): No viewer on the request (public path or
            middleware not installed).
    """
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer
