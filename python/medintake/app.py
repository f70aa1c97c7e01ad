"""FastAPI application factory.

Middleware runs in reverse order of registration. AuthMiddleware is added in
create_app; RequestIDMiddleware is added afterwards by
add_request_id_middleware so it wraps everything, auth rejections included:

    RequestIDMiddleware -> AuthMiddleware -> route -> AuthMiddleware -> RequestIDMiddleware

Per-app resources live on app.state: the Database (built in the lifespan
unless injected, disposed at shutdown), the storage client, and optionally an
enqueue_analysis override.
"""

from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from medintake.api.routes import create_api_router
from medintake.auth.middleware import AuthMiddleware
from medintake.auth.verifier import JwksTokenVerifier, TokenVerifier
from medintake.config import Settings, get_settings
from medintake.db.session import Database
from medintake.errors import ApiError
from medintake.logging import configure_logging, get_logger
from medintake.middleware.request_id import RequestIDMiddleware
from medintake.responses import (
    api_error_handler,
    http_exception_handler,
    storage_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from medintake.services.users import find_or_create_user
from medintake.storage.client import StorageClientBase, StorageError, get_storage_client

logger = get_logger(__name__)


def create_bootstrap_callback(app: FastAPI) -> Callable[[dict[str, Any]], UUID]:
    """Build the auth bootstrap: claims -> id of the (possibly new) local user."""

    def bootstrap(claims: dict[str, Any]) -> UUID:
        database: Database = app.state.database
        with database.session_scope() as db:
            user = find_or_create_user(
                db,
                claims["sub"],
                email=claims.get("email") or "",
                display_name=claims.get("name"),
                avatar_url=claims.get("picture"),
            )
            return user.id

    return bootstrap


def create_token_verifier(settings: Settings) -> JwksTokenVerifier:
    return JwksTokenVerifier(
        jwks_url=settings.auth_jwks_url,  # type: ignore[arg-type]
        issuer=settings.normalized_issuer,  # type: ignore[arg-type]
        audiences=settings.audience_list,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
    database: Database | None = None,
    storage: StorageClientBase | None = None,
) -> FastAPI:
    """Create the API application.

    Args:
        skip_auth_middleware: Leave AuthMiddleware out (tests install their own).
        token_verifier: Verifier to use instead of the JWKS one.
        database: Pre-built Database; when None one is built from settings at
            startup and disposed at shutdown.
        storage: Storage client; defaults to get_storage_client(settings).
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    owns_database = database is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_database:
            app.state.database = Database.from_settings(settings)
            logger.info(
                "database_pool_opened",
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
            )
        try:
            yield
        finally:
            if owns_database:
                app.state.database.dispose()
                logger.info("database_pool_closed")

    app = FastAPI(
        title="Medintake API",
        description="Medical document intake and analysis",
        version="0.1.0",
        lifespan=lifespan,
    )
    if database is not None:
        app.state.database = database
    app.state.storage = storage or get_storage_client(settings)

    register_exception_handlers(app)
    app.include_router(create_api_router())

    if not skip_auth_middleware:
        app.add_middleware(
            AuthMiddleware,
            verifier=token_verifier or create_token_verifier(settings),
            bootstrap_callback=create_bootstrap_callback(app),
        )
    logger.info(
        "app_created",
        env=settings.medintake_env.value,
        auth_middleware=not skip_auth_middleware,
        storage=type(app.state.storage).__name__,
    )
    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Install RequestIDMiddleware; call after every other middleware."""
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
