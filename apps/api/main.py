"""Thin API launcher.

This is the uvicorn entrypoint. All application logic lives in the medintake package.
Run with: uvicorn apps.api.main:app --reload

The app instance is created here (not in medintake.app) so that tests can
import create_app without requiring all environment variables up front.
"""

from medintake.app import add_request_id_middleware, create_app

app = create_app()
# Add request-id middleware LAST so it runs FIRST (outermost)
add_request_id_middleware(app)

__all__ = ["app"]
