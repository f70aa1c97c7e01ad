"""Authentication and authorization module.

This module provides:
- Token verification (JWKS verifier)
- Auth middleware for FastAPI
- Ownership predicates for owner-scoped queries

Note: Test-only verifiers are in tests/support/test_verifier.py
"""

from medintake.auth.middleware import AuthMiddleware, Viewer, get_viewer
from medintake.auth.verifier import JwksTokenVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "JwksTokenVerifier",
    "TokenVerifier",
]
