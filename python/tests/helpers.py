"""Token minting and request header helpers for tests."""

import time
from uuid import uuid4

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from tests.support.test_verifier import MockJwtVerifier

TEST_ISSUER = "test-issuer"
TEST_AUDIENCE = "test-audience"


def _claims(subject: str, expires_in: int, issuer: str, audience: str, email: str | None):
    now = int(time.time())
    claims = {"sub": subject, "iss": issuer, "aud": audience, "iat": now, "exp": now + expires_in}
    if email is not None:
        claims["email"] = email
    return claims


def mint_test_token(
    subject: str,
    expires_in: int = 3600,
    issuer: str = TEST_ISSUER,
    audience: str = TEST_AUDIENCE,
    email: str | None = "patient@example.com",
    **extra_claims,
) -> str:
    """Mint an RS256 token MockJwtVerifier accepts.

    email=None leaves the claim out; extra_claims (name, picture, ...) are
    merged in as-is.
    """
    claims = _claims(subject, expires_in, issuer, audience, email)
    claims.update(extra_claims)
    return jwt.encode(claims, MockJwtVerifier.get_private_key(), algorithm="RS256")


def mint_token_with_bad_signature(subject: str) -> str:
    """Mint an otherwise valid token signed by an unrelated key."""
    stranger_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    claims = _claims(subject, 3600, TEST_ISSUER, TEST_AUDIENCE, "patient@example.com")
    return jwt.encode(claims, stranger_key, algorithm="RS256")


def auth_headers(subject: str, **token_kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_test_token(subject, **token_kwargs)}"}


def new_subject() -> str:
    return f"auth|{uuid4()}"
