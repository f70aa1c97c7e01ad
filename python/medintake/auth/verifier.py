"""Bearer token verification.

TokenVerifier is the seam the auth middleware depends on. JwksTokenVerifier
checks identity-provider JWTs (Supabase Auth by default) against the keys
published at a JWKS endpoint. Tests swap in MockJwtVerifier from
tests/support/test_verifier.py.
"""

import threading
from typing import Any, Protocol

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientConnectionError,
    PyJWKClientError,
)

from medintake.errors import ApiError, ApiErrorCode
from medintake.logging import get_logger

logger = get_logger(__name__)

CLOCK_SKEW_SECONDS = 60
ALLOWED_ALGORITHMS = ["RS256", "ES256"]
REQUIRED_CLAIMS = ["exp", "iss", "sub"]

# Checked in order; the first isinstance match wins.
_DECODE_FAILURES: list[tuple[type[InvalidTokenError], str, str]] = [
    (ExpiredSignatureError, "expired_token", "Token expired"),
    (InvalidSignatureError, "invalid_signature", "Invalid token signature"),
    (InvalidIssuerError, "invalid_issuer", "Invalid token issuer"),
    (InvalidAudienceError, "invalid_audience", "Invalid token audience"),
    (DecodeError, "decode_error", "Invalid token format"),
]


class TokenVerifier(Protocol):
    def verify(self, token: str) -> dict[str, Any]:
        """Return the token's claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): The token is not acceptable.
            ApiError(E_AUTH_UNAVAILABLE): Keys could not be fetched.
        """
        ...


def _unauthenticated(reason: str, message: str) -> ApiError:
    logger.warning("auth_failure", reason=reason)
    return ApiError(ApiErrorCode.E_UNAUTHENTICATED, message)


def _auth_unavailable(error: Exception) -> ApiError:
    logger.error("auth_failure", reason="jwks_unavailable", error=str(error))
    return ApiError(ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable")


def unauthenticated_from_decode_error(error: InvalidTokenError) -> ApiError:
    """Map a PyJWT decode failure to a 401 ApiError."""
    for error_type, reason, message in _DECODE_FAILURES:
        if isinstance(error, error_type):
            return _unauthenticated(reason, message)
    return _unauthenticated("invalid_token", "Invalid token")


class JwksTokenVerifier:
    """Verify JWTs against the identity provider's JWKS.

    Accepts RS256/ES256 signatures, requires exp/iss/sub, allows 60s of clock
    skew, and checks aud against the configured list. Keys are cached for
    cache_ttl seconds; a token whose kid is not in the cache triggers a single
    refetch before it is rejected.
    """

    def __init__(
        self,
        jwks_url: str,
        issuer: str,
        audiences: list[str],
        cache_ttl: int = 3600,
    ):
        self.jwks_url = jwks_url
        self.issuer = issuer.rstrip("/")
        self.audiences = audiences
        self.cache_ttl = cache_ttl

        self._jwks_client: PyJWKClient | None = None
        self._lock = threading.Lock()

    def _new_jwks_client(self) -> PyJWKClient:
        return PyJWKClient(self.jwks_url, cache_keys=True, lifespan=self.cache_ttl)

    def _client(self, refresh: bool = False) -> PyJWKClient:
        with self._lock:
            if refresh or self._jwks_client is None:
                self._jwks_client = self._new_jwks_client()
            return self._jwks_client

    def verify(self, token: str) -> dict[str, Any]:
        signing_key = self._signing_key(token)

        try:
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=ALLOWED_ALGORITHMS,
                audience=self.audiences,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": REQUIRED_CLAIMS},
            )
        except InvalidTokenError as e:
            raise unauthenticated_from_decode_error(e) from e

        sub = claims.get("sub")
        if not isinstance(sub, str) or not sub:
            raise _unauthenticated("missing_sub", "Invalid token: missing sub")
        return claims

    def _signing_key(self, token: str) -> Any:
        try:
            return self._client().get_signing_key_from_jwt(token)
        except DecodeError as e:
            raise _unauthenticated("decode_error", "Invalid token format") from e
        except PyJWKClientConnectionError as e:
            raise _auth_unavailable(e) from e
        except PyJWKClientError:
            # Unknown kid: the provider may have rotated keys since the last fetch.
            logger.info("jwks_refresh_on_kid_miss")

        try:
            return self._client(refresh=True).get_signing_key_from_jwt(token)
        except PyJWKClientConnectionError as e:
            raise _auth_unavailable(e) from e
        except PyJWKClientError as e:
            raise _unauthenticated(
                "kid_not_found", "Invalid token: signing key not found"
            ) from e
