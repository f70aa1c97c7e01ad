"""In-process token verifier for tests.

MockJwtVerifier accepts tokens signed by a process-wide RSA key instead of
fetching keys from a JWKS endpoint. Claim rules and error mapping are the
production ones from medintake.auth.verifier.
"""

from typing import Any

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.exceptions import InvalidTokenError

from medintake.auth.verifier import (
    CLOCK_SKEW_SECONDS,
    REQUIRED_CLAIMS,
    unauthenticated_from_decode_error,
)
from medintake.errors import ApiError, ApiErrorCode

_SIGNING_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)


class MockJwtVerifier:
    def __init__(self, issuer: str = "test-issuer", audiences: list[str] | None = None):
        self.issuer = issuer
        self.audiences = audiences or ["test-audience"]

    @staticmethod
    def get_private_key() -> rsa.RSAPrivateKey:
        return _SIGNING_KEY

    @staticmethod
    def get_public_key() -> rsa.RSAPublicKey:
        return _SIGNING_KEY.public_key()

    def verify(self, token: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                self.get_public_key(),
                algorithms=["RS256"],
                audience=self.audiences,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": REQUIRED_CLAIMS},
            )
        except InvalidTokenError as e:
            raise unauthenticated_from_decode_error(e) from e

        if not claims.get("sub"):
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: missing sub")
        return claims
