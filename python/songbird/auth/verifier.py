"""Token verification implementations.

Provides:
- TokenVerifier: Protocol for token verification
- SupabaseJwksVerifier: Verifier using Supabase JWKS (used in all environments)

Note: Test-only verifiers are in tests/support/jwt_verifier.py
"""

import threading
from typing import Any, Protocol
from uuid import UUID

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)

from songbird.errors import ApiError, ApiErrorCode
from songbird.logging import get_logger

logger = get_logger(__name__)

# Clock skew allowance in seconds
CLOCK_SKEW_SECONDS = 60

# Ordered most-specific first; InvalidTokenError is the base class of the rest
_DECODE_FAILURES: tuple[tuple[type[InvalidTokenError], str, str], ...] = (
    (ExpiredSignatureError, "expired_token", "Token expired"),
    (InvalidSignatureError, "invalid_signature", "Invalid token signature"),
    (InvalidIssuerError, "invalid_issuer", "Invalid token issuer"),
    (InvalidAudienceError, "invalid_audience", "Invalid token audience"),
    (DecodeError, "decode_error", "Invalid token format"),
    (InvalidTokenError, "invalid_token", "Invalid token"),
)


class TokenVerifier(Protocol):
    """Protocol for token verification.

    Implementations must verify JWT tokens and return decoded claims.
    """

    def verify(self, token: str) -> dict[str, Any]:
        """Verify token and return decoded claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid, expired, or malformed.
            ApiError(E_AUTH_UNAVAILABLE): Infrastructure failure (JWKS unreachable).
        """
        ...


def decode_session_token(
    token: str,
    key: Any,
    *,
    algorithms: list[str],
    issuer: str,
    audiences: list[str],
) -> dict[str, Any]:
    """Decode a Supabase session JWT and validate its claims.

    Shared by the JWKS verifier and the test verifier so both enforce the
    same claim rules: exp/iss/sub required, audience in the allowed list,
    sub a UUID.

    Raises:
        ApiError(E_UNAUTHENTICATED): Any validation failure.
    """
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=algorithms,
            audience=audiences,
            issuer=issuer,
            leeway=CLOCK_SKEW_SECONDS,
            options={
                "require": ["exp", "iss", "sub"],
                "verify_aud": True,
            },
        )
    except InvalidTokenError as e:
        for exc_type, reason, message in _DECODE_FAILURES:
            if isinstance(e, exc_type):
                logger.warning("auth_failure", reason=reason, error=str(e))
                raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, message) from e
        raise

    sub = payload.get("sub")
    if not sub:
        logger.warning("auth_failure", reason="missing_sub")
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: missing sub")

    try:
        UUID(sub)
    except (ValueError, TypeError) as e:
        logger.warning("auth_failure", reason="invalid_sub")
        raise ApiError(
            ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: sub is not a valid UUID"
        ) from e

    return payload


class SupabaseJwksVerifier:
    """Production token verifier using Supabase JWKS.

    Validates:
    - Signature via JWKS (RS256 on Supabase cloud, ES256 on newer local stacks)
    - exp with 60s clock skew
    - iss matches configured issuer (after normalization)
    - aud must be in configured audience list
    - sub must be valid UUID
    """

    def __init__(
        self,
        jwks_url: str,
        issuer: str,
        audiences: list[str],
        cache_ttl: int = 3600,
    ):
        """Initialize the Supabase JWKS verifier.

        Args:
            jwks_url: Full URL to the JWKS endpoint.
            issuer: Expected issuer (trailing slash will be stripped).
            audiences: List of allowed audience values.
            cache_ttl: How long to cache JWKS keys in seconds.
        """
        self.jwks_url = jwks_url
        self.issuer = issuer.rstrip("/")
        self.audiences = audiences
        self.cache_ttl = cache_ttl

        self._jwks_client: PyJWKClient | None = None
        self._jwks_lock = threading.Lock()

    def _new_jwks_client(self) -> PyJWKClient:
        return PyJWKClient(self.jwks_url, cache_keys=True, lifespan=self.cache_ttl)

    def _get_jwks_client(self, refresh: bool = False) -> PyJWKClient:
        """Get the JWKS client, recreating it when refresh is requested."""
        with self._jwks_lock:
            if self._jwks_client is None or refresh:
                self._jwks_client = self._new_jwks_client()
            return self._jwks_client

    def verify(self, token: str) -> dict[str, Any]:
        """Verify a Supabase session JWT.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid.
            ApiError(E_AUTH_UNAVAILABLE): JWKS fetch failed.
        """
        try:
            signing_key = self._get_signing_key(token)
        except PyJWKClientError as e:
            logger.warning("auth_failure", reason="jwks_unavailable", error=str(e))
            raise ApiError(
                ApiErrorCode.E_AUTH_UNAVAILABLE,
                "Authentication service unavailable",
            ) from e
        except InvalidTokenError as e:
            # Header could not be parsed to find the kid
            logger.warning("auth_failure", reason="decode_error", error=str(e))
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token format") from e

        return decode_session_token(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            issuer=self.issuer,
            audiences=self.audiences,
        )

    def _get_signing_key(self, token: str) -> Any:
        """Get the signing key for the token, refreshing JWKS once on a kid miss."""
        try:
            return self._get_jwks_client().get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            if "Unable to find" not in str(e) and "kid" not in str(e).lower():
                raise

        # Keys were rotated since the cache was filled
        logger.info("jwks_refresh", reason="kid_miss")
        try:
            return self._get_jwks_client(refresh=True).get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            logger.warning("auth_failure", reason="kid_not_found")
            raise ApiError(
                ApiErrorCode.E_UNAUTHENTICATED,
                "Invalid token: signing key not found",
            ) from e
