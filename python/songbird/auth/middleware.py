"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: resolves the caller's session from the bearer token
- get_session: dependency returning the resolved session (or None)
- get_viewer: dependency for routes that require an authenticated caller

Browsing is public, so a missing Authorization header is not an error here:
the request proceeds anonymously and the mutating services reject it through
verify_identity(). A header that is present but malformed or invalid is
rejected with 401 immediately.
"""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from songbird.auth.identity import SessionContext
from songbird.auth.verifier import TokenVerifier
from songbird.errors import ApiError, ApiErrorCode, AuthFailure
from songbird.logging import get_logger
from songbird.responses import error_response

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "authorization"

# Paths that never look at credentials
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


@dataclass
class Viewer:
    """Authenticated viewer identity for read routes scoped to the caller."""

    user_id: UUID


class AuthMiddleware(BaseHTTPMiddleware):
    """Session-resolving middleware.

    Order of checks:
    1. Skip if public path
    2. No Authorization header -> anonymous (request.state.session = None)
    3. Parse the bearer token (malformed -> 401)
    4. Verify token via TokenVerifier (invalid -> 401, JWKS down -> 503)
    5. Attach SessionContext to request state
    """

    def __init__(self, app: ASGIApp, verifier: TokenVerifier):
        super().__init__(app)
        self.verifier = verifier

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        request.state.session = None

        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        auth_header = request.headers.get(AUTHORIZATION_HEADER)
        if not auth_header:
            return await call_next(request)

        token = self._parse_bearer(auth_header)
        if not token:
            logger.warning(
                "auth_failure", reason="invalid_header_format", request_path=request.url.path
            )
            return self._error_json_response(
                ApiErrorCode.E_UNAUTHENTICATED, "Invalid authorization header format", 401
            )

        try:
            claims = self.verifier.verify(token)
        except ApiError as e:
            return self._error_json_response(e.code, e.message, e.status_code)

        request.state.session = SessionContext.from_claims(claims)
        return await call_next(request)

    @staticmethod
    def _parse_bearer(auth_header: str) -> str:
        """Return the token after "Bearer " (case-insensitive), or ""."""
        if not auth_header.lower().startswith("bearer "):
            return ""
        return auth_header[7:].strip()

    def _error_json_response(
        self, code: ApiErrorCode, message: str, status_code: int
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=error_response(code, message),
        )


def get_session(request: Request) -> SessionContext | None:
    """FastAPI dependency returning the caller's session, or None if anonymous.

    Mutating routes pass this straight to the service layer, which performs
    the auth check itself.
    """
    return getattr(request.state, "session", None)


def get_viewer(
    session: Annotated[SessionContext | None, Depends(get_session)],
) -> Viewer:
    """FastAPI dependency for read routes that only make sense when logged in.

    Raises:
        AuthFailure: If the request is anonymous.
    """
    if session is None:
        raise AuthFailure("Authentication required")
    return Viewer(user_id=session.user_id)
