"""FastAPI application creation and configuration.

Registers exception handlers, auth middleware, request-id middleware, and routes.

Token Verification:
- All environments use SupabaseJwksVerifier; only env values change
- Tests inject their own verifier through create_app(token_verifier=...)

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- This ensures all requests (including auth failures) get X-Request-ID

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. AuthMiddleware (resolves request.state.session)
3. Route handler
4. AuthMiddleware (returns response)
5. RequestIDMiddleware (logs, sets response header)
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from songbird.api.routes import create_api_router
from songbird.auth.middleware import AuthMiddleware
from songbird.auth.verifier import SupabaseJwksVerifier, TokenVerifier
from songbird.config import get_settings
from songbird.errors import ApiError, ApiErrorCode
from songbird.logging import configure_logging, get_logger
from songbird.middleware.request_id import RequestIDMiddleware
from songbird.responses import (
    api_error_handler,
    error_response,
    http_exception_handler,
    unhandled_exception_handler,
)

# Configure structured logging at import time
configure_logging()

logger = get_logger(__name__)


def create_token_verifier() -> SupabaseJwksVerifier:
    """Create the token verifier from the Supabase auth settings."""
    settings = get_settings()

    return SupabaseJwksVerifier(
        jwks_url=settings.supabase_jwks_url,  # type: ignore[arg-type]
        issuer=settings.normalized_issuer,  # type: ignore[arg-type]
        audiences=settings.audience_list,
    )


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, every request is anonymous (for testing).
        token_verifier: Optional custom token verifier (for testing).
    """
    settings = get_settings()

    app = FastAPI(
        title="Songbird API",
        description="Backend API for Songbird - upload, browse, and like songs",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Render query/path/form validation failures as 400 E_INVALID_REQUEST."""
        return JSONResponse(
            status_code=400,
            content=error_response(ApiErrorCode.E_INVALID_REQUEST, "Invalid request"),
        )

    app.include_router(create_api_router())

    if not skip_auth_middleware:
        app.add_middleware(AuthMiddleware, verifier=token_verifier or create_token_verifier())
        logger.info("auth_middleware_enabled", env=settings.songbird_env.value)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    Call AFTER all other middleware is added, so it runs FIRST.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
