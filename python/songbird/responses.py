"""Response envelope and exception handlers.

Every response uses one of two shapes:
- Success: { "data": ... }
- Error: { "error": { "code": "E_...", "message": "...", "request_id": "..." } }

Saga failures come back from the service layer as SagaResult values rather
than exceptions; unwrap() turns them into the same error envelope.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from songbird.errors import ApiError, ApiErrorCode
from songbird.logging import get_logger, get_request_id
from songbird.services.saga import SagaResult

logger = get_logger(__name__)

# Status codes raised by FastAPI/Starlette itself (unknown route, bad method, ...)
_STATUS_TO_CODE = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
    413: ApiErrorCode.E_FILE_TOO_LARGE,
    422: ApiErrorCode.E_INVALID_REQUEST,
}


def success_response(data: Any) -> dict[str, Any]:
    """Wrap data in the success envelope."""
    return {"data": data}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Build the error envelope.

    request_id defaults to the one bound to the current request's log context.
    """
    request_id = request_id or get_request_id()

    error = {"code": code.value, "message": message}
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def unwrap(result: SagaResult) -> Any:
    """Return a successful saga's data, or raise its failure as an ApiError."""
    if not result.ok:
        raise result.to_error()
    return result.data


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message),
    )


async def http_exception_handler(request: Request, exc: Any) -> JSONResponse:
    code = _STATUS_TO_CODE.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    message = str(exc.detail) if exc.detail else "An error occurred"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, message),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render anything unexpected as 500 E_INTERNAL without leaking details."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content=error_response(ApiErrorCode.E_INTERNAL, "Something went wrong"),
    )
