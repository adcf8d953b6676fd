"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
The saga failure taxonomy (AuthFailure, ValidationFailure, UploadError,
InsertError, DeleteError, NotFoundError) is expressed as ApiError subclasses
so the same envelope handler renders every failure.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_SONG_NOT_FOUND = "E_SONG_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_NAME_INVALID = "E_NAME_INVALID"
    E_FILE_MISSING = "E_FILE_MISSING"
    E_FILE_TOO_LARGE = "E_FILE_TOO_LARGE"

    # Upstream / server errors
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"  # 503
    E_UPLOAD_FAILED = "E_UPLOAD_FAILED"  # 502
    E_INSERT_FAILED = "E_INSERT_FAILED"  # 500
    E_DELETE_FAILED = "E_DELETE_FAILED"  # 500
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_SONG_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_NAME_INVALID: 400,
    ApiErrorCode.E_FILE_MISSING: 400,
    ApiErrorCode.E_FILE_TOO_LARGE: 400,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_UPLOAD_FAILED: 502,
    ApiErrorCode.E_INSERT_FAILED: 500,
    ApiErrorCode.E_DELETE_FAILED: 500,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class AuthFailure(ApiError):
    """No valid session. Always raised before any side effect."""

    def __init__(self, message: str = "You must be logged in"):
        super().__init__(ApiErrorCode.E_UNAUTHENTICATED, message)


class ValidationFailure(InvalidRequestError):
    """Missing/oversized file or empty normalized text. Raised before any remote call."""


class UploadError(ApiError):
    """Object storage rejected an upload."""

    def __init__(self, message: str = "Upload failed"):
        super().__init__(ApiErrorCode.E_UPLOAD_FAILED, message)


class InsertError(ApiError):
    """Record store rejected a song insert."""

    def __init__(self, message: str = "Failed to create song record"):
        super().__init__(ApiErrorCode.E_INSERT_FAILED, message)


class DeleteError(ApiError):
    """Record store rejected a song delete."""

    def __init__(self, message: str = "Failed to delete song"):
        super().__init__(ApiErrorCode.E_DELETE_FAILED, message)
