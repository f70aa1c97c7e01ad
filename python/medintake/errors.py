"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
The access layer never raises raw store exceptions; it classifies them into
one of the ApiError subclasses below (see medintake.db.errors).
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
    E_DOCUMENT_NOT_FOUND = "E_DOCUMENT_NOT_FOUND"
    E_ANALYSIS_NOT_FOUND = "E_ANALYSIS_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_CONTENT_TYPE = "E_INVALID_CONTENT_TYPE"
    E_FILE_TOO_LARGE = "E_FILE_TOO_LARGE"
    E_FILE_EMPTY = "E_FILE_EMPTY"
    E_OWNER_NOT_FOUND = "E_OWNER_NOT_FOUND"
    E_STORAGE_PATH_INVALID = "E_STORAGE_PATH_INVALID"

    # Conflict errors (409)
    E_CONFLICT = "E_CONFLICT"
    E_DOCUMENT_STATE_CONFLICT = "E_DOCUMENT_STATE_CONFLICT"

    # Retryable infrastructure errors (503)
    E_UNAVAILABLE = "E_UNAVAILABLE"
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"
    E_STORAGE_UNAVAILABLE = "E_STORAGE_UNAVAILABLE"

    # Server errors
    E_INTERNAL = "E_INTERNAL"  # 500
    E_STORAGE_FORBIDDEN = "E_STORAGE_FORBIDDEN"  # 500
    E_STORAGE_ERROR = "E_STORAGE_ERROR"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_DOCUMENT_NOT_FOUND: 404,
    ApiErrorCode.E_ANALYSIS_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_INVALID_CONTENT_TYPE: 400,
    ApiErrorCode.E_FILE_TOO_LARGE: 400,
    ApiErrorCode.E_FILE_EMPTY: 400,
    ApiErrorCode.E_OWNER_NOT_FOUND: 400,
    ApiErrorCode.E_STORAGE_PATH_INVALID: 400,
    ApiErrorCode.E_CONFLICT: 409,
    ApiErrorCode.E_DOCUMENT_STATE_CONFLICT: 409,
    ApiErrorCode.E_UNAVAILABLE: 503,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_STORAGE_UNAVAILABLE: 503,
    ApiErrorCode.E_INTERNAL: 500,
    ApiErrorCode.E_STORAGE_FORBIDDEN: 500,
    ApiErrorCode.E_STORAGE_ERROR: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    status_code is derived from code via ERROR_CODE_TO_STATUS. Subclasses
    supply a default code and message so callers can raise them bare.
    """

    default_code: ApiErrorCode = ApiErrorCode.E_INTERNAL
    default_message: str = "Internal server error"
    retryable: bool = False

    def __init__(self, code: ApiErrorCode | None = None, message: str | None = None):
        self.code = code or self.default_code
        self.message = message or self.default_message
        self.status_code = ERROR_CODE_TO_STATUS.get(self.code, 500)
        super().__init__(self.message)


class ValidationError(ApiError):
    """Malformed input: bad paging values, missing fields, dangling references."""

    default_code = ApiErrorCode.E_INVALID_REQUEST
    default_message = "Invalid request"


class NotFoundError(ApiError):
    """Resource not found, or not visible to the caller.

    The two cases are intentionally indistinguishable.
    """

    default_code = ApiErrorCode.E_NOT_FOUND
    default_message = "Not found"


class ConflictError(ApiError):
    """Unique-constraint violation or state conflict."""

    default_code = ApiErrorCode.E_CONFLICT
    default_message = "Conflict"


class UnavailableError(ApiError):
    """Store unreachable or connection pool exhausted. Safe to retry."""

    default_code = ApiErrorCode.E_UNAVAILABLE
    default_message = "Service temporarily unavailable"
    retryable = True


class InternalError(ApiError):
    """Anything unclassified."""
