"""Error bodies and the exception handlers registered by create_app.

Every error the API returns has the same flat shape:

    {"error": "<message>", "code": "E_...", "request_id": "<id>"}

request_id is omitted when none is known. Success bodies are resource-shaped
and built in the route handlers.
"""

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from medintake.errors import ApiError, ApiErrorCode
from medintake.logging import get_logger, get_request_id
from medintake.storage.client import StorageError

logger = get_logger(__name__)

_HTTP_STATUS_CODES = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
    409: ApiErrorCode.E_CONFLICT,
    422: ApiErrorCode.E_INVALID_REQUEST,
}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Build an error body; request_id defaults to the one in the logging context."""
    request_id = request_id or get_request_id()
    body: dict[str, Any] = {"error": message, "code": code.value}
    if request_id:
        body["request_id"] = request_id
    return body


def _error_json(
    request: Request,
    status_code: int,
    code: ApiErrorCode,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    # The logging context is already cleared when the outermost handler runs.
    request_id = get_request_id() or getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, request_id),
        headers=headers,
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    headers = {"Retry-After": "1"} if exc.retryable else None
    return _error_json(request, exc.status_code, exc.code, exc.message, headers)


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.warning("storage_error", code=exc.code, retryable=exc.retryable, error=exc.message)
    return await api_error_handler(request, exc.to_api_error())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Starlette HTTPExceptions (unknown routes, wrong methods) in the error shape."""
    code = _HTTP_STATUS_CODES.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    return _error_json(request, exc.status_code, code, str(exc.detail or "An error occurred"))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed query params and bodies are 400s naming the offending fields."""
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    message = f"Invalid request: {', '.join(fields)}" if fields else "Invalid request"
    return _error_json(request, 400, ApiErrorCode.E_INVALID_REQUEST, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the exception and answer 500 without leaking details."""
    logger.exception("unhandled_exception", error=str(exc))
    return _error_json(request, 500, ApiErrorCode.E_INTERNAL, "Internal server error")
