"""Tests for error handling and response envelopes.

Verifies:
- Error envelope shape is correct
- Every error code maps to an HTTP status
- Retryable errors carry Retry-After
- Storage errors map onto API errors
- Unknown exceptions return E_INTERNAL with 500
- Malformed requests return E_INVALID_REQUEST with 400
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from medintake.errors import (
    ERROR_CODE_TO_STATUS,
    ApiError,
    ApiErrorCode,
    ConflictError,
    InternalError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from medintake.responses import (
    api_error_handler,
    error_response,
    storage_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from medintake.storage.client import StorageError


class TestErrorResponse:
    """Tests for error response envelope format."""

    def test_error_response_has_correct_shape(self):
        response = error_response(ApiErrorCode.E_DOCUMENT_NOT_FOUND, "Document not found")

        assert response == {"error": "Document not found", "code": "E_DOCUMENT_NOT_FOUND"}

    def test_error_response_includes_request_id_when_given(self):
        response = error_response(ApiErrorCode.E_INTERNAL, "boom", request_id="req-1")

        assert response["request_id"] == "req-1"


class TestErrorCodeToStatus:
    """Tests for error code to HTTP status mapping."""

    def test_all_error_codes_have_status_mapping(self):
        for code in ApiErrorCode:
            assert code in ERROR_CODE_TO_STATUS, f"Missing status mapping for {code}"

    def test_taxonomy_statuses(self):
        assert ValidationError().status_code == 400
        assert NotFoundError().status_code == 404
        assert ConflictError().status_code == 409
        assert UnavailableError().status_code == 503
        assert InternalError().status_code == 500

    def test_only_unavailable_is_retryable(self):
        assert UnavailableError().retryable
        assert not ValidationError().retryable
        assert not ConflictError().retryable
        assert not InternalError().retryable


class TestStorageErrorMapping:
    """StorageError -> ApiError."""

    def test_retryable_maps_to_unavailable(self):
        error = StorageError("timeout", retryable=True).to_api_error()

        assert isinstance(error, UnavailableError)
        assert error.code == ApiErrorCode.E_STORAGE_UNAVAILABLE
        assert error.status_code == 503

    def test_forbidden_maps_to_500(self):
        error = StorageError(
            "You do not have permission to upload files",
            code=ApiErrorCode.E_STORAGE_FORBIDDEN.value,
        ).to_api_error()

        assert error.status_code == 500
        assert error.message == "You do not have permission to upload files"

    def test_unknown_code_falls_back_to_storage_error(self):
        error = StorageError("odd", code="E_SOMETHING_ELSE").to_api_error()

        assert error.code == ApiErrorCode.E_STORAGE_ERROR
        assert error.status_code == 500


def _error_app() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/conflict")
    def conflict():
        raise ConflictError(ApiErrorCode.E_DOCUMENT_STATE_CONFLICT, "Document is processing")

    @app.get("/unavailable")
    def unavailable():
        raise UnavailableError(ApiErrorCode.E_UNAVAILABLE, "Database connection pool exhausted")

    @app.get("/storage")
    def storage():
        raise StorageError("Failed to upload chunk: 503", retryable=True)

    @app.get("/storage-forbidden")
    def storage_forbidden():
        raise StorageError(
            "You do not have permission to upload files",
            code=ApiErrorCode.E_STORAGE_FORBIDDEN.value,
        )

    @app.get("/boom")
    def boom():
        raise RuntimeError("secret internals")

    @app.get("/typed")
    def typed(limit: int):
        return {"limit": limit}

    return app


class TestExceptionHandlers:
    """Handlers produce the error envelope with the right status."""

    def test_api_error(self):
        client = TestClient(_error_app())
        response = client.get("/conflict")

        assert response.status_code == 409
        assert response.json() == {
            "error": "Document is processing",
            "code": "E_DOCUMENT_STATE_CONFLICT",
        }

    def test_retryable_error_sets_retry_after(self):
        client = TestClient(_error_app())
        response = client.get("/unavailable")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert response.json()["code"] == "E_UNAVAILABLE"

    def test_storage_error(self):
        client = TestClient(_error_app())
        response = client.get("/storage")

        assert response.status_code == 503
        assert response.json()["code"] == "E_STORAGE_UNAVAILABLE"

    def test_storage_permission_error_is_500(self):
        client = TestClient(_error_app())
        response = client.get("/storage-forbidden")

        assert response.status_code == 500
        assert "Retry-After" not in response.headers
        assert response.json() == {
            "error": "You do not have permission to upload files",
            "code": "E_STORAGE_FORBIDDEN",
        }

    def test_unhandled_exception_hides_details(self):
        client = TestClient(_error_app(), raise_server_exceptions=False)
        response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "E_INTERNAL"
        assert "secret" not in body["error"]

    def test_request_validation_is_400(self):
        client = TestClient(_error_app())
        response = client.get("/typed", params={"limit": "lots"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "E_INVALID_REQUEST"
        assert "limit" in body["error"]
