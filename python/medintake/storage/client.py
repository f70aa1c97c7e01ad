"""Object storage for uploaded documents.

StorageClient talks to the Supabase Storage REST API with httpx and uploads
through its TUS resumable endpoint, one fixed-size PATCH per chunk, so large
scans report progress and can be canceled between chunks. FakeStorageClient
keeps objects in memory for local runs and tests. Both take full storage
paths ("documents/{owner_id}/{ts}_{name}") as-is.

Failures surface as StorageError:
- 401/403: permission failure, not retryable
- 408/429/5xx and transport errors: retryable
- anything else: not retryable
"""

import base64
import io
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO

import httpx

from medintake.config import Settings, get_settings
from medintake.errors import ApiError, ApiErrorCode, UnavailableError
from medintake.logging import get_logger

logger = get_logger(__name__)

TUS_VERSION = "1.0.0"
# Supabase requires every chunk but the last to be exactly 6 MiB
DEFAULT_CHUNK_BYTES = 6 * 1024 * 1024

RETRYABLE_STATUS_CODES = frozenset({408, 429})


@dataclass(frozen=True)
class UploadProgress:
    """Progress snapshot reported after each transferred chunk.

    progress is a percentage in [0, 100].
    """

    progress: float
    bytes_transferred: int
    total_bytes: int


@dataclass(frozen=True)
class ObjectMetadata:
    """What the store reports about an object. Existence is the only fact to rely on."""

    content_type: str
    size_bytes: int


ProgressCallback = Callable[[UploadProgress], None]


class StorageError(Exception):
    """Storage operation error.

    code is an ApiErrorCode value; retryable marks transient failures.
    """

    def __init__(
        self,
        message: str,
        code: str = ApiErrorCode.E_STORAGE_ERROR.value,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable

    def to_api_error(self) -> ApiError:
        """Map onto the API error taxonomy for HTTP callers."""
        if self.retryable:
            return UnavailableError(ApiErrorCode.E_STORAGE_UNAVAILABLE, self.message)
        try:
            code = ApiErrorCode(self.code)
        except ValueError:
            code = ApiErrorCode.E_STORAGE_ERROR
        return ApiError(code, self.message)


class UploadCanceledError(StorageError):
    """Upload stopped because the cancellation token was set."""

    def __init__(self, message: str = "Upload was canceled"):
        super().__init__(message)


def _progress(transferred: int, total: int) -> UploadProgress:
    percent = 100.0 if total == 0 else transferred / total * 100
    return UploadProgress(progress=percent, bytes_transferred=transferred, total_bytes=total)


def _as_stream(data: bytes | BinaryIO) -> BinaryIO:
    if isinstance(data, bytes | bytearray):
        return io.BytesIO(data)
    return data


class StorageClientBase(ABC):
    @abstractmethod
    def upload_object(
        self,
        path: str,
        data: bytes | BinaryIO,
        *,
        size: int,
        content_type: str,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Store size bytes from data at path.

        on_progress receives an UploadProgress after every chunk; cancel_event
        is checked before each chunk.

        Raises:
            UploadCanceledError: cancel_event was set.
            StorageError: The store rejected or failed the upload.
        """

    @abstractmethod
    def object_url(self, path: str) -> str:
        """Stable URL of an object (requires authorization to fetch)."""

    @abstractmethod
    def head_object(self, path: str) -> ObjectMetadata | None:
        """Metadata for path, or None when nothing is stored there."""

    @abstractmethod
    def delete_object(self, path: str) -> None:
        """Remove path. Never raises; failures are logged."""


def classify_response(response: httpx.Response, action: str) -> StorageError:
    """Build the StorageError for a failed storage response."""
    status = response.status_code
    if status in (401, 403):
        return StorageError(
            "You do not have permission to upload files",
            code=ApiErrorCode.E_STORAGE_FORBIDDEN.value,
        )
    message = f"Failed to {action}: {status}"
    if status in RETRYABLE_STATUS_CODES or status >= 500:
        return StorageError(
            message, code=ApiErrorCode.E_STORAGE_UNAVAILABLE.value, retryable=True
        )
    return StorageError(message)


def _network_error(action: str, error: httpx.TransportError) -> StorageError:
    return StorageError(
        f"Network error during {action}: {error}",
        code=ApiErrorCode.E_STORAGE_UNAVAILABLE.value,
        retryable=True,
    )


class StorageClient(StorageClientBase):
    """Supabase Storage over HTTPS, authenticated with the service role key."""

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "documents",
        chunk_size: int = DEFAULT_CHUNK_BYTES,
        timeout: float = 30.0,
    ):
        self._storage_url = f"{supabase_url.rstrip('/')}/storage/v1"
        self._bucket = bucket
        self._chunk_size = chunk_size
        self._timeout = timeout
        self._auth_headers = {"Authorization": f"Bearer {service_key}", "apikey": service_key}

    def _http(self) -> httpx.Client:
        return httpx.Client(
            base_url=self._storage_url, headers=self._auth_headers, timeout=self._timeout
        )

    def _object_path(self, path: str) -> str:
        return f"/object/{self._bucket}/{path}"

    def _upload_metadata(self, path: str, content_type: str) -> str:
        fields = {"bucketName": self._bucket, "objectName": path, "contentType": content_type}
        return ",".join(
            f"{key} {base64.b64encode(value.encode()).decode()}" for key, value in fields.items()
        )

    def upload_object(
        self,
        path: str,
        data: bytes | BinaryIO,
        *,
        size: int,
        content_type: str,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Create a TUS upload, then PATCH it chunk by chunk."""
        stream = _as_stream(data)
        tus = {"Tus-Resumable": TUS_VERSION}

        try:
            with self._http() as http:
                created = http.post(
                    "/upload/resumable",
                    headers={
                        **tus,
                        "Upload-Length": str(size),
                        "Upload-Metadata": self._upload_metadata(path, content_type),
                        "x-upsert": "false",
                    },
                )
                if created.status_code != 201:
                    raise classify_response(created, "create upload")
                location = created.headers.get("location")
                if not location:
                    raise StorageError("Failed to create upload: missing Location header")
                upload_url = httpx.URL(self._storage_url + "/").join(location)

                offset = 0
                while offset < size:
                    if cancel_event is not None and cancel_event.is_set():
                        raise UploadCanceledError()
                    chunk = stream.read(self._chunk_size)
                    if not chunk:
                        raise StorageError(
                            f"Stream ended at {offset} of {size} bytes",
                            code=ApiErrorCode.E_INVALID_REQUEST.value,
                        )

                    patched = http.patch(
                        upload_url,
                        headers={
                            **tus,
                            "Upload-Offset": str(offset),
                            "Content-Type": "application/offset+octet-stream",
                        },
                        content=chunk,
                    )
                    if patched.status_code != 204:
                        raise classify_response(patched, "upload chunk")

                    offset = int(patched.headers.get("upload-offset", offset + len(chunk)))
                    if on_progress is not None:
                        on_progress(_progress(offset, size))
        except httpx.TransportError as e:
            raise _network_error("upload", e) from e

        logger.info("storage_upload_completed", storage_path=path, size_bytes=size)

    def object_url(self, path: str) -> str:
        return f"{self._storage_url}/object/authenticated/{self._bucket}/{path}"

    def head_object(self, path: str) -> ObjectMetadata | None:
        try:
            with self._http() as http:
                response = http.head(self._object_path(path))
        except httpx.TransportError as e:
            raise _network_error("object check", e) from e

        # Supabase answers 400 for some missing objects
        if response.status_code in (400, 404):
            return None
        if response.status_code != 200:
            raise classify_response(response, "check object")
        return ObjectMetadata(
            content_type=response.headers.get("content-type", "application/octet-stream"),
            size_bytes=int(response.headers.get("content-length", "0")),
        )

    def delete_object(self, path: str) -> None:
        try:
            with self._http() as http:
                response = http.delete(self._object_path(path))
        except httpx.HTTPError as e:
            logger.warning("storage_delete_error", storage_path=path, error=str(e))
            return
        if response.status_code not in (200, 204, 404):
            logger.warning(
                "storage_delete_failed", storage_path=path, status_code=response.status_code
            )


class FakeStorageClient(StorageClientBase):
    """In-memory store with the same chunking and progress behavior."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_BYTES):
        self._objects: dict[str, tuple[bytes, str]] = {}
        self._chunk_size = chunk_size

    def upload_object(
        self,
        path: str,
        data: bytes | BinaryIO,
        *,
        size: int,
        content_type: str,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        stream = _as_stream(data)
        received = bytearray()
        while len(received) < size:
            if cancel_event is not None and cancel_event.is_set():
                raise UploadCanceledError()
            chunk = stream.read(min(self._chunk_size, size - len(received)))
            if not chunk:
                raise StorageError(
                    f"Stream ended at {len(received)} of {size} bytes",
                    code=ApiErrorCode.E_INVALID_REQUEST.value,
                )
            received.extend(chunk)
            if on_progress is not None:
                on_progress(_progress(len(received), size))
        self._objects[path] = (bytes(received), content_type)

    def object_url(self, path: str) -> str:
        return f"https://fake-storage.test/object/{path}"

    def head_object(self, path: str) -> ObjectMetadata | None:
        stored = self._objects.get(path)
        if stored is None:
            return None
        content, content_type = stored
        return ObjectMetadata(content_type=content_type, size_bytes=len(content))

    def delete_object(self, path: str) -> None:
        self._objects.pop(path, None)

    def put_object(self, path: str, content: bytes, content_type: str = "application/pdf") -> None:
        """Seed an object without going through upload_object."""
        self._objects[path] = (content, content_type)

    def get_object(self, path: str) -> bytes | None:
        stored = self._objects.get(path)
        return stored[0] if stored else None


def get_storage_client(settings: Settings | None = None) -> StorageClientBase:
    """StorageClient when Supabase credentials are configured, else in-memory."""
    settings = settings or get_settings()

    if settings.supabase_url and settings.supabase_service_key:
        return StorageClient(
            supabase_url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            bucket=settings.storage_bucket,
            chunk_size=settings.upload_chunk_bytes,
        )

    logger.warning("storage_not_configured_using_memory")
    return FakeStorageClient(chunk_size=settings.upload_chunk_bytes)
