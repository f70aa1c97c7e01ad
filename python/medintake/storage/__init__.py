"""Storage module for Supabase Storage operations.

Provides:
- StorageClient for interacting with Supabase Storage (TUS resumable uploads)
- FakeStorageClient for tests and local development
- Path building utilities for consistent, owner-scoped storage paths
"""

from medintake.storage.client import (
    FakeStorageClient,
    ObjectMetadata,
    StorageClient,
    StorageClientBase,
    StorageError,
    UploadCanceledError,
    UploadProgress,
    get_storage_client,
)
from medintake.storage.paths import build_storage_path, is_owner_path, sanitize_file_name

__all__ = [
    "StorageClient",
    "StorageClientBase",
    "FakeStorageClient",
    "ObjectMetadata",
    "StorageError",
    "UploadCanceledError",
    "UploadProgress",
    "get_storage_client",
    "build_storage_path",
    "is_owner_path",
    "sanitize_file_name",
]
