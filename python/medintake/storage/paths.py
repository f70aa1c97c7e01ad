"""Storage path building utilities.

This module provides the single point of logic for building storage paths.

Path Invariant:
    documents/{owner_id}/{epoch_ms}_{sanitized_file_name}

Rules:
    - No leading slash
    - The owner segment is the local user id
    - File names keep only [A-Za-z0-9._-]
"""

import re
import time
from uuid import UUID

STORAGE_ROOT = "documents"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_FALLBACK_NAME = "upload"


def sanitize_file_name(file_name: str) -> str:
    """Drop every character outside [A-Za-z0-9._-].

    Returns "upload" if nothing usable remains (a name made only of dots is
    also replaced, so the last path segment can never be "." or "..").
    """
    cleaned = _UNSAFE_CHARS.sub("", file_name)
    if not cleaned.strip("."):
        return _FALLBACK_NAME
    return cleaned


def owner_prefix(owner_id: UUID | str) -> str:
    """Path prefix under which all of an owner's objects live."""
    return f"{STORAGE_ROOT}/{owner_id}/"


def build_storage_path(
    owner_id: UUID | str, file_name: str, timestamp_ms: int | None = None
) -> str:
    """Build the full storage path for an uploaded file.

    Example:
        >>> build_storage_path(owner_id, "lab results (1).pdf", 1700000000000)
        'documents/<owner_id>/1700000000000_labresults1.pdf'
    """
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    return f"{owner_prefix(owner_id)}{timestamp_ms}_{sanitize_file_name(file_name)}"


def is_owner_path(path: str, owner_id: UUID | str) -> bool:
    """True if path is a single object directly under the owner's prefix."""
    prefix = owner_prefix(owner_id)
    if not path.startswith(prefix):
        return False
    name = path[len(prefix) :]
    return bool(name) and "/" not in name and name not in (".", "..")
