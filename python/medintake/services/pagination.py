"""Offset/limit pagination helpers.

Caller-supplied limit/offset are clamped, never rejected. Negative values
become 0. limit is capped at MAX_PAGE_LIMIT to bound response size; offset is
capped at MAX_PAGE_OFFSET so it fits the database integer range.
has_more is computed by fetching one row past the page.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.orm import Session

T = TypeVar("T")

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 100
MAX_PAGE_OFFSET = 2**31 - 1


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the clamped window that produced it."""

    items: list[T]
    limit: int
    offset: int
    has_more: bool


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    """Clamp limit to [0, MAX_PAGE_LIMIT] and offset to [0, MAX_PAGE_OFFSET]."""
    if limit is None:
        limit = DEFAULT_PAGE_LIMIT
    if offset is None:
        offset = 0
    return max(0, min(int(limit), MAX_PAGE_LIMIT)), max(0, min(int(offset), MAX_PAGE_OFFSET))


def fetch_page(db: Session, stmt: Select, limit: int | None, offset: int | None) -> Page:
    """Execute an ordered ORM select as one page.

    Args:
        db: Database session.
        stmt: A select() of a single ORM entity, already ordered.
        limit: Requested page size (clamped).
        offset: Requested offset (clamped).
    """
    limit, offset = clamp_page(limit, offset)
    rows = list(db.execute(stmt.offset(offset).limit(limit + 1)).scalars().all())
    return Page(items=rows[:limit], limit=limit, offset=offset, has_more=len(rows) > limit)
