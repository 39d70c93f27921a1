"""Search, sort and pagination over directory entries.

Sorting goes through an explicit comparator table: each sortable field has a
kind with a defined ordering, so mixed or missing values never reach a raw
comparison. Python's sort is stable for both ascending and ``reverse=True``,
which keeps equal keys in arrival order and makes pagination reproducible.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from enx_api.directory.models import DirectoryEntry

logger = logging.getLogger(__name__)

DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_ORDER = "desc"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SortKind(str, Enum):
    """Value kinds and their orderings."""

    STRING = "string"  # code-point order
    TIMESTAMP = "timestamp"  # chronological
    INTEGER = "integer"
    ENUM = "enum"  # by stored string value
    BOOLEAN = "boolean"


_PLACEHOLDERS: dict[SortKind, Any] = {
    SortKind.STRING: "",
    SortKind.TIMESTAMP: _EPOCH,
    SortKind.INTEGER: 0,
    SortKind.ENUM: "",
    SortKind.BOOLEAN: False,
}

SORT_FIELDS: dict[str, SortKind] = {
    "id": SortKind.STRING,
    "email": SortKind.STRING,
    "name": SortKind.STRING,
    "company_name": SortKind.STRING,
    "role": SortKind.ENUM,
    "subscription_tier": SortKind.ENUM,
    "credits_remaining": SortKind.INTEGER,
    "credits_monthly_limit": SortKind.INTEGER,
    "subscription_status": SortKind.ENUM,
    "created_at": SortKind.TIMESTAMP,
    "last_sign_in_at": SortKind.TIMESTAMP,
    "banned_until": SortKind.TIMESTAMP,
    "is_banned": SortKind.BOOLEAN,
}


@dataclass(frozen=True)
class QueryPage:
    """One page of a filtered, sorted directory."""

    items: list[DirectoryEntry]
    total: int
    total_pages: int


def sort_key(field: str) -> Callable[[DirectoryEntry], tuple]:
    """Build a sort key for a field from the comparator table.

    Absent values order before present ones (ascending).

    Raises:
        KeyError: If field is not in SORT_FIELDS
    """
    kind = SORT_FIELDS[field]
    placeholder = _PLACEHOLDERS[kind]

    def key(entry: DirectoryEntry) -> tuple:
        value = getattr(entry, field)
        if value is None:
            return (0, placeholder)
        if kind is SortKind.ENUM:
            value = value.value
        return (1, value)

    return key


def normalize_sort_field(sort_field: Optional[str]) -> str:
    """Map unknown sort fields to created_at."""
    if sort_field in SORT_FIELDS:
        return sort_field
    if sort_field:
        logger.warning(
            f"Unknown sort field '{sort_field}', falling back to {DEFAULT_SORT_FIELD}",
            extra={"event": "directory.query.sort_fallback", "sort_field": sort_field},
        )
    return DEFAULT_SORT_FIELD


def normalize_sort_order(sort_order: Optional[str]) -> str:
    """Return "asc" or "desc" (anything else falls back to desc)."""
    order = (sort_order or "").lower()
    return order if order in ("asc", "desc") else DEFAULT_SORT_ORDER


def matches_search(entry: DirectoryEntry, needle: str) -> bool:
    """Case-insensitive substring match on email, name or company name.

    ``needle`` must already be lower-cased.
    """
    for value in (entry.email, entry.name, entry.company_name):
        if value and needle in value.lower():
            return True
    return False


def query(
    entries: Iterable[DirectoryEntry],
    search: str = "",
    sort_field: Optional[str] = DEFAULT_SORT_FIELD,
    sort_order: Optional[str] = DEFAULT_SORT_ORDER,
    page: int = 1,
    page_size: int = 10,
) -> QueryPage:
    """Filter, sort and slice directory entries.

    Args:
        entries: Entries in store order
        search: Substring to look for (empty = no filter)
        sort_field: Entry field to sort by (unknown -> created_at)
        sort_order: "asc" or "desc" (unknown -> desc)
        page: 1-based page number
        page_size: Entries per page

    Returns:
        QueryPage; a page past the end is empty with the real total

    Raises:
        ValueError: If page or page_size is below 1
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    selected = list(entries)
    if search:
        needle = search.lower()
        selected = [entry for entry in selected if matches_search(entry, needle)]

    field = normalize_sort_field(sort_field)
    descending = normalize_sort_order(sort_order) == "desc"
    ordered = sorted(selected, key=sort_key(field), reverse=descending)

    total = len(ordered)
    start = (page - 1) * page_size
    return QueryPage(
        items=ordered[start:start + page_size],
        total=total,
        total_pages=math.ceil(total / page_size),
    )
