"""User directory: merge, query, statistics and admin mutations."""

from enx_api.directory.errors import (
    DirectoryError,
    Forbidden,
    InvalidArgument,
    NotFound,
    PartialFailure,
    Unauthenticated,
    UpstreamFailure,
)
from enx_api.directory.models import DirectoryEntry, IdentityRecord, ProfileRecord, UserStats
from enx_api.directory.query import query
from enx_api.directory.resolver import resolve
from enx_api.directory.stats import aggregate

__all__ = [
    "DirectoryEntry",
    "DirectoryError",
    "Forbidden",
    "IdentityRecord",
    "InvalidArgument",
    "NotFound",
    "PartialFailure",
    "ProfileRecord",
    "Unauthenticated",
    "UpstreamFailure",
    "UserStats",
    "aggregate",
    "query",
    "resolve",
]
