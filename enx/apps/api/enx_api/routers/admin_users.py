"""Admin user management endpoints.

AUTHENTICATION:
- Supabase session JWT in Authorization: Bearer <token>
- Caller must be the designated administrator or have role=admin

All reads are recomputed from the identity and profile stores on every call.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from enx_api.auth.admin_gate import AdminContext, require_admin
from enx_api.directory.models import (
    BanRequest,
    DirectoryEntry,
    MutationResult,
    UserListResponse,
    UserPatch,
    UserStats,
)
from enx_api.directory.query import DEFAULT_SORT_FIELD, DEFAULT_SORT_ORDER
from enx_api.directory.service import DirectoryService, get_directory_service

router = APIRouter(prefix="/admin-user-management", tags=["admin-users"])
logger = logging.getLogger(__name__)


@router.get("/stats", response_model=UserStats)
async def get_stats(
    admin: AdminContext = Depends(require_admin),
    service: DirectoryService = Depends(get_directory_service),
) -> UserStats:
    """Aggregate user statistics.

    Raises:
        Unauthenticated 401, Forbidden 403, UpstreamFailure 500
    """
    return await service.stats()


@router.get("/users", response_model=UserListResponse)
async def list_users(
    admin: AdminContext = Depends(require_admin),
    service: DirectoryService = Depends(get_directory_service),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, alias="pageSize"),
    search: str = Query(""),
    sort_by: str = Query(DEFAULT_SORT_FIELD, alias="sortBy"),
    sort_order: str = Query(DEFAULT_SORT_ORDER, alias="sortOrder"),
) -> UserListResponse:
    """Search, sort and paginate the merged user directory.

    Unknown sortBy values fall back to created_at; unknown sortOrder values
    fall back to desc. A page past the end returns an empty list.
    """
    return await service.list_users(
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )


@router.get("/users/{user_id}", response_model=DirectoryEntry)
async def get_user(
    user_id: str,
    admin: AdminContext = Depends(require_admin),
    service: DirectoryService = Depends(get_directory_service),
) -> DirectoryEntry:
    """Merged directory entry for one user.

    Raises:
        NotFound 404: No identity with this id
    """
    return await service.get_user(user_id)


@router.put("/users/{user_id}", response_model=MutationResult)
async def update_user(
    user_id: str,
    patch: UserPatch,
    admin: AdminContext = Depends(require_admin),
    service: DirectoryService = Depends(get_directory_service),
) -> MutationResult:
    """Write a patch to the user's identity metadata and profile row.

    Raises:
        InvalidArgument 400: Empty or malformed patch
        NotFound 404: No identity with this id
        PartialFailure 500: One store written, the other failed
        UpstreamFailure 500: Both stores failed
    """
    logger.info(
        "User update requested",
        extra={
            "event": "admin.users.update",
            "user_id": user_id,
            "fields": sorted(patch.model_fields_set),
        },
    )
    return await service.update_user(user_id, patch)


@router.post("/users/{user_id}/ban", response_model=MutationResult)
async def ban_user(
    user_id: str,
    body: BanRequest,
    admin: AdminContext = Depends(require_admin),
    service: DirectoryService = Depends(get_directory_service),
) -> MutationResult:
    """Ban a user until ``banUntil``, or unban with ``banUntil: null``."""
    return await service.ban_user(user_id, body.ban_until)
