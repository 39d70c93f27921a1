"""Directory service: joins store reads and routes to the pure components.

The Supabase client is synchronous, so store calls run in the threadpool;
the identity and profile snapshots for one request are fetched concurrently
and joined before merging.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends
from starlette.concurrency import run_in_threadpool

from enx_api.config.env import DirectorySettings, get_directory_settings
from enx_api.directory.errors import InvalidArgument
from enx_api.directory.models import (
    DirectoryEntry,
    IdentityRecord,
    MutationResult,
    ProfileRecord,
    UserListResponse,
    UserPatch,
    UserStats,
)
from enx_api.directory.mutations import MutationCoordinator
from enx_api.directory.query import query
from enx_api.directory.resolver import matches_designated_admin, resolve
from enx_api.directory.stats import aggregate
from enx_api.directory.stores import (
    IdentityStore,
    ProfileStore,
    SupabaseIdentityStore,
    SupabaseProfileStore,
)
from enx_api.supabase_client import get_supabase_admin_client, get_supabase_client

logger = logging.getLogger(__name__)


class DirectoryService:
    """Request-scoped entry point for every admin directory operation."""

    def __init__(
        self,
        identities: IdentityStore,
        profiles: ProfileStore,
        settings: DirectorySettings,
    ):
        self.identities = identities
        self.profiles = profiles
        self.settings = settings
        self.mutations = MutationCoordinator(identities, profiles)

    def merge(
        self,
        identity: IdentityRecord,
        profile: Optional[ProfileRecord],
        now: Optional[datetime] = None,
    ) -> DirectoryEntry:
        return resolve(
            identity,
            profile,
            matches_designated_admin(identity, self.settings),
            elevate_admin_tier=self.settings.admin_tier_override,
            now=now,
        )

    async def _snapshot(self) -> tuple[list[IdentityRecord], list[ProfileRecord]]:
        identities, profiles = await asyncio.gather(
            run_in_threadpool(self.identities.list_identities),
            run_in_threadpool(self.profiles.list_profiles),
        )
        return identities, profiles

    async def stats(self) -> UserStats:
        identities, profiles = await self._snapshot()
        return aggregate(identities, profiles)

    async def list_users(
        self,
        *,
        search: str = "",
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> UserListResponse:
        """Merged, filtered, sorted page of the directory."""
        page_size = page_size or self.settings.default_page_size
        identities, profiles = await self._snapshot()

        profile_map = {profile.id: profile for profile in profiles}
        now = datetime.now(timezone.utc)
        entries = [self.merge(identity, profile_map.get(identity.id), now) for identity in identities]

        try:
            result = query(
                entries,
                search=search,
                sort_field=sort_by,
                sort_order=sort_order,
                page=page,
                page_size=page_size,
            )
        except ValueError as e:
            raise InvalidArgument(str(e)) from e

        logger.info(
            "Directory listed",
            extra={
                "event": "directory.users.listed",
                "total": result.total,
                "page": page,
                "page_size": page_size,
                "searched": bool(search),
            },
        )

        return UserListResponse(
            users=result.items,
            total=result.total,
            page=page,
            page_size=page_size,
            total_pages=result.total_pages,
        )

    async def get_user(self, identity_id: str) -> DirectoryEntry:
        """Merged entry for one identity.

        Raises:
            NotFound: No identity with this id
        """
        identity, profile = await asyncio.gather(
            run_in_threadpool(self.identities.get_identity, identity_id),
            run_in_threadpool(self.profiles.get_profile, identity_id),
        )
        return self.merge(identity, profile)

    async def update_user(self, identity_id: str, patch: UserPatch) -> MutationResult:
        return await run_in_threadpool(self.mutations.update_patch, identity_id, patch)

    async def ban_user(self, identity_id: str, until: Optional[datetime]) -> MutationResult:
        return await run_in_threadpool(self.mutations.set_ban, identity_id, until)


def get_identity_store(
    settings: DirectorySettings = Depends(get_directory_settings),
) -> IdentityStore:
    """Supabase-backed identity store (FastAPI dependency)."""
    return SupabaseIdentityStore(
        get_supabase_admin_client(),
        get_supabase_client(),
        per_page=settings.list_users_per_page,
    )


def get_profile_store(
    settings: DirectorySettings = Depends(get_directory_settings),
) -> ProfileStore:
    """Supabase-backed profile store (FastAPI dependency)."""
    return SupabaseProfileStore(get_supabase_admin_client(), table=settings.profiles_table)


def get_directory_service(
    identities: IdentityStore = Depends(get_identity_store),
    profiles: ProfileStore = Depends(get_profile_store),
    settings: DirectorySettings = Depends(get_directory_settings),
) -> DirectoryService:
    return DirectoryService(identities, profiles, settings)
