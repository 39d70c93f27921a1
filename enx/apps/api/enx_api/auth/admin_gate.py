"""Admin access gate.

FLOW:
1. Caller sends Authorization: Bearer <supabase session JWT>
2. Token is verified against the identity store (auth.get_user)
3. The designated administrator is let through without a profile read
4. Anyone else needs role=admin on their own profile row. The metadata role
   fallback of the directory read model is never trusted here, since users
   can write their own user_metadata

Every admin directory endpoint depends on require_admin; a missing header is
rejected before anything else happens.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from enx_api.config.env import DirectorySettings, get_directory_settings
from enx_api.context import actor_id_var
from enx_api.directory.errors import Forbidden, Unauthenticated
from enx_api.directory.models import IdentityRecord, ProfileRecord, Role
from enx_api.directory.resolver import matches_designated_admin
from enx_api.directory.service import get_identity_store, get_profile_store
from enx_api.directory.stores import IdentityStore, ProfileStore

logger = logging.getLogger(__name__)

admin_security = HTTPBearer(auto_error=False, description="Supabase JWT Session Token")


@dataclass(frozen=True)
class AdminContext:
    """Authorized administrator making the request."""

    user_id: str
    email: str
    role: Role
    designated: bool = False


def authorize(
    identity: IdentityRecord,
    profile: Optional[ProfileRecord],
    settings: DirectorySettings,
) -> AdminContext:
    """Decide whether a verified identity may use the admin API.

    Raises:
        Forbidden: Caller is neither the designated admin nor role=admin
    """
    designated = matches_designated_admin(identity, settings)
    profile_role = profile.role if profile is not None else None

    if not designated and profile_role is not Role.ADMIN:
        logger.warning(
            "Insufficient permissions: admin role required",
            extra={
                "event": "auth.insufficient_permissions",
                "user_id": identity.id,
                "role": profile_role.value if profile_role else None,
            },
        )
        raise Forbidden("Access denied. Admin privileges required.")

    return AdminContext(user_id=identity.id, email=identity.email, role=Role.ADMIN, designated=designated)


def bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(admin_security),
) -> str:
    """Extract the bearer token; a missing header is rejected first.

    Raises:
        Unauthenticated: No "Authorization: Bearer <token>" header
    """
    if not credentials or not credentials.credentials:
        raise Unauthenticated("Missing authorization header")
    return credentials.credentials


async def require_admin(
    token: str = Depends(bearer_token),
    identities: IdentityStore = Depends(get_identity_store),
    profiles: ProfileStore = Depends(get_profile_store),
    settings: DirectorySettings = Depends(get_directory_settings),
) -> AdminContext:
    """Authenticate the caller and require admin privileges.

    Raises:
        Unauthenticated: Missing header or invalid/expired token
        Forbidden: Caller is not an administrator
        UpstreamFailure: Caller's profile could not be read
    """
    identity = await run_in_threadpool(identities.verify_token, token)

    profile: Optional[ProfileRecord] = None
    if not matches_designated_admin(identity, settings):
        profile = await run_in_threadpool(profiles.get_profile, identity.id)

    admin = authorize(identity, profile, settings)
    actor_id_var.set(admin.user_id)

    logger.info(
        "Admin authenticated",
        extra={
            "event": "auth.admin.success",
            "user_id": admin.user_id,
            "designated": admin.designated,
        },
    )
    return admin
