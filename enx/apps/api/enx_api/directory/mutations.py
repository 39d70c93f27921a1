"""Mutation coordinator: updates and bans across the two stores.

There is no transaction spanning the identity store and the profile store.
An update writes the identity metadata first, then the profile row; a failure
of either half is reported as-is and nothing is rolled back or retried.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from enx_api.directory.errors import NotFound, PartialFailure, UpstreamFailure
from enx_api.directory.models import MutationResult, UserPatch
from enx_api.directory.stores import IDENTITY_STORE, PROFILE_STORE, IdentityStore, ProfileStore

logger = logging.getLogger(__name__)


class MutationCoordinator:
    """Applies admin writes to the identity and profile stores."""

    def __init__(self, identities: IdentityStore, profiles: ProfileStore):
        self.identities = identities
        self.profiles = profiles

    def update_patch(self, identity_id: str, patch: UserPatch) -> MutationResult:
        """Write a patch to the identity metadata and the profile row.

        Both writes are attempted unless the identity no longer exists.

        Args:
            identity_id: Target identity
            patch: Fields to change

        Returns:
            MutationResult on full success

        Raises:
            NotFound: Identity does not exist (profile write skipped)
            PartialFailure: Exactly one of the two writes failed
            UpstreamFailure: Both writes failed
        """
        changes: dict[str, Any] = patch.as_changes()

        identity_error: Optional[UpstreamFailure] = None
        try:
            self.identities.update_metadata(identity_id, changes)
        except NotFound:
            raise
        except UpstreamFailure as e:
            identity_error = e

        profile_error: Optional[UpstreamFailure] = None
        profile_found = False
        try:
            profile_found = self.profiles.update_profile(identity_id, changes)
        except UpstreamFailure as e:
            profile_error = e

        fields = sorted(changes)

        if identity_error and profile_error:
            raise UpstreamFailure(
                "Update failed in both the identity and profile stores",
                stores=[IDENTITY_STORE, PROFILE_STORE],
                cause=profile_error,
            )

        if identity_error or profile_error:
            failed, succeeded, cause = (
                (IDENTITY_STORE, PROFILE_STORE, identity_error)
                if identity_error
                else (PROFILE_STORE, IDENTITY_STORE, profile_error)
            )
            logger.error(
                f"Partial update of user {identity_id}: {succeeded} written, {failed} failed",
                extra={
                    "event": "directory.update.partial_failure",
                    "user_id": identity_id,
                    "failed_store": failed,
                    "succeeded_store": succeeded,
                    "fields": fields,
                },
            )
            raise PartialFailure(
                f"User update was written to the {succeeded} store but the {failed} store "
                f"write failed; manual reconciliation required",
                failed_store=failed,
                succeeded_store=succeeded,
                cause=cause,
            )

        if not profile_found:
            logger.warning(
                f"No profile row for user {identity_id}; update kept in identity metadata only",
                extra={
                    "event": "directory.update.profile_missing",
                    "user_id": identity_id,
                    "fields": fields,
                },
            )

        logger.info(
            "User updated",
            extra={"event": "directory.user.updated", "user_id": identity_id, "fields": fields},
        )
        return MutationResult(success=True, message="User updated successfully")

    def set_ban(
        self,
        identity_id: str,
        until: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> MutationResult:
        """Ban until a timestamp, or unban with None. Identity store only.

        An end at or before now lifts the ban, the same as None: the identity
        store only takes ban durations, so a past end cannot be stored.

        Raises:
            NotFound: Identity does not exist
            UpstreamFailure: Identity store write failed
        """
        now = now or datetime.now(timezone.utc)
        if until is not None and until <= now:
            until = None

        self.identities.set_banned_until(identity_id, until)

        if until is None:
            logger.info(
                "User unbanned",
                extra={"event": "directory.user.unbanned", "user_id": identity_id},
            )
            return MutationResult(success=True, message="User unbanned successfully")

        logger.warning(
            "User banned",
            extra={
                "event": "directory.user.banned",
                "user_id": identity_id,
                "banned_until": until.isoformat(),
            },
        )
        return MutationResult(success=True, message="User banned successfully")
