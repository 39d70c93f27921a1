"""Identity and profile store adapters.

The directory only talks to the two stores through the IdentityStore and
ProfileStore protocols. The Supabase implementations wrap the auth admin API
(identity) and the profiles table (profile); every client exception is
re-raised as a DirectoryError naming the store, so callers can tell which
side failed.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, runtime_checkable

from supabase import Client

from enx_api.directory.errors import DirectoryError, NotFound, Unauthenticated, UpstreamFailure
from enx_api.directory.models import IdentityRecord, ProfileRecord

logger = logging.getLogger(__name__)

IDENTITY_STORE = "identity"
PROFILE_STORE = "profile"

# GoTrue duration that lifts a ban
UNBAN_DURATION = "none"

# PostgREST caps a single select at its max-rows setting (1000 by default)
PROFILE_PAGE_SIZE = 1000


@runtime_checkable
class IdentityStore(Protocol):
    """Authoritative accounts."""

    def list_identities(self) -> list[IdentityRecord]:
        """Every identity, in store order."""

    def get_identity(self, identity_id: str) -> IdentityRecord:
        """One identity; raises NotFound if it does not exist."""

    def verify_token(self, token: str) -> IdentityRecord:
        """Identity behind a session JWT; raises Unauthenticated."""

    def update_metadata(self, identity_id: str, changes: dict[str, Any]) -> None:
        """Merge changes into the identity's metadata bag."""

    def set_banned_until(self, identity_id: str, until: Optional[datetime]) -> None:
        """Set (or clear with None) the suspension timestamp."""


@runtime_checkable
class ProfileStore(Protocol):
    """Product-specific attributes keyed by identity id."""

    def list_profiles(self) -> list[ProfileRecord]:
        """Every profile row."""

    def get_profile(self, identity_id: str) -> Optional[ProfileRecord]:
        """The profile row for an identity, or None."""

    def update_profile(self, identity_id: str, changes: dict[str, Any]) -> bool:
        """Apply changes; returns False when no row exists for the id."""


def _attr(obj: Any, name: str) -> Any:
    """Read a field from a client model or plain dict.

    Fields the client model does not declare may still be present in its
    pydantic extras.
    """
    if isinstance(obj, dict):
        return obj.get(name)
    value = getattr(obj, name, None)
    if value is None:
        extra = getattr(obj, "model_extra", None) or {}
        value = extra.get(name)
    return value


def identity_from_user(user: Any) -> IdentityRecord:
    """Convert a Supabase auth user into an IdentityRecord."""
    return IdentityRecord(
        id=str(_attr(user, "id")),
        email=_attr(user, "email") or "",
        created_at=_attr(user, "created_at"),
        last_sign_in_at=_attr(user, "last_sign_in_at"),
        banned_until=_attr(user, "banned_until"),
        metadata=_attr(user, "user_metadata") or {},
    )


def ban_duration(until: Optional[datetime], now: Optional[datetime] = None) -> str:
    """GoTrue ``ban_duration`` for an absolute ban end.

    GoTrue bans for a duration from now; a past or missing end lifts the ban.
    The duration is rounded up to whole seconds against the local clock, so
    re-sending the same end moves the stored ban_until by up to a second plus
    any skew between this host and GoTrue. Idempotency of a repeated ban is
    therefore only second-exact.
    """
    if until is None:
        return UNBAN_DURATION
    now = now or datetime.now(timezone.utc)
    seconds = math.ceil((until - now).total_seconds())
    if seconds <= 0:
        return UNBAN_DURATION
    return f"{seconds}s"


def _is_not_found(exc: BaseException) -> bool:
    return getattr(exc, "status", None) == 404 or getattr(exc, "code", None) == "user_not_found"


class SupabaseIdentityStore:
    """Identity store backed by Supabase Auth."""

    name = IDENTITY_STORE

    def __init__(self, admin_client: Client, session_client: Client, per_page: int = 1000):
        self.admin_client = admin_client
        self.session_client = session_client
        self.per_page = per_page

    def _fail(self, action: str, exc: Exception, identity_id: Optional[str] = None) -> DirectoryError:
        if identity_id is not None and _is_not_found(exc):
            return NotFound(f"User not found: {identity_id}")
        logger.error(
            f"Identity store {action} failed: {exc}",
            extra={"event": f"store.identity.{action}_failed", "user_id": identity_id},
        )
        return UpstreamFailure(
            f"Identity store {action} failed", stores=[IDENTITY_STORE], cause=exc
        )

    def list_identities(self) -> list[IdentityRecord]:
        identities: list[IdentityRecord] = []
        page = 1
        while True:
            try:
                users = self.admin_client.auth.admin.list_users(page=page, per_page=self.per_page)
            except Exception as e:
                raise self._fail("list", e) from e
            identities.extend(identity_from_user(user) for user in users)
            if len(users) < self.per_page:
                return identities
            page += 1

    def get_identity(self, identity_id: str) -> IdentityRecord:
        try:
            response = self.admin_client.auth.admin.get_user_by_id(identity_id)
        except Exception as e:
            raise self._fail("get", e, identity_id) from e
        if not response or not response.user:
            raise NotFound(f"User not found: {identity_id}")
        return identity_from_user(response.user)

    def verify_token(self, token: str) -> IdentityRecord:
        try:
            response = self.session_client.auth.get_user(token)
        except Exception as e:
            logger.info(
                f"Session token rejected: {e}",
                extra={"event": "store.identity.token_rejected"},
            )
            raise Unauthenticated("Invalid or expired session token") from e
        if not response or not response.user:
            raise Unauthenticated("Invalid or expired session token")
        return identity_from_user(response.user)

    def update_metadata(self, identity_id: str, changes: dict[str, Any]) -> None:
        try:
            self.admin_client.auth.admin.update_user_by_id(
                identity_id, {"user_metadata": changes}
            )
        except Exception as e:
            raise self._fail("update", e, identity_id) from e

    def set_banned_until(self, identity_id: str, until: Optional[datetime]) -> None:
        try:
            self.admin_client.auth.admin.update_user_by_id(
                identity_id, {"ban_duration": ban_duration(until)}
            )
        except Exception as e:
            raise self._fail("ban", e, identity_id) from e


class SupabaseProfileStore:
    """Profile store backed by the profiles table."""

    name = PROFILE_STORE

    def __init__(self, admin_client: Client, table: str = "profiles"):
        self.admin_client = admin_client
        self.table = table

    def _fail(self, action: str, exc: Exception, identity_id: Optional[str] = None) -> UpstreamFailure:
        logger.error(
            f"Profile store {action} failed: {exc}",
            extra={"event": f"store.profile.{action}_failed", "user_id": identity_id},
        )
        return UpstreamFailure(f"Profile store {action} failed", stores=[PROFILE_STORE], cause=exc)

    def list_profiles(self) -> list[ProfileRecord]:
        rows: list[dict] = []
        start = 0
        while True:
            try:
                response = (
                    self.admin_client.table(self.table)
                    .select("*")
                    .order("id")
                    .range(start, start + PROFILE_PAGE_SIZE - 1)
                    .execute()
                )
            except Exception as e:
                raise self._fail("list", e) from e
            batch = response.data or []
            rows.extend(batch)
            if len(batch) < PROFILE_PAGE_SIZE:
                return [ProfileRecord.model_validate(row) for row in rows]
            start += PROFILE_PAGE_SIZE

    def get_profile(self, identity_id: str) -> Optional[ProfileRecord]:
        try:
            response = (
                self.admin_client.table(self.table)
                .select("*")
                .eq("id", identity_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise self._fail("get", e, identity_id) from e
        rows = response.data or []
        return ProfileRecord.model_validate(rows[0]) if rows else None

    def update_profile(self, identity_id: str, changes: dict[str, Any]) -> bool:
        try:
            response = (
                self.admin_client.table(self.table)
                .update(changes)
                .eq("id", identity_id)
                .execute()
            )
        except Exception as e:
            raise self._fail("update", e, identity_id) from e
        return bool(response.data)
