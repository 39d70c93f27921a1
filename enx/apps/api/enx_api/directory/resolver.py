"""Merge resolver: identity record + optional profile -> DirectoryEntry.

Precedence for every field, first match wins:
    profile value -> identity metadata value -> default

The designated administrator is an override, not a fallback: its role is
always admin (and its tier enterprise when tier elevation is enabled).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from enx_api.config.env import DirectorySettings
from enx_api.directory.models import (
    DirectoryEntry,
    IdentityRecord,
    MetadataValue,
    ProfileRecord,
    Role,
    SubscriptionStatus,
    SubscriptionTier,
    parse_enum,
)

ADMIN_DISPLAY_NAME = "Admin User"

TIER_DEFAULT_CREDITS: dict[SubscriptionTier, int] = {
    SubscriptionTier.FREE: 50,
    SubscriptionTier.PRO: 2000,
    SubscriptionTier.ENTERPRISE: 10000,
}
FALLBACK_TIER_CREDITS = 50


def default_credits(tier: SubscriptionTier) -> int:
    """Monthly credit allowance for a tier (unknown tiers get 50)."""
    return TIER_DEFAULT_CREDITS.get(tier, FALLBACK_TIER_CREDITS)


def matches_designated_admin(identity: IdentityRecord, settings: DirectorySettings) -> bool:
    """Whether the identity is the configured bootstrap administrator."""
    if settings.admin_user_id and identity.id == settings.admin_user_id:
        return True
    if settings.admin_email and identity.email:
        return identity.email.strip().lower() == settings.admin_email.strip().lower()
    return False


def is_banned(banned_until: Optional[datetime], now: datetime) -> bool:
    """Suspended only while banned_until lies in the future."""
    return banned_until is not None and banned_until > now


def _meta_str(metadata: dict[str, MetadataValue], key: str) -> Optional[str]:
    value = metadata.get(key)
    if isinstance(value, str) and value:
        return value
    return None


def _meta_int(metadata: dict[str, MetadataValue], key: str) -> Optional[int]:
    value = metadata.get(key)
    # bool is an int subclass; a flag is not a credit count
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _meta_enum(metadata: dict[str, MetadataValue], key: str, enum_cls: type[Enum]):
    return parse_enum(enum_cls, metadata.get(key))


def _first(*candidates):
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def resolve(
    identity: IdentityRecord,
    profile: Optional[ProfileRecord],
    is_designated_admin: bool,
    *,
    elevate_admin_tier: bool = False,
    now: Optional[datetime] = None,
) -> DirectoryEntry:
    """Merge one identity with its profile.

    Args:
        identity: Account from the identity store
        profile: Matching profile row, or None when no row exists
        is_designated_admin: Identity matches the configured administrator
        elevate_admin_tier: Force enterprise tier for the designated admin
        now: Reference time for ``is_banned`` (default: current UTC time)

    Returns:
        DirectoryEntry
    """
    now = now or datetime.now(timezone.utc)
    metadata = identity.metadata

    def from_profile(attr: str):
        if profile is None:
            return None
        value = getattr(profile, attr)
        if isinstance(value, str) and not value:
            return None
        return value

    if is_designated_admin:
        role = Role.ADMIN
    else:
        role = _first(from_profile("role"), _meta_enum(metadata, "role", Role), Role.SUBSCRIBER)

    if is_designated_admin and elevate_admin_tier:
        tier = SubscriptionTier.ENTERPRISE
    else:
        tier = _first(
            from_profile("subscription_tier"),
            _meta_enum(metadata, "subscription_tier", SubscriptionTier),
            SubscriptionTier.FREE,
        )

    tier_credits = default_credits(tier)

    local_part = identity.email.split("@", 1)[0]
    name = _first(
        from_profile("name"),
        _meta_str(metadata, "name"),
        ADMIN_DISPLAY_NAME if is_designated_admin else local_part,
    )

    return DirectoryEntry(
        id=identity.id,
        email=identity.email,
        name=name,
        company_name=_first(from_profile("company_name"), _meta_str(metadata, "company_name")),
        role=role,
        subscription_tier=tier,
        credits_remaining=_first(
            from_profile("credits_remaining"),
            _meta_int(metadata, "credits_remaining"),
            tier_credits,
        ),
        credits_monthly_limit=_first(
            from_profile("credits_monthly_limit"),
            _meta_int(metadata, "credits_monthly_limit"),
            tier_credits,
        ),
        subscription_status=_first(
            from_profile("subscription_status"),
            _meta_enum(metadata, "subscription_status", SubscriptionStatus),
            SubscriptionStatus.ACTIVE,
        ),
        created_at=identity.created_at,
        last_sign_in_at=identity.last_sign_in_at,
        banned_until=identity.banned_until,
        is_banned=is_banned(identity.banned_until, now),
    )
