"""Aggregate statistics over the full identity and profile population.

Recomputed from a fresh snapshot on every call; nothing is cached.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from enx_api.directory.models import IdentityRecord, ProfileRecord, SubscriptionTier, UserStats

_TIER_FIELDS: dict[SubscriptionTier, str] = {
    SubscriptionTier.FREE: "free_tier_users",
    SubscriptionTier.STARTER: "starter_tier_users",
    SubscriptionTier.PRO: "pro_tier_users",
    SubscriptionTier.ENTERPRISE: "enterprise_tier_users",
}


def start_of_month(now: datetime) -> datetime:
    """First instant of now's calendar month (UTC)."""
    now = now.astimezone(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def aggregate(
    identities: Iterable[IdentityRecord],
    profiles: Iterable[ProfileRecord],
    *,
    now: Optional[datetime] = None,
) -> UserStats:
    """Compute UserStats.

    An identity banned until exactly ``now`` counts as neither active nor
    banned. Credits used may be negative when a profile holds more credits
    than its monthly limit; the value is reported as-is.

    Args:
        identities: Every identity in the store
        profiles: Every profile row
        now: Reference time (default: current UTC time)

    Returns:
        UserStats
    """
    now = now or datetime.now(timezone.utc)
    month_start = start_of_month(now)

    counts: dict[str, int] = {
        "total_users": 0,
        "active_users": 0,
        "banned_users": 0,
        "new_users_this_month": 0,
        "total_credits_used": 0,
    }
    counts.update({field: 0 for field in _TIER_FIELDS.values()})

    for identity in identities:
        counts["total_users"] += 1
        banned_until = identity.banned_until
        if banned_until is None or banned_until < now:
            counts["active_users"] += 1
        elif banned_until > now:
            counts["banned_users"] += 1
        if identity.created_at >= month_start:
            counts["new_users_this_month"] += 1

    for profile in profiles:
        tier_field = _TIER_FIELDS.get(profile.subscription_tier)
        if tier_field:
            counts[tier_field] += 1
        counts["total_credits_used"] += (profile.credits_monthly_limit or 0) - (
            profile.credits_remaining or 0
        )

    return UserStats(**counts)
