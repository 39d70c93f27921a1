"""Directory data model.

IdentityRecord and ProfileRecord mirror what the two stores hand back;
DirectoryEntry and UserStats are derived per request and never persisted.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# Closed set of scalar kinds accepted in the identity metadata bag
MetadataValue = Union[str, bool, int, float, datetime]

_SCALAR_TYPES = (str, bool, int, float, datetime)


class Role(str, Enum):
    """Directory roles."""

    ADMIN = "admin"
    SUBSCRIBER = "subscriber"


class SubscriptionTier(str, Enum):
    """Subscription tiers."""

    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    """Billing status of a subscription."""

    ACTIVE = "active"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"

    @classmethod
    def _missing_(cls, value: object) -> Optional["SubscriptionStatus"]:
        # Billing provider spells it "canceled"
        if isinstance(value, str) and value.lower() == "canceled":
            return cls.CANCELLED
        return None


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def coerce_metadata(raw: Optional[Mapping[str, Any]]) -> dict[str, MetadataValue]:
    """Keep only scalar metadata values.

    Nested objects, lists and nulls are dropped so that fallback lookups only
    ever see a MetadataValue.
    """
    if not raw:
        return {}

    cleaned: dict[str, MetadataValue] = {}
    for key, value in raw.items():
        if isinstance(value, _SCALAR_TYPES):
            cleaned[str(key)] = value
        elif value is not None:
            logger.debug(
                "Dropping non-scalar metadata value",
                extra={"event": "metadata.dropped", "key": str(key), "kind": type(value).__name__},
            )
    return cleaned


def parse_enum(enum_cls: type[Enum], value: Any) -> Optional[Enum]:
    """Parse an enum member, returning None for absent or unknown values."""
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


class IdentityRecord(BaseModel):
    """Account owned by the identity store."""

    id: str
    email: str = ""
    created_at: datetime
    last_sign_in_at: Optional[datetime] = None
    banned_until: Optional[datetime] = None
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _scalar_metadata(cls, value: Any) -> dict[str, MetadataValue]:
        return coerce_metadata(value)

    @field_validator("created_at", "last_sign_in_at", "banned_until")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class ProfileRecord(BaseModel):
    """Row of the profiles table, keyed by identity id.

    Every attribute is optional here; defaults are applied by the resolver so
    that "absent" stays distinguishable from "set to the default".
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    company_name: Optional[str] = None
    role: Optional[Role] = None
    subscription_tier: Optional[SubscriptionTier] = None
    credits_remaining: Optional[int] = None
    credits_monthly_limit: Optional[int] = None
    subscription_status: Optional[SubscriptionStatus] = None

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, value: Any) -> Optional[Role]:
        return parse_enum(Role, value)

    @field_validator("subscription_tier", mode="before")
    @classmethod
    def _tier(cls, value: Any) -> Optional[SubscriptionTier]:
        return parse_enum(SubscriptionTier, value)

    @field_validator("subscription_status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Optional[SubscriptionStatus]:
        return parse_enum(SubscriptionStatus, value)


class DirectoryEntry(BaseModel):
    """Merged read model of one identity and its optional profile."""

    id: str
    email: str
    name: str
    company_name: Optional[str] = None
    role: Role
    subscription_tier: SubscriptionTier
    credits_remaining: int
    credits_monthly_limit: int
    subscription_status: SubscriptionStatus
    created_at: datetime
    last_sign_in_at: Optional[datetime] = None
    banned_until: Optional[datetime] = None
    is_banned: bool = False


class UserStats(BaseModel):
    """Aggregate counters over the whole population."""

    total_users: int = 0
    active_users: int = 0
    banned_users: int = 0
    free_tier_users: int = 0
    starter_tier_users: int = 0
    pro_tier_users: int = 0
    enterprise_tier_users: int = 0
    total_credits_used: int = 0
    new_users_this_month: int = 0


class MutationResult(BaseModel):
    """Outcome of an update or ban."""

    success: bool
    message: str


class UserListResponse(BaseModel):
    """One page of the directory listing."""

    model_config = ConfigDict(populate_by_name=True)

    users: list[DirectoryEntry]
    total: int
    page: int
    page_size: int = Field(..., alias="pageSize")
    total_pages: int = Field(..., alias="totalPages")


class UserPatch(BaseModel):
    """Body of PUT /users/{id}. Only the supplied fields are written."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, max_length=255)
    company_name: Optional[str] = Field(None, max_length=255)
    role: Optional[Role] = None
    subscription_tier: Optional[SubscriptionTier] = None
    credits_remaining: Optional[int] = Field(None, ge=0)
    credits_monthly_limit: Optional[int] = Field(None, ge=0)
    subscription_status: Optional[SubscriptionStatus] = None

    @model_validator(mode="after")
    def _not_empty(self) -> "UserPatch":
        if not self.model_fields_set:
            raise ValueError("update body must contain at least one field")
        return self

    def as_changes(self) -> dict[str, Any]:
        """JSON-ready mapping of the fields that were supplied."""
        return self.model_dump(mode="json", exclude_unset=True)


class BanRequest(BaseModel):
    """Body of POST /users/{id}/ban. ``banUntil: null`` unbans."""

    model_config = ConfigDict(populate_by_name=True)

    ban_until: Optional[datetime] = Field(..., alias="banUntil")

    @field_validator("ban_until")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)
