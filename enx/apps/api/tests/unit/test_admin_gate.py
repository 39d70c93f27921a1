"""Tests for the admin authorization decision."""

from datetime import datetime, timezone

import pytest

from enx_api.auth.admin_gate import authorize
from enx_api.config.env import DirectorySettings
from enx_api.directory.errors import Forbidden
from enx_api.directory.models import IdentityRecord, ProfileRecord, Role

SETTINGS = DirectorySettings(admin_email="admin@enrichx.com")
CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _identity(identity_id: str, email: str, **kwargs) -> IdentityRecord:
    return IdentityRecord(id=identity_id, email=email, created_at=CREATED, **kwargs)


def test_designated_admin_needs_no_profile():
    admin = authorize(_identity("a-1", "admin@enrichx.com"), None, SETTINGS)

    assert admin.user_id == "a-1"
    assert admin.role is Role.ADMIN
    assert admin.designated is True


def test_profile_admin_is_allowed():
    profile = ProfileRecord(id="p-1", role="admin")

    admin = authorize(_identity("p-1", "ops@enrichx.com"), profile, SETTINGS)

    assert admin.designated is False
    assert admin.role is Role.ADMIN


def test_metadata_admin_without_profile_is_forbidden():
    identity = _identity("m-1", "meta@enrichx.com", metadata={"role": "admin"})

    with pytest.raises(Forbidden):
        authorize(identity, None, SETTINGS)


def test_metadata_admin_with_null_profile_role_is_forbidden():
    identity = _identity("m-1", "meta@enrichx.com", metadata={"role": "admin"})

    with pytest.raises(Forbidden):
        authorize(identity, ProfileRecord(id="m-1"), SETTINGS)


def test_profile_role_beats_metadata_role():
    identity = _identity("m-1", "meta@enrichx.com", metadata={"role": "admin"})
    profile = ProfileRecord(id="m-1", role="subscriber")

    with pytest.raises(Forbidden):
        authorize(identity, profile, SETTINGS)


def test_subscriber_is_forbidden():
    with pytest.raises(Forbidden) as exc_info:
        authorize(_identity("s-1", "alice@acme.io"), None, SETTINGS)

    assert exc_info.value.detail == "Access denied. Admin privileges required."
    assert exc_info.value.status_code == 403
