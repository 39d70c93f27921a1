"""Tests for the mutation coordinator.

Test Coverage:
1. Update writes both stores with the same changes
2. Missing identity: NotFound, profile write skipped
3. Identity written, profile failed: PartialFailure(profile), no retry
4. Identity failed, profile written: PartialFailure(identity)
5. Both failed: UpstreamFailure naming both stores
6. Missing profile row: success, warning logged
7. Ban and unban touch the identity store only
8. A ban end at or before now is an unban
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from enx_api.directory.errors import NotFound, PartialFailure, UpstreamFailure
from enx_api.directory.models import UserPatch
from enx_api.directory.mutations import MutationCoordinator
from enx_api.directory.stores import IDENTITY_STORE, PROFILE_STORE

BAN_END = datetime(2030, 1, 1, tzinfo=timezone.utc)
NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def identities():
    store = MagicMock()
    store.update_metadata.return_value = None
    return store


@pytest.fixture
def profiles():
    store = MagicMock()
    store.update_profile.return_value = True
    return store


@pytest.fixture
def coordinator(identities, profiles):
    return MutationCoordinator(identities, profiles)


def _patch() -> UserPatch:
    return UserPatch(subscription_tier="pro", credits_remaining=0)


def test_update_writes_both_stores(coordinator, identities, profiles):
    result = coordinator.update_patch("u-1", _patch())

    expected = {"subscription_tier": "pro", "credits_remaining": 0}
    identities.update_metadata.assert_called_once_with("u-1", expected)
    profiles.update_profile.assert_called_once_with("u-1", expected)
    assert result.success is True
    assert result.message == "User updated successfully"


def test_update_unknown_identity_skips_profile(coordinator, identities, profiles):
    identities.update_metadata.side_effect = NotFound("User not found: u-404")

    with pytest.raises(NotFound):
        coordinator.update_patch("u-404", _patch())

    profiles.update_profile.assert_not_called()


def test_profile_failure_is_partial_and_not_retried(coordinator, identities, profiles, caplog):
    """Identity written, profile failed: report the profile half, never retry."""
    profiles.update_profile.side_effect = UpstreamFailure("boom", stores=[PROFILE_STORE])

    with caplog.at_level("ERROR"):
        with pytest.raises(PartialFailure) as exc_info:
            coordinator.update_patch("u-1", _patch())

    assert exc_info.value.failed_store == PROFILE_STORE
    assert exc_info.value.succeeded_store == IDENTITY_STORE
    assert exc_info.value.extensions() == {
        "failed_store": PROFILE_STORE,
        "succeeded_store": IDENTITY_STORE,
    }
    assert identities.update_metadata.call_count == 1
    assert profiles.update_profile.call_count == 1
    assert "Partial update of user u-1" in caplog.text


def test_identity_failure_is_partial(coordinator, identities, profiles):
    identities.update_metadata.side_effect = UpstreamFailure("boom", stores=[IDENTITY_STORE])

    with pytest.raises(PartialFailure) as exc_info:
        coordinator.update_patch("u-1", _patch())

    assert exc_info.value.failed_store == IDENTITY_STORE
    assert exc_info.value.succeeded_store == PROFILE_STORE
    profiles.update_profile.assert_called_once()


def test_both_failures_name_both_stores(coordinator, identities, profiles):
    identities.update_metadata.side_effect = UpstreamFailure("a", stores=[IDENTITY_STORE])
    profiles.update_profile.side_effect = UpstreamFailure("b", stores=[PROFILE_STORE])

    with pytest.raises(UpstreamFailure) as exc_info:
        coordinator.update_patch("u-1", _patch())

    assert exc_info.value.stores == [IDENTITY_STORE, PROFILE_STORE]


def test_missing_profile_row_is_success_with_warning(coordinator, profiles, caplog):
    profiles.update_profile.return_value = False

    with caplog.at_level("WARNING"):
        result = coordinator.update_patch("u-1", _patch())

    assert result.success is True
    assert "No profile row for user u-1" in caplog.text


def test_ban_sets_identity_only(coordinator, identities, profiles):
    result = coordinator.set_ban("u-1", BAN_END, now=NOW)

    identities.set_banned_until.assert_called_once_with("u-1", BAN_END)
    profiles.update_profile.assert_not_called()
    assert result.message == "User banned successfully"


def test_unban(coordinator, identities):
    result = coordinator.set_ban("u-1", None)

    identities.set_banned_until.assert_called_once_with("u-1", None)
    assert result.message == "User unbanned successfully"


@pytest.mark.parametrize("until", [NOW - timedelta(days=1), NOW])
def test_ban_end_not_in_future_unbans(coordinator, identities, until):
    result = coordinator.set_ban("u-1", until, now=NOW)

    identities.set_banned_until.assert_called_once_with("u-1", None)
    assert result.message == "User unbanned successfully"


def test_ban_unknown_identity(coordinator, identities):
    identities.set_banned_until.side_effect = NotFound("User not found: u-404")

    with pytest.raises(NotFound):
        coordinator.set_ban("u-404", BAN_END)
