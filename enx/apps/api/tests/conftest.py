"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
# Inject sys.path for reliable pytest imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # => .../apps/api

import os

os.environ.setdefault("ENX_JSON_LOGS", "false")

import pytest
from fastapi.testclient import TestClient

from enx_api.config.env import DirectorySettings, get_directory_settings
from enx_api.directory.models import IdentityRecord, ProfileRecord
from enx_api.directory.service import get_identity_store, get_profile_store
from enx_api.main import app
from tests.fakes import (
    ADMIN_EMAIL,
    ADMIN_TOKEN,
    PROFILE_ADMIN_TOKEN,
    SUBSCRIBER_TOKEN,
    T0,
    T1,
    InMemoryIdentityStore,
    InMemoryProfileStore,
    make_identity,
)


@pytest.fixture
def settings() -> DirectorySettings:
    return DirectorySettings(admin_email=ADMIN_EMAIL)


@pytest.fixture
def identities() -> list[IdentityRecord]:
    """Designated admin, profile admin and two subscribers."""
    return [
        make_identity("admin-1", ADMIN_EMAIL, T0),
        make_identity("padmin-2", "ops@enrichx.com", T0),
        make_identity("sub-3", "alice@acme.io", T1, metadata={"name": "Alice Liddell"}),
        make_identity("sub-4", "bob@globex.com", T1),
    ]


@pytest.fixture
def profiles() -> list[ProfileRecord]:
    return [
        ProfileRecord(id="padmin-2", name="Ops Team", role="admin", subscription_tier="pro"),
        ProfileRecord(
            id="sub-3",
            company_name="Acme Corp",
            role="subscriber",
            subscription_tier="pro",
            credits_remaining=1500,
            credits_monthly_limit=2000,
        ),
    ]


@pytest.fixture
def identity_store(identities) -> InMemoryIdentityStore:
    return InMemoryIdentityStore(
        identities,
        tokens={
            ADMIN_TOKEN: "admin-1",
            PROFILE_ADMIN_TOKEN: "padmin-2",
            SUBSCRIBER_TOKEN: "sub-3",
        },
    )


@pytest.fixture
def profile_store(profiles) -> InMemoryProfileStore:
    return InMemoryProfileStore(profiles)


@pytest.fixture
def client(identity_store, profile_store, settings):
    """TestClient with in-memory stores and fixed settings."""
    app.dependency_overrides[get_identity_store] = lambda: identity_store
    app.dependency_overrides[get_profile_store] = lambda: profile_store
    app.dependency_overrides[get_directory_settings] = lambda: settings
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
