"""Admin bootstrap script with a mocked Supabase client."""

import importlib.util
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

SCRIPT = Path(__file__).resolve().parents[3] / "scripts" / "bootstrap_admin.py"


@pytest.fixture
def bootstrap(monkeypatch):
    spec = importlib.util.spec_from_file_location("bootstrap_admin", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    client = MagicMock()
    client.auth.admin.create_user.return_value = SimpleNamespace(user=SimpleNamespace(id="new-admin"))
    monkeypatch.setattr(module, "get_supabase_admin_client", lambda: client)
    return module, client


def test_admin_attributes(bootstrap):
    module, _ = bootstrap

    attributes = module.admin_attributes("Admin User")

    assert attributes == {
        "name": "Admin User",
        "role": "admin",
        "subscription_tier": "enterprise",
        "credits_remaining": 10000,
        "credits_monthly_limit": 10000,
        "subscription_status": "active",
    }


def test_creates_account_and_profile(bootstrap, monkeypatch):
    module, client = bootstrap
    monkeypatch.setenv("ENX_ADMIN_PASSWORD", "correct-horse")
    monkeypatch.setattr("sys.argv", ["bootstrap_admin.py", "--email", "root@enrichx.com"])

    assert module.main() == 0

    payload = client.auth.admin.create_user.call_args.args[0]
    assert payload["email"] == "root@enrichx.com"
    assert payload["email_confirm"] is True
    assert payload["user_metadata"]["role"] == "admin"
    upserted = client.table.return_value.upsert.call_args.args[0]
    assert upserted["id"] == "new-admin"
    assert upserted["subscription_tier"] == "enterprise"


def test_short_password_is_rejected(bootstrap, monkeypatch):
    module, client = bootstrap
    monkeypatch.setenv("ENX_ADMIN_PASSWORD", "short")
    monkeypatch.setattr("sys.argv", ["bootstrap_admin.py", "--email", "root@enrichx.com"])

    assert module.main() == 1
    client.auth.admin.create_user.assert_not_called()


def test_profile_only(bootstrap, monkeypatch):
    module, client = bootstrap
    monkeypatch.setattr("sys.argv", ["bootstrap_admin.py", "--profile-only", "existing-id"])

    assert module.main() == 0

    client.auth.admin.create_user.assert_not_called()
    assert client.table.return_value.upsert.call_args.args[0]["id"] == "existing-id"


def test_create_failure(bootstrap, monkeypatch):
    module, client = bootstrap
    client.auth.admin.create_user.side_effect = RuntimeError("email exists")
    monkeypatch.setenv("ENX_ADMIN_PASSWORD", "correct-horse")
    monkeypatch.setattr("sys.argv", ["bootstrap_admin.py", "--email", "root@enrichx.com"])

    assert module.main() == 1
    client.table.assert_not_called()
