"""Supabase client configuration.

Two clients are used:
- publishable (anon) key: verifies caller JWTs via auth.get_user
- secret (service role) key: auth admin API and the profiles table;
  bypasses RLS and must never leave the server

Key names follow the current Supabase dashboard (SB_PUBLISHABLE_KEY /
SB_SECRET_KEY) with the legacy SUPABASE_ANON_KEY / SUPABASE_SERVICE_ROLE_KEY
names accepted as fallbacks.
"""

import logging
import os
from functools import lru_cache

from supabase import Client, create_client

logger = logging.getLogger(__name__)


def _first_env(canonical: str, legacy: str) -> str:
    key = os.getenv(canonical)
    if key:
        return key

    key = os.getenv(legacy)
    if key:
        logger.info(f"Using legacy {legacy} (consider migrating to {canonical})")
        return key

    raise RuntimeError(
        f"Neither {canonical} nor {legacy} environment variable is set. "
        f"Set {canonical} (recommended) or {legacy} (legacy)."
    )


@lru_cache(maxsize=1)
def get_supabase_url() -> str:
    """Get Supabase project URL from environment.

    Raises:
        RuntimeError: If SUPABASE_URL not set
    """
    url = os.getenv("SUPABASE_URL")
    if not url:
        raise RuntimeError("SUPABASE_URL environment variable not set.")
    return url


@lru_cache(maxsize=1)
def get_supabase_api_key() -> str:
    """Publishable key (SB_PUBLISHABLE_KEY, legacy SUPABASE_ANON_KEY)."""
    return _first_env("SB_PUBLISHABLE_KEY", "SUPABASE_ANON_KEY")


@lru_cache(maxsize=1)
def get_supabase_secret_key() -> str:
    """Secret key (SB_SECRET_KEY, legacy SUPABASE_SERVICE_ROLE_KEY)."""
    return _first_env("SB_SECRET_KEY", "SUPABASE_SERVICE_ROLE_KEY")


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Client used to verify caller sessions.

    Raises:
        RuntimeError: If environment variables not set
    """
    url = get_supabase_url()
    api_key = get_supabase_api_key()

    logger.info(
        "Initializing Supabase client",
        extra={"supabase_url": url, "key_type": "publishable"},
    )

    return create_client(url, api_key)


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """Service-role client for the auth admin API and the profiles table.

    Raises:
        RuntimeError: If environment variables not set
    """
    url = get_supabase_url()
    secret_key = get_supabase_secret_key()

    logger.info(
        "Initializing Supabase admin client",
        extra={"supabase_url": url, "key_type": "secret"},
    )

    return create_client(url, secret_key)
