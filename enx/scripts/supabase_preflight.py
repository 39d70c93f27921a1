#!/usr/bin/env python3
"""
Supabase preflight validator for the admin API.

Checks, without any network call, that the environment carries everything the
admin API needs before a deploy.

Usage:
    python enx/scripts/supabase_preflight.py
    python enx/scripts/supabase_preflight.py --relaxed

Exit Codes:
    0: PASS (all checks passed)
    1: FAIL (validation failed)

Environment Variables:
    SUPABASE_URL: Project URL (https://<ref>.supabase.co)
    SB_PUBLISHABLE_KEY / SUPABASE_ANON_KEY: session verification key
    SB_SECRET_KEY / SUPABASE_SERVICE_ROLE_KEY: auth admin + profiles key
    ENX_ADMIN_EMAIL / ENX_ADMIN_USER_ID: designated administrator

Relaxed Mode (--relaxed):
    A missing designated administrator is reported as a warning only.
"""

import argparse
import os
import sys
from urllib.parse import urlparse


def _is_supabase_host(url: str) -> bool:
    """Check if URL points to a hosted Supabase project."""
    return ".supabase.co" in url


def validate_supabase_url(url: str) -> tuple[bool, list[str]]:
    """
    Validate SUPABASE_URL.

    Returns:
        (is_valid, error_messages)
    """
    errors = []

    if not url:
        return False, ["ERROR: SUPABASE_URL is not set."]

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        errors.append(f"ERROR: SUPABASE_URL is not an http(s) URL: {url}")
        return False, errors

    if _is_supabase_host(url) and parsed.scheme != "https":
        errors.append("ERROR: Hosted Supabase projects must be reached over https.")

    if parsed.path not in ("", "/"):
        errors.append(
            "ERROR: SUPABASE_URL must be the project root, without /auth/v1 or /rest/v1."
        )

    return len(errors) == 0, errors


def validate_keys() -> tuple[bool, list[str]]:
    """
    Validate that both Supabase keys are present and distinct.

    Returns:
        (is_valid, error_messages)
    """
    errors = []

    publishable = os.getenv("SB_PUBLISHABLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
    secret = os.getenv("SB_SECRET_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    if not publishable:
        errors.append("ERROR: SB_PUBLISHABLE_KEY (or legacy SUPABASE_ANON_KEY) is not set.")
    if not secret:
        errors.append("ERROR: SB_SECRET_KEY (or legacy SUPABASE_SERVICE_ROLE_KEY) is not set.")
    if publishable and secret and publishable == secret:
        errors.append(
            "ERROR: Publishable and secret keys are identical. "
            "Fix: session verification must not use the service role key."
        )

    return len(errors) == 0, errors


def validate_admin(relaxed: bool = False) -> tuple[bool, list[str]]:
    """
    Validate the designated administrator configuration.

    Args:
        relaxed: If True, a missing administrator is only a warning.

    Returns:
        (is_valid, error_messages)
    """
    admin_email = os.getenv("ENX_ADMIN_EMAIL", "")
    admin_user_id = os.getenv("ENX_ADMIN_USER_ID", "")

    if admin_email and "@" not in admin_email:
        return False, [f"ERROR: ENX_ADMIN_EMAIL is not an email address: {admin_email}"]

    if not admin_email and not admin_user_id:
        if relaxed:
            print("WARNING: No designated administrator (ENX_ADMIN_EMAIL / ENX_ADMIN_USER_ID).")
            return True, []
        return False, [
            "ERROR: ENX_ADMIN_EMAIL or ENX_ADMIN_USER_ID required. "
            "Fix: configure the bootstrap administrator before the first deploy."
        ]

    return True, []


def main() -> int:
    parser = argparse.ArgumentParser(description="Supabase preflight validator for the admin API")
    parser.add_argument(
        "--relaxed",
        action="store_true",
        help="Allow a missing designated administrator",
    )
    args = parser.parse_args()

    print("=" * 70)
    print("Supabase Preflight Validator")
    print("=" * 70)

    all_errors: list[str] = []
    for ok, errors in (
        validate_supabase_url(os.getenv("SUPABASE_URL", "")),
        validate_keys(),
        validate_admin(relaxed=args.relaxed),
    ):
        if not ok:
            all_errors.extend(errors)

    if all_errors:
        for error in all_errors:
            print(error)
        print("RESULT: FAIL")
        return 1

    print("RESULT: PASS")
    return 0


if __name__ == "__main__":
    sys.exit(main())
