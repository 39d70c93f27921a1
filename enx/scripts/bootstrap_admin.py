#!/usr/bin/env python3
"""
Create the designated administrator account.

Creates a confirmed Supabase Auth user with admin / enterprise metadata and
upserts the matching profiles row. The profile row is what grants admin
access; the metadata only keeps the directory listing consistent. Run once
per environment; the admin API itself never creates accounts.

Usage:
    python enx/scripts/bootstrap_admin.py --email admin@example.com
    ENX_ADMIN_PASSWORD=... python enx/scripts/bootstrap_admin.py

Exit Codes:
    0: account created (or profile refreshed with --profile-only)
    1: failure
"""

import argparse
import getpass
import logging
import os
import sys

from enx_api.config.env import get_directory_settings
from enx_api.directory.models import Role, SubscriptionStatus, SubscriptionTier
from enx_api.directory.resolver import ADMIN_DISPLAY_NAME, default_credits
from enx_api.supabase_client import get_supabase_admin_client

logger = logging.getLogger("bootstrap_admin")


def admin_attributes(name: str) -> dict:
    """Directory attributes written to both metadata and profile."""
    credits = default_credits(SubscriptionTier.ENTERPRISE)
    return {
        "name": name,
        "role": Role.ADMIN.value,
        "subscription_tier": SubscriptionTier.ENTERPRISE.value,
        "credits_remaining": credits,
        "credits_monthly_limit": credits,
        "subscription_status": SubscriptionStatus.ACTIVE.value,
    }


def main() -> int:
    settings = get_directory_settings()

    parser = argparse.ArgumentParser(description="Create the designated administrator account")
    parser.add_argument("--email", default=settings.admin_email, help="Administrator email")
    parser.add_argument("--name", default=ADMIN_DISPLAY_NAME, help="Display name")
    parser.add_argument(
        "--profile-only",
        metavar="USER_ID",
        help="Skip account creation and only upsert the profile row for USER_ID",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    client = get_supabase_admin_client()
    attributes = admin_attributes(args.name)

    if args.profile_only:
        user_id = args.profile_only
    else:
        if not args.email:
            logger.error("No administrator email. Pass --email or set ENX_ADMIN_EMAIL.")
            return 1

        password = os.getenv("ENX_ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
        if len(password) < 8:
            logger.error("Password must be at least 8 characters.")
            return 1

        try:
            response = client.auth.admin.create_user({
                "email": args.email,
                "password": password,
                "email_confirm": True,
                "user_metadata": attributes,
            })
        except Exception as e:
            logger.error(f"Creating administrator account failed: {e}")
            return 1

        user_id = response.user.id
        logger.info(f"Administrator account created: {user_id}")

    try:
        client.table(settings.profiles_table).upsert({"id": user_id, **attributes}).execute()
    except Exception as e:
        # The account exists; rerun with --profile-only once the table is reachable
        logger.error(f"Profile upsert failed for {user_id}: {e}")
        return 1

    logger.info(f"Administrator profile written for {user_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
