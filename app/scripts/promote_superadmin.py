"""
Promote Superadmin Script
Forces an existing account to role=superadmin, approved=true and full permissions.
Used by operators to recover when no superadmin can sign in (e.g. the bootstrap
account was lost). Requires SUPABASE_SERVICE_ROLE_KEY.

Usage: python -m app.scripts.promote_superadmin someone@example.com
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.config import settings
from app.database.supabase_client import SupabaseClient
from app.modules.users.exceptions import AccountStoreUnavailable
from app.modules.users.resolver import superadmin_changes
from app.modules.users.store import AccountStore
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def promote(store: AccountStore, email: str) -> bool:
    """Promote the account with `email`; returns False when no such account exists"""
    account = store.find_by_email(email)
    if account is None:
        logger.error(f"No account found for {email}")
        return False
    if account.is_superadmin and account.approved:
        logger.info(f"{account.email} is already a superadmin; refreshing permissions")
    matched = store.update_by_email(account.email, superadmin_changes())
    logger.info(f"Promoted {account.email} to superadmin ({matched} row updated)")
    return matched > 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Promote an existing account to superadmin")
    parser.add_argument("email", help="Email of the account to promote")
    args = parser.parse_args(argv)

    if not settings.supabase_service_role_key:
        logger.warning("SUPABASE_SERVICE_ROLE_KEY not set; falling back to the anon key (RLS applies)")

    try:
        store = AccountStore(SupabaseClient.get_service_client())
        if not promote(store, args.email):
            sys.exit(1)
    except AccountStoreUnavailable as e:
        logger.error(f"Account store unavailable: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
