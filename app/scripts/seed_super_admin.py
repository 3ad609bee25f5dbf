"""
Seed Super Admin Script
Grants super admin to an existing user by email. Safe to re-run.

Usage: python -m app.scripts.seed_super_admin admin@example.com
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.database.supabase_client import get_service_supabase
from supabase import Client
from typing import Optional
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

USERS_PER_PAGE = 100


def find_user_id(supabase: Client, email: str) -> Optional[str]:
    """Page through auth users until the email matches"""
    email = email.strip().lower()
    page = 1
    while True:
        users = supabase.auth.admin.list_users(page=page, per_page=USERS_PER_PAGE) or []
        for user in users:
            if (user.email or "").lower() == email:
                return user.id
        if len(users) < USERS_PER_PAGE:
            return None
        page += 1


def seed_super_admin(supabase: Client, email: str) -> bool:
    """Returns True when a new super_admins row was created"""
    user_id = find_user_id(supabase, email)
    if not user_id:
        raise ValueError(f"No user found with email {email}")

    existing = supabase.table("super_admins")\
        .select("id")\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    if existing.data:
        logger.info(f"{email} is already a super admin")
        return False

    supabase.table("super_admins").insert({"user_id": user_id}).execute()
    logger.info(f"Granted super admin to {email} ({user_id})")
    return True


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        logger.error("Usage: python -m app.scripts.seed_super_admin <email>")
        sys.exit(2)

    supabase = get_service_supabase()
    if supabase is None:
        logger.error("SUPABASE_SERVICE_ROLE_KEY is required")
        sys.exit(1)

    try:
        seed_super_admin(supabase, argv[0])
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
