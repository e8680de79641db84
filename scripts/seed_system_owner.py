"""
Bootstrap the first system owner account.

The system owner is the root of the hierarchy and the only account with no
creator, so it cannot be made through the API.

Usage:
    python scripts/seed_system_owner.py --username owner --email owner@example.com --password secret
"""
import sys
import os
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sqlalchemy import or_

from helpdesk.auth.security import get_password_hash
from helpdesk.config import settings
from helpdesk.db import Base, create_db_engine, create_session_factory
from helpdesk.logging import setup_logging
from helpdesk.models.models import Account, Role


def seed_system_owner(username: str, email: str, password: str, location: str = None, database_url: str = None) -> Account:
    """Create the system owner, or return the existing account with that username or email."""
    engine = create_db_engine(database_url)
    Base.metadata.create_all(bind=engine)
    db = create_session_factory(engine)()
    try:
        existing = (
            db.query(Account)
            .filter(or_(Account.username == username, Account.email == email))
            .first()
        )
        if existing:
            print(f"[SKIP] Account already exists: {existing.username} ({existing.role.value})")
            return existing

        owner = Account(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            role=Role.SYSTEM_OWNER,
            location=location,
        )
        db.add(owner)
        db.commit()
        print(f"[OK] Created system owner {owner.username} ({owner.id})")
        return owner
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the first system owner account")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--location", help="Optional location inherited by IT persons and users")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    args = parser.parse_args()

    setup_logging(settings.log_level)
    if len(args.password) < settings.password_min_length:
        print(f"[ERROR] Password must be at least {settings.password_min_length} characters")
        sys.exit(1)
    seed_system_owner(args.username, args.email, args.password, args.location, args.database_url)
