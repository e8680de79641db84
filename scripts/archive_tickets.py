"""
Move tickets older than the archive threshold into the archive database.

Usage:
    python scripts/archive_tickets.py [--dry-run] [--months N]
"""
import sys
import os
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from helpdesk.config import settings
from helpdesk.db import Base, create_db_engine, create_session_factory
from helpdesk.logging import setup_logging
from helpdesk.models.archive import ArchiveBase
from helpdesk.services.archive import ArchiveService


def archive_tickets(months: int, dry_run: bool = False, database_url: str = None, archive_database_url: str = None) -> dict:
    live_engine = create_db_engine(database_url)
    archive_engine = create_db_engine(archive_database_url or settings.archive_database_url)
    Base.metadata.create_all(bind=live_engine)
    ArchiveBase.metadata.create_all(bind=archive_engine)

    live_db = create_session_factory(live_engine)()
    archive_db = create_session_factory(archive_engine)()
    try:
        return ArchiveService(live_db, archive_db).archive_older_than(months, dry_run=dry_run)
    finally:
        archive_db.close()
        live_db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Archive old tickets")
    parser.add_argument("--dry-run", action="store_true", help="Only count eligible tickets")
    parser.add_argument("--months", type=int, default=settings.archive_threshold_months,
                        help="Archive tickets created more than this many months ago")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    parser.add_argument("--archive-database-url", help="Override ARCHIVE_DATABASE_URL")
    args = parser.parse_args()

    if args.months < 1:
        print("[ERROR] --months must be at least 1")
        sys.exit(1)

    setup_logging(settings.log_level)
    result = archive_tickets(args.months, args.dry_run, args.database_url, args.archive_database_url)
    if result["dry_run"]:
        print(f"[DRY-RUN] {result['eligible_count']} tickets created before {result['cutoff']:%Y-%m-%d} would be archived")
    else:
        print(f"[OK] Archived {result['archived_count']} tickets created before {result['cutoff']:%Y-%m-%d}")
