"""
Move old tickets, with their attachments, from the live store to cold storage.

Runs outside request handling (see ``scripts/archive_tickets.py``). Each
ticket is written to the archive before it is removed from the live store, so
a failure part-way leaves at worst a duplicate, never a lost ticket.
"""
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.orm import Session, selectinload

from ..models.archive import ArchivedAttachment, ArchivedTicket
from ..models.models import Ticket, to_naive_utc


log = structlog.get_logger(__name__)


def subtract_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp to the last valid day of the target month
    for day in (moment.day, 30, 29, 28):
        try:
            return moment.replace(year=year, month=month, day=min(moment.day, day))
        except ValueError:
            continue
    raise ValueError(f"cannot subtract {months} months from {moment!r}")


class ArchiveService:
    def __init__(self, live_db: Session, archive_db: Session):
        self.live_db = live_db
        self.archive_db = archive_db

    def archive_older_than(self, months: int, now: Optional[datetime] = None, dry_run: bool = False) -> dict:
        now = to_naive_utc(now or datetime.now(timezone.utc))
        cutoff = subtract_months(now, months)

        tickets = (
            self.live_db.query(Ticket)
            .options(selectinload(Ticket.attachments))
            .filter(Ticket.created_at < cutoff)
            .order_by(Ticket.id)
            .all()
        )
        if dry_run:
            return {"archived_count": 0, "eligible_count": len(tickets), "cutoff": cutoff, "dry_run": True}

        archived = 0
        for ticket in tickets:
            if self.archive_db.get(ArchivedTicket, ticket.id) is None:
                self.archive_db.add(ArchivedTicket(
                    id=ticket.id,
                    description=ticket.description,
                    status=ticket.status.value,
                    notes=ticket.notes,
                    ip_address=ticket.ip_address,
                    device_name=ticket.device_name,
                    ip_number=ticket.ip_number,
                    created_by_id=ticket.created_by_id,
                    created_at=ticket.created_at,
                    updated_at=ticket.updated_at,
                    attachments=[
                        ArchivedAttachment(
                            id=a.id,
                            name=a.name,
                            url=a.url,
                            file_type=a.file_type,
                            created_at=a.created_at,
                        )
                        for a in ticket.attachments
                    ],
                ))
                self.archive_db.commit()
            self.live_db.delete(ticket)
            self.live_db.commit()
            archived += 1

        log.info("tickets_archived", archived_count=archived, cutoff=cutoff.isoformat())
        return {"archived_count": archived, "eligible_count": len(tickets), "cutoff": cutoff, "dry_run": False}
