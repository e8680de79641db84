"""Moving old tickets into cold storage."""

from datetime import datetime, timezone

from helpdesk.models.archive import ArchivedTicket
from helpdesk.models.models import Attachment, Ticket
from helpdesk.services.archive import ArchiveService
from helpdesk.services.tickets import TicketService


NOW = datetime(2024, 9, 1, 12, 0)


def _backdate(db, ticket, when):
    ticket.created_at = when
    db.commit()


class TestArchiveService:

    def test_moves_old_tickets_with_attachments(self, db, archive_db, tree, make_ticket):
        old = make_ticket(
            tree.user1, "Old request",
            attachments=[{"name": "scan", "url": "https://files.example.com/scan.pdf"}],
        )
        recent = make_ticket(tree.user1, "Recent request")
        _backdate(db, old, datetime(2023, 12, 1))
        _backdate(db, recent, datetime(2024, 8, 1))
        old_id = old.id

        result = ArchiveService(db, archive_db).archive_older_than(6, now=NOW)
        assert result["archived_count"] == 1
        assert result["cutoff"] == datetime(2024, 3, 1, 12, 0)

        assert db.get(Ticket, old_id) is None
        assert db.query(Attachment).count() == 0
        archived = archive_db.get(ArchivedTicket, old_id)
        assert archived.description == "Old request"
        assert archived.status == "pending"
        assert [a.name for a in archived.attachments] == ["scan"]

        listed = TicketService(db).list_tickets(tree.user1.id)
        assert [t.id for t in listed["items"]] == [recent.id]

    def test_dry_run_only_counts(self, db, archive_db, tree, make_ticket):
        old = make_ticket(tree.user1, "Old request")
        _backdate(db, old, datetime(2020, 1, 1))

        result = ArchiveService(db, archive_db).archive_older_than(6, now=NOW, dry_run=True)
        assert result["dry_run"] is True
        assert result["eligible_count"] == 1
        assert result["archived_count"] == 0
        assert db.get(Ticket, old.id) is not None
        assert archive_db.query(ArchivedTicket).count() == 0

    def test_nothing_to_archive(self, db, archive_db, tree, make_ticket):
        make_ticket(tree.user1, "Fresh")
        result = ArchiveService(db, archive_db).archive_older_than(6, now=datetime.now(timezone.utc))
        assert result["archived_count"] == 0
