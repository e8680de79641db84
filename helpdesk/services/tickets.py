"""
Ticket visibility and mutation, scoped to the caller's subtree.

A ticket's scope is its creator's hierarchy pointers: a caller sees and edits
a ticket when it created it, or when the creator's pointer for the caller's
role names the caller. Users only ever see their own tickets. Resolving a
ticket needs an IT person and non-empty notes; reopening needs only access.
"""
from __future__ import annotations

from typing import Callable, Iterable, List, Optional

import structlog
from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session, contains_eager, joinedload, selectinload

from ..errors import (
    BadRequest,
    Forbidden,
    NotFound,
    HelpdeskError,
    store_errors,
    NOTES_REQUIRED,
)
from ..models.models import Account, Attachment, Role, Ticket, TicketStatus
from ..schemas.tickets import TicketCreate, TicketFilters, TicketUpdate
from .attachments import sanitize_attachments
from .filters import apply_date_window, clamp_page, page_offset, pagination_info
from .hierarchy import coerce_id, owns, subtree_clause
from .permissions import can_close_tickets, can_create_tickets


log = structlog.get_logger(__name__)

UNAUTHORIZED_ACTION = "Unauthorized to perform this action"
TICKET_FIELDS = ("description", "status", "notes", "ip_address", "device_name", "ip_number")


class TicketService:
    def __init__(
        self,
        db: Session,
        attachment_validator: Callable[[Optional[Iterable]], List[dict]] = sanitize_attachments,
    ):
        self.db = db
        self.validate_attachments = attachment_validator

    def _load_account(self, account_id) -> Account:
        uid = coerce_id(account_id)
        account = self.db.get(Account, uid) if uid is not None else None
        if account is None:
            raise NotFound("User not found")
        return account

    def _load_ticket(self, ticket_id, lock: bool = False) -> Ticket:
        try:
            tid = int(ticket_id)
        except (TypeError, ValueError):
            raise NotFound("Ticket not found")
        query = (
            self.db.query(Ticket)
            .options(joinedload(Ticket.created_by, innerjoin=True), selectinload(Ticket.attachments))
            .filter(Ticket.id == tid)
            .populate_existing()
        )
        if lock:
            query = query.with_for_update(of=Ticket)
        ticket = query.first()
        if ticket is None:
            raise NotFound("Ticket not found")
        return ticket

    @staticmethod
    def can_access(caller: Account, ticket: Ticket) -> bool:
        # owns() covers "created it myself" and, for users, nothing else
        return owns(caller, ticket.created_by)

    def create_ticket(self, payload: TicketCreate, creator_id) -> Ticket:
        creator = self._load_account(creator_id)
        if not creator.is_active:
            raise Forbidden("User account is inactive")
        if not can_create_tickets(creator.role):
            raise Forbidden(UNAUTHORIZED_ACTION)

        attachments = self.validate_attachments(payload.attachments)

        ticket = Ticket(
            description=payload.description,
            status=TicketStatus.PENDING,
            ip_address=payload.ip_address,
            device_name=payload.device_name,
            ip_number=payload.ip_number,
            created_by_id=creator.id,
        )
        ticket.attachments = [Attachment(**a) for a in attachments]
        with store_errors(self.db):
            self.db.add(ticket)
            self.db.commit()
        log.info("ticket_created", ticket_id=ticket.id, creator_id=str(creator.id), attachments=len(attachments))
        return self._load_ticket(ticket.id)

    def get_ticket(self, ticket_id, caller_id) -> Ticket:
        caller = self._load_account(caller_id)
        ticket = self._load_ticket(ticket_id)
        if not self.can_access(caller, ticket):
            raise Forbidden(UNAUTHORIZED_ACTION)
        return ticket

    def list_tickets(self, caller_id, filters: Optional[TicketFilters] = None) -> dict:
        caller = self._load_account(caller_id)
        filters = filters or TicketFilters()
        page, limit = clamp_page(filters.page, filters.limit)

        query = self.db.query(Ticket).join(Account, Ticket.created_by_id == Account.id)
        if caller.role == Role.USER:
            query = query.filter(Ticket.created_by_id == caller.id)
        else:
            query = query.filter(subtree_clause(caller.id, self_column=Ticket.created_by_id))

        if filters.status is not None:
            query = query.filter(Ticket.status == filters.status)
        query = apply_date_window(query, Ticket.created_at, filters.from_date, filters.to_date)
        if filters.search:
            # Literal substring match; % and _ in the term are not wildcards
            term = filters.search.strip()
            query = query.filter(
                or_(
                    Ticket.description.icontains(term, autoescape=True),
                    cast(Ticket.id, String).icontains(term, autoescape=True),
                    Account.username.icontains(term, autoescape=True),
                    Account.email.icontains(term, autoescape=True),
                )
            )

        total = query.count()
        items = (
            query.options(contains_eager(Ticket.created_by), selectinload(Ticket.attachments))
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
            .offset(page_offset(page, limit))
            .limit(limit)
            .all()
        )
        return {"items": items, "pagination": pagination_info(total, page, limit)}

    def update_ticket(self, ticket_id, payload: TicketUpdate, updater_id) -> Ticket:
        try:
            return self._update_ticket(ticket_id, payload, updater_id)
        except HelpdeskError:
            self.db.rollback()
            raise

    def _update_ticket(self, ticket_id, payload: TicketUpdate, updater_id) -> Ticket:
        # Role and state come from the store, never from the caller's snapshot
        updater = self._load_account(updater_id)
        ticket = self._load_ticket(ticket_id, lock=True)

        requested = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"attachments"})

        if requested.get("status") == TicketStatus.SOLVED:
            if not (payload.notes or "").strip():
                raise BadRequest("Notes are required when closing a ticket", reason=NOTES_REQUIRED)
            if not can_close_tickets(updater.role):
                raise Forbidden(UNAUTHORIZED_ACTION)

        if not self.can_access(updater, ticket):
            raise Forbidden(UNAUTHORIZED_ACTION)

        final_status = requested.get("status", ticket.status)
        final_notes = requested.get("notes", ticket.notes)
        if final_status == TicketStatus.SOLVED and not (final_notes or "").strip():
            raise BadRequest("Notes are required when closing a ticket", reason=NOTES_REQUIRED)

        attachments = self.validate_attachments(payload.attachments) if payload.attachments else []

        changes = {k: v for k, v in requested.items() if k in TICKET_FIELDS and getattr(ticket, k) != v}
        if not changes and not attachments:
            return ticket

        previous_status = ticket.status
        for key, value in changes.items():
            setattr(ticket, key, value)
        for a in attachments:
            ticket.attachments.append(Attachment(**a))
        with store_errors(self.db):
            self.db.commit()

        if "status" in changes:
            event = "ticket_closed" if ticket.status == TicketStatus.SOLVED else "ticket_reopened"
            log.info(event, ticket_id=ticket.id, actor_id=str(updater.id), previous=previous_status.value)
        else:
            log.info("ticket_updated", ticket_id=ticket.id, actor_id=str(updater.id), fields=sorted(changes))
        return self._load_ticket(ticket.id)

    def close_ticket(self, ticket_id, notes: Optional[str], actor_id) -> Ticket:
        return self.update_ticket(ticket_id, TicketUpdate(status=TicketStatus.SOLVED, notes=notes), actor_id)

    def reopen_ticket(self, ticket_id, actor_id) -> Ticket:
        return self.update_ticket(ticket_id, TicketUpdate(status=TicketStatus.PENDING), actor_id)
