from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_context
from ..db import get_db
from ..models.models import TicketStatus
from ..schemas.tickets import (
    CloseTicketRequest,
    TicketCreate,
    TicketFilters,
    TicketOut,
    TicketUpdate,
)
from ..services.session_guard import EnforcementContext
from ..services.tickets import TicketService


router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.post("", response_model=TicketOut, status_code=201)
def create_ticket(payload: TicketCreate, db: Session = Depends(get_db), ctx: EnforcementContext = Depends(get_current_context)):
    return TicketOut.model_validate(TicketService(db).create_ticket(payload, ctx.account_id))


@router.get("")
def list_tickets(
    page: int = 1,
    limit: int = 10,
    status: Optional[TicketStatus] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    filters = TicketFilters(
        page=max(1, page),
        limit=max(1, limit),
        status=status,
        from_date=from_date,
        to_date=to_date,
        search=search,
    )
    result = TicketService(db).list_tickets(ctx.account_id, filters)
    return {
        "items": [TicketOut.model_validate(t) for t in result["items"]],
        "pagination": result["pagination"],
    }


@router.get("/{ticket_id}", response_model=TicketOut)
def get_ticket(ticket_id: int, db: Session = Depends(get_db), ctx: EnforcementContext = Depends(get_current_context)):
    return TicketOut.model_validate(TicketService(db).get_ticket(ticket_id, ctx.account_id))


@router.put("/{ticket_id}", response_model=TicketOut)
def update_ticket(
    ticket_id: int,
    payload: TicketUpdate,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    return TicketOut.model_validate(TicketService(db).update_ticket(ticket_id, payload, ctx.account_id))


@router.patch("/{ticket_id}/close", response_model=TicketOut)
def close_ticket(
    ticket_id: int,
    payload: CloseTicketRequest,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    return TicketOut.model_validate(TicketService(db).close_ticket(ticket_id, payload.notes, ctx.account_id))


@router.patch("/{ticket_id}/reopen", response_model=TicketOut)
def reopen_ticket(ticket_id: int, db: Session = Depends(get_db), ctx: EnforcementContext = Depends(get_current_context)):
    return TicketOut.model_validate(TicketService(db).reopen_ticket(ticket_id, ctx.account_id))
