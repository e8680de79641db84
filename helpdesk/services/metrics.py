"""
Dashboard counts restricted to the caller's subtree.

User counts cover active accounts that name the caller in any hierarchy
pointer (the caller itself is not counted). Ticket counts use the same scope
as ticket listing, so dashboard totals line up with what the caller can list.
"""
from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import Forbidden, NotFound
from ..models.models import Account, Role, Ticket, TicketStatus
from .filters import apply_date_window
from .hierarchy import coerce_id, subtree_clause
from .session_guard import as_utc


MS_PER_DAY = 24 * 60 * 60 * 1000

DASHBOARD_ROLES = {
    "system_owner": {Role.SYSTEM_OWNER},
    "super_admin": {Role.SYSTEM_OWNER, Role.SUPER_ADMIN},
    "admin": {Role.SYSTEM_OWNER, Role.SUPER_ADMIN, Role.ADMIN},
    "it_person": {Role.SYSTEM_OWNER, Role.SUPER_ADMIN, Role.ADMIN, Role.IT_PERSON},
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def days_until(expiry: datetime, now: datetime) -> int:
    delta_ms = (as_utc(expiry) - as_utc(now)).total_seconds() * 1000
    return math.ceil(delta_ms / MS_PER_DAY)


def utilization(used: int, limit: Optional[int]) -> int:
    if not limit:
        return 0
    return round_half_up(100 * used / limit)


class MetricsService:
    def __init__(self, db: Session):
        self.db = db

    def _load(self, caller_id) -> Account:
        uid = coerce_id(caller_id)
        caller = self.db.get(Account, uid) if uid is not None else None
        if caller is None:
            raise NotFound("User not found")
        return caller

    def _require(self, caller: Account, dashboard: str) -> None:
        if caller.role not in DASHBOARD_ROLES[dashboard]:
            raise Forbidden(f"Access denied: {dashboard.replace('_', ' ').title()} role or above required")

    def _user_counts(self, caller: Account) -> Dict[str, int]:
        rows = (
            self.db.query(Account.role, func.count(Account.id))
            .filter(Account.is_active.is_(True), subtree_clause(caller.id))
            .group_by(Account.role)
            .all()
        )
        by_role = {Role(r): n for r, n in rows}
        counts = {
            "admin_count": by_role.get(Role.ADMIN, 0),
            "it_person_count": by_role.get(Role.IT_PERSON, 0),
            "user_count": by_role.get(Role.USER, 0),
        }
        if caller.role == Role.SYSTEM_OWNER:
            counts["super_admin_count"] = (
                self.db.query(Account)
                .filter(
                    Account.role == Role.SUPER_ADMIN,
                    Account.is_active.is_(True),
                    Account.system_owner_id == caller.id,
                )
                .count()
            )
        counts["total_users"] = sum(counts.values())
        return counts

    def _ticket_stats(self, caller: Account, start: Optional[date] = None, end: Optional[date] = None) -> Dict[str, int]:
        query = self.db.query(Ticket.status, func.count(Ticket.id)).join(Account, Ticket.created_by_id == Account.id)
        if caller.role == Role.USER:
            query = query.filter(Ticket.created_by_id == caller.id)
        else:
            query = query.filter(subtree_clause(caller.id, self_column=Ticket.created_by_id))
        query = apply_date_window(query, Ticket.created_at, start, end)
        by_status = {TicketStatus(s): n for s, n in query.group_by(Ticket.status).all()}
        pending = by_status.get(TicketStatus.PENDING, 0)
        solved = by_status.get(TicketStatus.SOLVED, 0)
        return {"total_tickets": pending + solved, "pending_tickets": pending, "solved_tickets": solved}

    def scoped_metrics(self, caller_id, start: Optional[date] = None, end: Optional[date] = None) -> dict:
        caller = self._load(caller_id)
        return self._metrics_for(caller, start, end)

    def _metrics_for(self, caller: Account, start, end) -> dict:
        metrics = self._user_counts(caller)
        metrics["ticket_stats"] = self._ticket_stats(caller, start, end)
        return metrics

    @staticmethod
    def _filters(start, end) -> dict:
        return {"start_date": start, "end_date": end}

    def super_admin_dashboard(self, caller_id, start=None, end=None, now: Optional[datetime] = None) -> dict:
        """
        Utilization and remaining_slots are measured against the whole subtree,
        while the creation quota counts only the super admin's direct, active
        creations. The dashboard can therefore show 0 remaining slots while
        creating another admin still succeeds.
        """
        caller = self._load(caller_id)
        self._require(caller, "super_admin")
        now = now or datetime.now(timezone.utc)
        metrics = self._metrics_for(caller, start, end)
        total = metrics["total_users"]
        limit = caller.account_limit

        expiry_info = None
        if caller.expiry_date is not None:
            expiry_info = {
                "expiry_date": caller.expiry_date,
                "days_to_expiry": days_until(caller.expiry_date, now),
                "is_expired": as_utc(caller.expiry_date) < as_utc(now),
            }

        return {
            "user_counts": {
                "total_users": total,
                "admin_count": metrics["admin_count"],
                "it_person_count": metrics["it_person_count"],
                "user_count": metrics["user_count"],
            },
            "ticket_stats": metrics["ticket_stats"],
            "account_info": {
                "business_type": caller.business_type,
                "account_limit": limit,
                "account_utilization": utilization(total, limit),
                "remaining_slots": limit - total if limit else None,
            },
            "expiry_info": expiry_info,
            "filters": self._filters(start, end),
        }

    def admin_dashboard(self, caller_id, start=None, end=None) -> dict:
        caller = self._load(caller_id)
        self._require(caller, "admin")
        metrics = self._metrics_for(caller, start, end)
        return {
            "user_counts": {
                "total_users": metrics["total_users"],
                "it_person_count": metrics["it_person_count"],
                "user_count": metrics["user_count"],
            },
            "ticket_stats": metrics["ticket_stats"],
            "filters": self._filters(start, end),
        }

    def it_person_dashboard(self, caller_id, start=None, end=None) -> dict:
        caller = self._load(caller_id)
        self._require(caller, "it_person")
        metrics = self._metrics_for(caller, start, end)
        return {
            "user_counts": {
                "total_users": metrics["total_users"],
                "user_count": metrics["user_count"],
            },
            "ticket_stats": metrics["ticket_stats"],
            "filters": self._filters(start, end),
        }

    def system_owner_dashboard(self, caller_id, start=None, end=None, now: Optional[datetime] = None) -> dict:
        caller = self._load(caller_id)
        self._require(caller, "system_owner")
        now = now or datetime.now(timezone.utc)

        super_admins = (
            self.db.query(Account)
            .filter(
                Account.role == Role.SUPER_ADMIN,
                Account.is_active.is_(True),
                Account.system_owner_id == caller.id,
            )
            .all()
        )
        created = {}
        if super_admins:
            created = dict(
                self.db.query(Account.created_by_id, func.count(Account.id))
                .filter(
                    Account.created_by_id.in_([sa.id for sa in super_admins]),
                    Account.is_active.is_(True),
                )
                .group_by(Account.created_by_id)
                .all()
            )

        overview = []
        # Soonest expiry first, open-ended accounts last
        for sa in sorted(super_admins, key=lambda a: (a.expiry_date is None, as_utc(a.expiry_date) if a.expiry_date else now)):
            accounts_created = created.get(sa.id, 0)
            if sa.expiry_date is None:
                expiry_status, days = "no_expiry", None
            else:
                expiry_status = "active" if as_utc(sa.expiry_date) > as_utc(now) else "expired"
                days = days_until(sa.expiry_date, now)
            overview.append({
                "id": sa.id,
                "username": sa.username,
                "email": sa.email,
                "business_type": sa.business_type,
                "account_limit": sa.account_limit,
                "expiry_date": sa.expiry_date,
                "location": sa.location,
                "created_at": sa.created_at,
                "accounts_created": accounts_created,
                "account_utilization": utilization(accounts_created, sa.account_limit),
                "expiry_status": expiry_status,
                "days_to_expiry": days,
            })

        total_accounts = (
            self.db.query(Account)
            .filter(Account.is_active.is_(True), subtree_clause(caller.id))
            .count()
        )
        tickets = self._ticket_stats(caller, start, end)
        return {
            "super_admin_overview": overview,
            "system_stats": {
                "total_accounts": total_accounts,
                "total_super_admins": len(super_admins),
                **tickets,
            },
            "filters": self._filters(start, end),
        }
