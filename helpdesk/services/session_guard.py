from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog
from sqlalchemy.orm import Session

from ..auth.security import decode_token
from ..errors import (
    HelpdeskError,
    Unauthorized,
    ACCOUNT_EXPIRED,
    ACCOUNT_INACTIVE,
    ACCOUNT_NOT_FOUND,
)
from ..models.models import Account, Role


log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EnforcementContext:
    account_id: uuid.UUID
    role: Role
    is_active: bool
    expiry_date: Optional[datetime] = None


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; stored values are UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(account: Account, now: Optional[datetime] = None) -> bool:
    """Only super admins are time-boxed."""
    if account.role != Role.SUPER_ADMIN or account.expiry_date is None:
        return False
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    return now > as_utc(account.expiry_date)


class SessionGuard:
    def __init__(self, db: Session, verify_token: Callable[[str], dict] = decode_token):
        self.db = db
        self.verify_token = verify_token

    def authenticate(self, token: str, now: Optional[datetime] = None) -> EnforcementContext:
        claims = self.verify_token(token)
        try:
            account_id = uuid.UUID(str(claims.get("sub")))
        except ValueError:
            raise Unauthorized("Invalid subject")

        # Never trust claims for status; read the live row
        account = self.db.get(Account, account_id)
        if account is None:
            log.info("session_rejected", account_id=str(account_id), reason=ACCOUNT_NOT_FOUND)
            raise Unauthorized("User not found", reason=ACCOUNT_NOT_FOUND)
        if not account.is_active:
            log.info("session_rejected", account_id=str(account_id), reason=ACCOUNT_INACTIVE)
            raise Unauthorized("Access denied", reason=ACCOUNT_INACTIVE)
        if is_expired(account, now):
            log.info("session_rejected", account_id=str(account_id), reason=ACCOUNT_EXPIRED)
            raise Unauthorized("Account has expired", reason=ACCOUNT_EXPIRED)

        return EnforcementContext(
            account_id=account.id,
            role=Role(account.role),
            is_active=account.is_active,
            expiry_date=account.expiry_date,
        )

    def authenticate_optional(self, token: Optional[str], now: Optional[datetime] = None) -> Optional[EnforcementContext]:
        if not token:
            return None
        try:
            return self.authenticate(token, now)
        except HelpdeskError:
            return None
