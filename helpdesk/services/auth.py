from typing import Callable, Tuple

import structlog
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth.security import create_access_token, verify_password
from ..errors import Unauthorized, ACCOUNT_EXPIRED, ACCOUNT_INACTIVE
from ..models.models import Account
from .session_guard import EnforcementContext, is_expired


log = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    def __init__(
        self,
        db: Session,
        password_verifier: Callable[[str, str], bool] = verify_password,
        token_issuer: Callable[..., str] = create_access_token,
    ):
        self.db = db
        self.verify_password = password_verifier
        self.issue_token = token_issuer

    def login(self, identifier: str, password: str) -> Tuple[Account, str]:
        """Verify credentials (username or email) and issue an access token."""
        account = (
            self.db.query(Account)
            .filter(or_(Account.username == identifier, Account.email == identifier))
            .first()
        )
        if account is None:
            raise Unauthorized(INVALID_CREDENTIALS)
        if not account.is_active:
            raise Unauthorized("Access denied", reason=ACCOUNT_INACTIVE)
        if is_expired(account):
            raise Unauthorized("Account has expired", reason=ACCOUNT_EXPIRED)
        if not self.verify_password(password, account.password_hash):
            log.info("login_failed", account_id=str(account.id))
            raise Unauthorized(INVALID_CREDENTIALS)

        log.info("login_succeeded", account_id=str(account.id), role=account.role.value)
        return account, self.issue_token(str(account.id), account.role)

    def refresh(self, ctx: EnforcementContext) -> str:
        # ctx was already checked against the live row by the session guard
        return self.issue_token(str(ctx.account_id), ctx.role)
