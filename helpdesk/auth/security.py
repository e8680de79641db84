import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import Unauthorized, Forbidden, TOKEN_EXPIRED
from ..models.models import Role


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        # Unknown or malformed hash
        return False


def _create_token(sub: str, ttl_seconds: int, extra: Optional[dict] = None) -> str:
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": sub,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(account_id: str, role: Role) -> str:
    # Role is informational only; the session guard always reloads the live account
    return _create_token(str(account_id), settings.jwt_ttl_seconds, extra={"role": Role(role).value})


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired", reason=TOKEN_EXPIRED)
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")


def get_current_context(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
):
    from ..services.session_guard import SessionGuard

    if creds is None:
        raise Unauthorized("Not authenticated")
    ctx = SessionGuard(db).authenticate(creds.credentials)
    # Read back by RequestIdMiddleware for the request log line
    request.state.account_id = str(ctx.account_id)
    request.state.role = ctx.role.value
    return ctx


def get_optional_context(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
):
    from ..services.session_guard import SessionGuard

    return SessionGuard(db).authenticate_optional(creds.credentials if creds else None)


def require_roles(*allowed_roles: Role):
    """Dependency that admits only callers whose live role is one of ``allowed_roles``."""
    allowed = {Role(r) for r in allowed_roles}

    def _dep(ctx=Depends(get_current_context)):
        if ctx.role not in allowed:
            raise Forbidden("Unauthorized to perform this action")
        return ctx

    return _dep
