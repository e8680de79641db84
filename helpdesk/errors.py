"""
Error taxonomy shared by every service.

Services raise these at the point of detection; the HTTP layer maps them to
status codes in one exception handler. Store-level exceptions are translated
by ``store_errors`` so SQLAlchemy shapes never reach callers.
"""
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, NoResultFound
from sqlalchemy.orm import Session


class HelpdeskError(Exception):
    kind = "internal"
    status_code = 500

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "reason": self.reason}


class BadRequest(HelpdeskError):
    kind = "bad_request"
    status_code = 400


class Unauthorized(HelpdeskError):
    kind = "unauthorized"
    status_code = 401


class Forbidden(HelpdeskError):
    kind = "forbidden"
    status_code = 403


class NotFound(HelpdeskError):
    kind = "not_found"
    status_code = 404


class Conflict(HelpdeskError):
    kind = "conflict"
    status_code = 409


# Machine-checkable reasons
ACCOUNT_EXPIRED = "account_expired"
ACCOUNT_INACTIVE = "account_inactive"
ACCOUNT_NOT_FOUND = "account_not_found"
QUOTA_EXCEEDED = "quota_exceeded"
NOTES_REQUIRED = "notes_required"
TOKEN_EXPIRED = "token_expired"


@contextmanager
def store_errors(db: Session) -> Iterator[None]:
    """Roll back and translate store exceptions raised inside the block."""
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        raise Conflict("Duplicate entry found") from e
    except NoResultFound as e:
        db.rollback()
        raise NotFound("Record not found") from e
