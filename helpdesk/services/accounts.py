"""
Account provisioning and management.

Creation places the new account in its creator's ownership chain, enforces
the creator's role allow-table and (for super admins) the per-tenant quota.
Updates, resets and soft deletes require ``can_manage`` plus ownership of the
target, except for the limited self-service path.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional

import structlog
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth.security import get_password_hash, verify_password
from ..config import settings
from ..errors import (
    BadRequest,
    Conflict,
    Forbidden,
    NotFound,
    HelpdeskError,
    store_errors,
    ACCOUNT_EXPIRED,
    QUOTA_EXCEEDED,
)
from ..models.models import Account, Role, ACCOUNT_LIMITS, to_naive_utc
from ..schemas.accounts import AccountCreate, AccountUpdate
from .filters import clamp_page, page_offset, pagination_info
from .hierarchy import coerce_id, inherit_pointers, owns, pointers_of
from .permissions import can_create, can_manage
from .session_guard import as_utc, is_expired


log = structlog.get_logger(__name__)

SELF_SERVICE_FIELDS = {"username", "email", "location"}
TENANCY_FIELDS = {"business_type", "account_limit", "expiry_date"}
# Explicit null on these means "leave unchanged"
NON_NULLABLE_FIELDS = {"username", "email", "business_type", "is_active"}


class AccountService:
    def __init__(
        self,
        db: Session,
        password_hasher: Callable[[str], str] = get_password_hash,
        password_verifier: Callable[[str, str], bool] = verify_password,
    ):
        self.db = db
        self.hash_password = password_hasher
        self.verify_password = password_verifier

    # -- loading -------------------------------------------------------

    def _load(self, account_id, label: str = "User", lock: bool = False) -> Account:
        uid = coerce_id(account_id)
        if uid is None:
            raise NotFound(f"{label} not found")
        query = self.db.query(Account).filter(Account.id == uid)
        if lock:
            query = query.with_for_update()
        account = query.first()
        if account is None:
            raise NotFound(f"{label} not found")
        return account

    def _require_usable(self, actor: Account, label: str) -> None:
        if not actor.is_active:
            raise Forbidden(f"{label} account is inactive")
        if is_expired(actor):
            raise Forbidden(f"{label} account has expired", reason=ACCOUNT_EXPIRED)

    def _require_manager_of(self, manager: Account, target: Account, message: str = "Unauthorized to perform this action") -> None:
        if not (can_manage(manager.role, target.role) and owns(manager, target)):
            raise Forbidden(message)

    # -- validation ----------------------------------------------------

    def _password_errors(self, password: str) -> List[str]:
        if not password or len(password) < settings.password_min_length:
            return [f"Password must be at least {settings.password_min_length} characters"]
        return []

    def _ensure_unique(self, username: Optional[str], email: Optional[str], exclude_id=None) -> None:
        conditions = []
        if username:
            conditions.append(Account.username == username)
        if email:
            conditions.append(Account.email == email)
        if not conditions:
            return
        query = self.db.query(Account.id).filter(or_(*conditions))
        if exclude_id is not None:
            query = query.filter(Account.id != exclude_id)
        if query.first() is not None:
            raise Conflict("Username or email already exists")

    def _count_direct_active(self, creator_id) -> int:
        return (
            self.db.query(Account)
            .filter(Account.created_by_id == creator_id, Account.is_active.is_(True))
            .count()
        )

    # -- operations ----------------------------------------------------

    def create_account(self, payload: AccountCreate, creator_id) -> Account:
        try:
            return self._create_account(payload, creator_id)
        except HelpdeskError:
            # Release the creator row lock taken for the quota check
            self.db.rollback()
            raise

    def _create_account(self, payload: AccountCreate, creator_id) -> Account:
        role = Role(payload.role)
        # Row lock serializes concurrent creations by the same creator (quota count + insert)
        creator = self._load(creator_id, label="Creator", lock=True)
        self._require_usable(creator, "Creator")

        if not can_create(creator.role, role):
            raise Forbidden(f"{creator.role.value} cannot create {role.value} accounts")

        if creator.role == Role.SUPER_ADMIN and creator.account_limit is not None:
            created = self._count_direct_active(creator.id)
            if created >= creator.account_limit:
                business_type = creator.business_type.value if creator.business_type else "unknown"
                log.warning(
                    "account_quota_exceeded",
                    creator_id=str(creator.id),
                    created=created,
                    limit=creator.account_limit,
                )
                raise Forbidden(
                    f"Account creation limit exceeded. {business_type} accounts are limited to {creator.account_limit} users.",
                    reason=QUOTA_EXCEEDED,
                )

        errors = self._password_errors(payload.password)
        business_type = account_limit = expiry_date = None
        if role == Role.SUPER_ADMIN:
            if payload.business_type is None:
                errors.append("Business type is required for Super Admin accounts")
            else:
                business_type = payload.business_type
                account_limit = ACCOUNT_LIMITS[business_type]
            if not payload.location:
                errors.append("Location is required for this role")
            expiry_date = to_naive_utc(payload.expiry_date)
        if errors:
            raise BadRequest(f"Validation failed: {', '.join(errors)}")

        self._ensure_unique(payload.username, payload.email)

        pointers = inherit_pointers(creator.role, creator.id, pointers_of(creator))

        location = payload.location
        if role in (Role.IT_PERSON, Role.USER) and creator.location:
            location = creator.location
        elif not location:
            location = creator.location

        account = Account(
            username=payload.username,
            email=payload.email,
            password_hash=self.hash_password(payload.password),
            role=role,
            is_active=True,
            business_type=business_type,
            account_limit=account_limit,
            expiry_date=expiry_date,
            location=location,
            department=payload.department or creator.department,
            created_by_id=creator.id,
            **pointers.as_dict(),
        )
        with store_errors(self.db):
            self.db.add(account)
            self.db.commit()
        self.db.refresh(account)
        log.info("account_created", account_id=str(account.id), role=role.value, creator_id=str(creator.id))
        return account

    def update_account(self, target_id, payload: AccountUpdate, updater_id) -> Account:
        updater = self._load(updater_id)
        target = self._load(target_id)

        is_self = updater.id == target.id
        is_manager = can_manage(updater.role, target.role) and owns(updater, target)
        if not (is_self or is_manager):
            raise Forbidden("Unauthorized to perform this action")

        requested = payload.model_dump(exclude_unset=True)
        requested = {k: v for k, v in requested.items() if not (v is None and k in NON_NULLABLE_FIELDS)}

        if not is_manager:
            disallowed = sorted(set(requested) - SELF_SERVICE_FIELDS)
            if disallowed:
                raise Forbidden(f"Cannot update fields: {', '.join(disallowed)}")

        if set(requested) & TENANCY_FIELDS and target.role != Role.SUPER_ADMIN:
            raise BadRequest("Business type, account limit and expiry apply to Super Admin accounts only")

        if "expiry_date" in requested:
            requested["expiry_date"] = to_naive_utc(requested["expiry_date"])
        # Limit always follows business type; it is never written directly
        requested.pop("account_limit", None)
        if requested.get("business_type") is not None:
            requested["account_limit"] = ACCOUNT_LIMITS[requested["business_type"]]

        changes = {k: v for k, v in requested.items() if not self._same(getattr(target, k), v)}
        if not changes:
            return target

        self._ensure_unique(
            changes.get("username"),
            changes.get("email"),
            exclude_id=target.id,
        )

        for key, value in changes.items():
            setattr(target, key, value)
        with store_errors(self.db):
            self.db.commit()
        self.db.refresh(target)
        log.info(
            "account_updated",
            account_id=str(target.id),
            updater_id=str(updater.id),
            fields=sorted(changes),
        )
        return target

    @staticmethod
    def _same(current, new) -> bool:
        if isinstance(current, datetime) or isinstance(new, datetime):
            return as_utc(current) == as_utc(new)
        return current == new

    def delete_account(self, target_id, deleter_id) -> Account:
        """Soft delete; tickets and attachments are left untouched."""
        deleter = self._load(deleter_id)
        target = self._load(target_id)
        self._require_manager_of(deleter, target)

        if target.is_active:
            target.is_active = False
            with store_errors(self.db):
                self.db.commit()
            self.db.refresh(target)
            log.info("account_deactivated", account_id=str(target.id), deleter_id=str(deleter.id))
        return target

    def change_password(self, account_id, current_password: str, new_password: str) -> Account:
        account = self._load(account_id)
        if not self.verify_password(current_password, account.password_hash):
            raise BadRequest("Current password is incorrect")
        errors = self._password_errors(new_password)
        if errors:
            raise BadRequest(f"Password validation failed: {', '.join(errors)}")
        account.password_hash = self.hash_password(new_password)
        with store_errors(self.db):
            self.db.commit()
        self.db.refresh(account)
        log.info("password_changed", account_id=str(account.id))
        return account

    def reset_password(self, target_id, resetter_id) -> Account:
        resetter = self._load(resetter_id, label="Resetter")
        self._require_usable(resetter, "Resetter")
        target = self._load(target_id)
        self._require_manager_of(resetter, target, message="Cannot reset password for this user")

        target.password_hash = self.hash_password(settings.default_reset_password)
        with store_errors(self.db):
            self.db.commit()
        self.db.refresh(target)
        log.info("password_reset", account_id=str(target.id), resetter_id=str(resetter.id))
        return target

    def get_account(self, target_id, viewer_id) -> Account:
        viewer = self._load(viewer_id)
        target = self._load(target_id)
        if not owns(viewer, target):
            raise Forbidden("Unauthorized to perform this action")
        return target

    def list_created_by(self, creator_id, page: Optional[int] = None, limit: Optional[int] = None) -> dict:
        creator = self._load(creator_id)
        page, limit = clamp_page(page, limit)
        query = self.db.query(Account).filter(Account.created_by_id == creator.id, Account.is_active.is_(True))
        total = query.count()
        items = query.order_by(Account.created_at.desc()).offset(page_offset(page, limit)).limit(limit).all()
        return {"items": items, "pagination": pagination_info(total, page, limit)}

    def list_all(self, viewer_id, page: Optional[int] = None, limit: Optional[int] = None) -> dict:
        viewer = self._load(viewer_id)
        if viewer.role != Role.SYSTEM_OWNER:
            raise Forbidden("Access denied: System Owner role required")
        page, limit = clamp_page(page, limit)
        query = self.db.query(Account).filter(Account.is_active.is_(True))
        total = query.count()
        items = query.order_by(Account.created_at.desc()).offset(page_offset(page, limit)).limit(limit).all()
        return {"items": items, "pagination": pagination_info(total, page, limit)}
