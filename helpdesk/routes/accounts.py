from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_context, require_roles
from ..db import get_db
from ..models.models import Role
from ..schemas.accounts import AccountCreate, AccountUpdate, AccountOut
from ..services.accounts import AccountService
from ..services.session_guard import EnforcementContext


router = APIRouter(prefix="/users", tags=["users"])


def _page(result: dict) -> dict:
    return {
        "items": [AccountOut.model_validate(a) for a in result["items"]],
        "pagination": result["pagination"],
    }


@router.post("", response_model=AccountOut, status_code=201)
def create_user(
    payload: AccountCreate,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(require_roles(Role.SYSTEM_OWNER, Role.SUPER_ADMIN, Role.ADMIN, Role.IT_PERSON)),
):
    account = AccountService(db).create_account(payload, ctx.account_id)
    return AccountOut.model_validate(account)


@router.get("/my-users")
def my_users(
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    return _page(AccountService(db).list_created_by(ctx.account_id, page, limit))


@router.get("/all")
def all_users(
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(require_roles(Role.SYSTEM_OWNER)),
):
    return _page(AccountService(db).list_all(ctx.account_id, page, limit))


@router.patch("/me", response_model=AccountOut)
def update_me(
    payload: AccountUpdate,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    account = AccountService(db).update_account(ctx.account_id, payload, ctx.account_id)
    return AccountOut.model_validate(account)


@router.get("/{user_id}", response_model=AccountOut)
def get_user(user_id: str, db: Session = Depends(get_db), ctx: EnforcementContext = Depends(get_current_context)):
    return AccountOut.model_validate(AccountService(db).get_account(user_id, ctx.account_id))


@router.patch("/{user_id}", response_model=AccountOut)
def update_user(
    user_id: str,
    payload: AccountUpdate,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    account = AccountService(db).update_account(user_id, payload, ctx.account_id)
    return AccountOut.model_validate(account)


@router.delete("/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db), ctx: EnforcementContext = Depends(get_current_context)):
    AccountService(db).delete_account(user_id, ctx.account_id)
    return {"success": True, "message": "User deactivated successfully"}


@router.post("/{user_id}/reset-password")
def reset_password(user_id: str, db: Session = Depends(get_db), ctx: EnforcementContext = Depends(get_current_context)):
    account = AccountService(db).reset_password(user_id, ctx.account_id)
    return {"success": True, "message": "Password reset to default", "user": AccountOut.model_validate(account)}
