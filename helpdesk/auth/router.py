from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.accounts import AccountOut
from ..schemas.auth import LoginRequest, TokenResponse, PasswordChangeRequest
from ..services.accounts import AccountService
from ..services.auth import AuthService
from ..services.session_guard import EnforcementContext
from .security import get_current_context


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    account, token = AuthService(db).login(req.identifier, req.password)
    return TokenResponse(access_token=token, account=AccountOut.model_validate(account))


@router.post("/refresh")
def refresh(ctx: EnforcementContext = Depends(get_current_context), db: Session = Depends(get_db)):
    return {"access_token": AuthService(db).refresh(ctx), "token_type": "bearer"}


@router.get("/me", response_model=AccountOut)
def me(ctx: EnforcementContext = Depends(get_current_context), db: Session = Depends(get_db)):
    account = AccountService(db).get_account(ctx.account_id, ctx.account_id)
    return AccountOut.model_validate(account)


@router.put("/password")
def change_password(
    req: PasswordChangeRequest,
    ctx: EnforcementContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    AccountService(db).change_password(ctx.account_id, req.current_password, req.new_password)
    return {"success": True, "message": "Password updated successfully"}
