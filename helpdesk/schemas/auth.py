from pydantic import BaseModel, Field

from .accounts import AccountOut


class LoginRequest(BaseModel):
    identifier: str  # username or email
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: AccountOut


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=1)
