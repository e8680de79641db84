import uuid
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..models.models import Role, BusinessType


class AccountCreate(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str
    role: Role
    business_type: Optional[BusinessType] = None
    account_limit: Optional[int] = None  # ignored; derived from business_type for super admins
    expiry_date: Optional[datetime] = None
    location: Optional[str] = None
    department: Optional[str] = None


class AccountUpdate(BaseModel):
    # Self-service fields
    username: Optional[str] = Field(default=None, min_length=3, max_length=100)
    email: Optional[EmailStr] = None
    location: Optional[str] = None
    # Manager-only fields
    business_type: Optional[BusinessType] = None
    account_limit: Optional[int] = Field(default=None, ge=1)  # ignored; follows business_type
    expiry_date: Optional[datetime] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None


class AccountBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    role: Role


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    role: Role
    is_active: bool
    business_type: Optional[BusinessType] = None
    account_limit: Optional[int] = None
    expiry_date: Optional[datetime] = None
    location: Optional[str] = None
    department: Optional[str] = None
    created_by_id: Optional[uuid.UUID] = None
    system_owner_id: Optional[uuid.UUID] = None
    super_admin_id: Optional[uuid.UUID] = None
    admin_id: Optional[uuid.UUID] = None
    it_person_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class AccountPage(BaseModel):
    items: List[AccountOut]
    pagination: dict
