import ipaddress
from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.models import TicketStatus
from .accounts import AccountBrief


def _check_ipv4(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        raise ValueError("Invalid IP address format")
    return value


class AttachmentIn(BaseModel):
    name: str
    url: str
    file_type: Optional[str] = None


class AttachmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    url: str
    file_type: Optional[str] = None
    created_at: datetime


class TicketCreate(BaseModel):
    description: str = Field(min_length=1)
    ip_address: Optional[str] = None
    device_name: Optional[str] = None
    ip_number: Optional[str] = None
    attachments: List[AttachmentIn] = []

    @field_validator("ip_address")
    @classmethod
    def _ip(cls, v):
        return _check_ipv4(v)


class TicketUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1)
    status: Optional[TicketStatus] = None
    notes: Optional[str] = None
    ip_address: Optional[str] = None
    device_name: Optional[str] = None
    ip_number: Optional[str] = None
    attachments: Optional[List[AttachmentIn]] = None

    @field_validator("ip_address")
    @classmethod
    def _ip(cls, v):
        return _check_ipv4(v)


class CloseTicketRequest(BaseModel):
    notes: str


class TicketFilters(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    status: Optional[TicketStatus] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    search: Optional[str] = None


class TicketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    status: TicketStatus
    notes: Optional[str] = None
    ip_address: Optional[str] = None
    device_name: Optional[str] = None
    ip_number: Optional[str] = None
    created_by: AccountBrief
    attachments: List[AttachmentOut] = []
    created_at: datetime
    updated_at: datetime


class TicketPage(BaseModel):
    items: List[TicketOut]
    pagination: dict
