import enum
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    Boolean,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    Index,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base


def utcnow() -> datetime:
    # Naive UTC, which is what SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


class Role(str, enum.Enum):
    SYSTEM_OWNER = "system_owner"
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    IT_PERSON = "it_person"
    USER = "user"


class BusinessType(str, enum.Enum):
    SMALL = "small_business"
    MEDIUM = "medium_business"
    LARGE = "large_business"


ACCOUNT_LIMITS = {
    BusinessType.SMALL: 300,
    BusinessType.MEDIUM: 700,
    BusinessType.LARGE: 3000,
}


class TicketStatus(str, enum.Enum):
    PENDING = "pending"
    SOLVED = "solved"


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = uuid_pk()
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="account_role", values_callable=_enum_values), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Super admin tenancy
    business_type: Mapped[Optional[BusinessType]] = mapped_column(
        Enum(BusinessType, name="business_type", values_callable=_enum_values)
    )
    account_limit: Mapped[Optional[int]] = mapped_column(Integer)
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    location: Mapped[Optional[str]] = mapped_column(String(100))
    department: Mapped[Optional[str]] = mapped_column(String(100))

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("accounts.id"), index=True)
    # Hierarchy pointers: nearest ancestor of each role in the creation chain; set once at creation
    system_owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("accounts.id"), index=True)
    super_admin_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("accounts.id"), index=True)
    admin_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("accounts.id"), index=True)
    it_person_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("accounts.id"), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    created_by = relationship("Account", remote_side=[id], foreign_keys=[created_by_id])
    tickets = relationship("Ticket", back_populates="created_by")

    __table_args__ = (
        Index("idx_accounts_creator_active", "created_by_id", "is_active"),
    )


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        Enum(TicketStatus, name="ticket_status", values_callable=_enum_values),
        default=TicketStatus.PENDING,
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)  # resolution notes, required once solved
    # Device metadata
    ip_address: Mapped[Optional[str]] = mapped_column(String(45))
    device_name: Mapped[Optional[str]] = mapped_column(String(255))
    ip_number: Mapped[Optional[str]] = mapped_column(String(100))  # alternate IP / extension

    created_by_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("accounts.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    created_by = relationship("Account", back_populates="tickets")
    attachments: Mapped[List["Attachment"]] = relationship(
        "Attachment", back_populates="ticket", cascade="all, delete-orphan", order_by="Attachment.id"
    )


class Attachment(Base):
    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    file_type: Mapped[Optional[str]] = mapped_column(String(20))
    ticket_id: Mapped[int] = mapped_column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    ticket = relationship("Ticket", back_populates="attachments")
