"""Cold-storage tables. They live on their own metadata so they can be created in a separate database."""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column

from .models import utcnow


ArchiveBase = declarative_base()


class ArchivedTicket(ArchiveBase):
    __tablename__ = "archived_tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)  # keeps the live id
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45))
    device_name: Mapped[Optional[str]] = mapped_column(String(255))
    ip_number: Mapped[Optional[str]] = mapped_column(String(100))
    created_by_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    archived_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    attachments = relationship("ArchivedAttachment", back_populates="ticket", cascade="all, delete-orphan")


class ArchivedAttachment(ArchiveBase):
    __tablename__ = "archived_attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    file_type: Mapped[Optional[str]] = mapped_column(String(20))
    ticket_id: Mapped[int] = mapped_column(Integer, ForeignKey("archived_tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    ticket = relationship("ArchivedTicket", back_populates="attachments")
