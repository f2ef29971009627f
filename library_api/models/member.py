from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, Integer, String, true
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from library_api.models.borrow_record import BorrowRecord


class Base(DeclarativeBase):
    """Base declarative class for SQLAlchemy models."""


class Member(Base):
    """SQLAlchemy model representing a library member."""

    __tablename__ = "members"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    membership_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )
    books_borrowed: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    borrow_records: Mapped[list["BorrowRecord"]] = relationship(
        "BorrowRecord",
        back_populates="member",
        cascade="all, delete-orphan",
    )

    @property
    def status_label(self) -> str:
        return "Active" if self.is_active else "Inactive"

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            f"Member(id={self.id!r}, email={self.email!r}, "
            f"is_active={self.is_active!r}, books_borrowed={self.books_borrowed!r})"
        )
