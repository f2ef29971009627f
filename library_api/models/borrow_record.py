from __future__ import annotations

import enum
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Date, Enum as SAEnum, Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_api.models.book import Book
from library_api.models.member import Base, Member


class BorrowStatus(str, enum.Enum):
    BORROWED = "BORROWED"
    RETURNED = "RETURNED"
    # Read-time label only; never stored.
    OVERDUE = "OVERDUE"


class BorrowRecord(Base):
    """A single loan of one book to one member."""

    __tablename__ = "borrow_records"
    __table_args__ = (
        Index("ix_borrow_records_member_id_status", "member_id", "status"),
        Index("ix_borrow_records_book_id_status", "book_id", "status"),
        Index("ix_borrow_records_status_due_date", "status", "due_date"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    book_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
    )
    member_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    borrow_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[BorrowStatus] = mapped_column(
        SAEnum(BorrowStatus, name="borrow_status"),
        nullable=False,
        default=BorrowStatus.BORROWED,
    )
    fine_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")

    book: Mapped[Book] = relationship("Book", back_populates="borrow_records")
    member: Mapped[Member] = relationship("Member", back_populates="borrow_records")

    def is_overdue(self, as_of: date) -> bool:
        """True while the loan is open and ``as_of`` is past the due date."""
        return self.status == BorrowStatus.BORROWED and self.due_date < as_of

    def effective_status(self, as_of: date) -> BorrowStatus:
        return BorrowStatus.OVERDUE if self.is_overdue(as_of) else self.status

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            f"BorrowRecord(id={self.id!r}, book_id={self.book_id!r}, "
            f"member_id={self.member_id!r}, status={self.status.value!r})"
        )
