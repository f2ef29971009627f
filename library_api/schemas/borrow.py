from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from library_api.models.borrow_record import BorrowRecord, BorrowStatus
from library_api.schemas.book import BookLite
from library_api.schemas.member import MemberLite


class BorrowRequest(BaseModel):
    member_id: str = Field(alias="memberId", min_length=1)
    book_id: str = Field(alias="bookId", min_length=1)

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class ReturnRequest(BaseModel):
    borrow_record_id: str = Field(alias="borrowRecordId", min_length=1)

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class BorrowRecordOut(BaseModel):
    id: str
    book_id: str = Field(alias="bookId")
    member_id: str = Field(alias="memberId")
    borrow_date: date = Field(alias="borrowDate")
    due_date: date = Field(alias="dueDate")
    return_date: Optional[date] = Field(default=None, alias="returnDate")
    status: BorrowStatus
    fine_amount: float = Field(alias="fineAmount")
    overdue: bool = False
    effective_status: BorrowStatus = Field(alias="effectiveStatus")
    book: Optional[BookLite] = None
    member: Optional[MemberLite] = None

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        extra="forbid",
    )


def borrow_record_to_schema(record: BorrowRecord, as_of: date) -> BorrowRecordOut:
    """Serialize a record, labelling it overdue relative to ``as_of``."""
    return BorrowRecordOut(
        id=record.id,
        book_id=record.book_id,
        member_id=record.member_id,
        borrow_date=record.borrow_date,
        due_date=record.due_date,
        return_date=record.return_date,
        status=record.status,
        fine_amount=record.fine_amount,
        overdue=record.is_overdue(as_of),
        effective_status=record.effective_status(as_of),
        book=BookLite.model_validate(record.book) if record.book is not None else None,
        member=MemberLite.model_validate(record.member) if record.member is not None else None,
    )
