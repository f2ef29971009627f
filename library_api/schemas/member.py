from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from library_api.models.member import Member

PHONE_PATTERN = r"^[0-9]{10}$"


class MemberBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(pattern=PHONE_PATTERN)
    address: str = Field(min_length=1, max_length=500)

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class MemberCreate(MemberBase):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class MemberUpdate(MemberBase):
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class MemberOut(BaseModel):
    """Stored member as returned to clients; input rules are not re-applied."""

    id: str
    name: str
    email: str
    phone: str
    address: str
    membership_date: date = Field(alias="membershipDate")
    is_active: bool = Field(alias="isActive")
    books_borrowed: int = Field(alias="booksBorrowed")

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        extra="forbid",
    )


class MemberLite(BaseModel):
    id: str
    name: str
    email: str

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        extra="forbid",
    )


class MemberStatistics(BaseModel):
    member_id: str = Field(alias="memberId")
    member_name: str = Field(alias="memberName")
    member_since: date = Field(alias="memberSince")
    is_active: bool = Field(alias="isActive")
    currently_borrowed: int = Field(alias="currentlyBorrowed")
    returned_books: int = Field(alias="returnedBooks")
    overdue_books: int = Field(alias="overdueBooks")
    total_borrowed: int = Field(alias="totalBorrowed")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class BorrowEligibility(BaseModel):
    member_id: str = Field(alias="memberId")
    can_borrow: bool = Field(alias="canBorrow")
    active_loans: int = Field(alias="activeLoans")
    max_active_loans: int = Field(alias="maxActiveLoans")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


def member_to_schema(member: Member) -> MemberOut:
    """Convert a SQLAlchemy Member instance to a MemberOut schema."""
    return MemberOut.model_validate(member)
