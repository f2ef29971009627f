from .book import BookCreate, BookLite, BookOut, BookUpdate
from .borrow import BorrowRecordOut, BorrowRequest, ReturnRequest, borrow_record_to_schema
from .member import (
    BorrowEligibility,
    MemberCreate,
    MemberLite,
    MemberOut,
    MemberStatistics,
    MemberUpdate,
    member_to_schema,
)

__all__ = [
    "BookCreate",
    "BookLite",
    "BookOut",
    "BookUpdate",
    "BorrowEligibility",
    "BorrowRecordOut",
    "BorrowRequest",
    "MemberCreate",
    "MemberLite",
    "MemberOut",
    "MemberStatistics",
    "MemberUpdate",
    "ReturnRequest",
    "borrow_record_to_schema",
    "member_to_schema",
]
