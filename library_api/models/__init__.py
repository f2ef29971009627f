from .member import Base, Member
from .book import Book
from .borrow_record import BorrowRecord, BorrowStatus

__all__ = ["Base", "Member", "Book", "BorrowRecord", "BorrowStatus"]
