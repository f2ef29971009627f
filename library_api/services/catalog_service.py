from __future__ import annotations

import logging
from typing import NoReturn, Optional

from fastapi import Depends
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from library_api.core.clock import Clock, system_clock
from library_api.core.errors import Conflict, DuplicateKey, InvalidState, NotFound
from library_api.core.settings import get_settings
from library_api.db.session import get_session, transaction
from library_api.models import Book, BorrowRecord, BorrowStatus
from library_api.schemas.book import BookCreate, BookUpdate
from library_api.services.locking import book_key, entity_locks

logger = logging.getLogger(__name__)


class CatalogService:
    """Business logic layer for the book catalog and its copy counts."""

    def __init__(self, db: Session, clock: Clock = system_clock, lock_timeout: Optional[float] = None):
        self.db = db
        self.clock = clock
        self.lock_timeout = lock_timeout if lock_timeout is not None else get_settings().lock_timeout_seconds

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _handle_integrity_error(self, exc: IntegrityError) -> NoReturn:
        self.db.rollback()
        message = str(exc.orig).lower()
        if "isbn" in message or "unique" in message:
            raise DuplicateKey("A book with this ISBN already exists.") from exc
        raise InvalidState("Unable to store the book with the provided data.") from exc

    def _ensure_isbn_free(self, isbn: str, exclude_id: Optional[str] = None) -> None:
        existing = self.get_by_isbn(isbn)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateKey(f"A book with ISBN {isbn} already exists.")

    def get_for_update(self, book_id: str) -> Book:
        stmt = (
            select(Book)
            .where(Book.id == book_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        book = self.db.execute(stmt).scalar_one_or_none()
        if book is None:
            raise NotFound(f"Book {book_id} not found.")
        return book

    def _has_active_loans(self, book_id: str) -> bool:
        stmt = (
            select(BorrowRecord.id)
            .where(BorrowRecord.book_id == book_id, BorrowRecord.status == BorrowStatus.BORROWED)
            .limit(1)
        )
        return self.db.execute(stmt).first() is not None

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def get(self, book_id: str) -> Book:
        book = self.db.get(Book, book_id)
        if book is None:
            raise NotFound(f"Book {book_id} not found.")
        return book

    def get_by_isbn(self, isbn: str) -> Optional[Book]:
        return self.db.execute(select(Book).where(Book.isbn == isbn)).scalar_one_or_none()

    def list_books(self, skip: int = 0, limit: int = 100, search: Optional[str] = None) -> list[Book]:
        stmt = select(Book).order_by(Book.title)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    Book.title.ilike(pattern),
                    Book.author.ilike(pattern),
                    Book.category.ilike(pattern),
                    Book.isbn.ilike(pattern),
                )
            )
        return list(self.db.execute(stmt.offset(skip).limit(limit)).scalars())

    def list_all(self) -> list[Book]:
        return list(self.db.execute(select(Book).order_by(Book.title)).scalars())

    def list_available(self) -> list[Book]:
        stmt = select(Book).where(Book.available_copies > 0).order_by(Book.title)
        return list(self.db.execute(stmt).scalars())

    def search_by_title(self, title: str) -> list[Book]:
        stmt = select(Book).where(Book.title.ilike(f"%{title.strip()}%")).order_by(Book.title)
        return list(self.db.execute(stmt).scalars())

    def search_by_author(self, author: str) -> list[Book]:
        stmt = select(Book).where(Book.author.ilike(f"%{author.strip()}%")).order_by(Book.title)
        return list(self.db.execute(stmt).scalars())

    def list_by_category(self, category: str) -> list[Book]:
        stmt = select(Book).where(func.lower(Book.category) == category.strip().lower()).order_by(Book.title)
        return list(self.db.execute(stmt).scalars())

    def list_categories(self) -> list[str]:
        stmt = select(Book.category).distinct().order_by(Book.category)
        return list(self.db.execute(stmt).scalars())

    def count(self) -> int:
        return self.db.execute(select(func.count()).select_from(Book)).scalar_one()

    @staticmethod
    def is_available(book: Book) -> bool:
        return book.available_copies > 0

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #
    def add(self, payload: BookCreate) -> Book:
        self._ensure_isbn_free(payload.isbn)

        book = Book(
            **payload.model_dump(),
            available_copies=payload.total_copies,
            created_date=self.clock(),
        )
        self.db.add(book)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self._handle_integrity_error(exc)
        self.db.refresh(book)
        logger.info("Added book %s (isbn=%s, copies=%d)", book.id, book.isbn, book.total_copies)
        return book

    def edit(self, book_id: str, payload: BookUpdate) -> Book:
        self.get(book_id)

        with entity_locks.hold(book_key(book_id), timeout=self.lock_timeout):
            try:
                with transaction(self.db):
                    book = self.get_for_update(book_id)
                    self._ensure_isbn_free(payload.isbn, exclude_id=book.id)

                    delta = payload.total_copies - book.total_copies
                    new_available = book.available_copies + delta
                    if new_available < 0:
                        on_loan = book.total_copies - book.available_copies
                        raise InvalidState(
                            f"Cannot reduce total copies to {payload.total_copies}: "
                            f"{on_loan} copies are on loan."
                        )

                    for field, value in payload.model_dump().items():
                        setattr(book, field, value)
                    book.available_copies = new_available
            except IntegrityError as exc:
                self._handle_integrity_error(exc)

        self.db.refresh(book)
        logger.info(
            "Edited book %s (copies=%d, available=%d)", book.id, book.total_copies, book.available_copies
        )
        return book

    def remove(self, book_id: str) -> None:
        self.get(book_id)

        with entity_locks.hold(book_key(book_id), timeout=self.lock_timeout):
            with transaction(self.db):
                book = self.get_for_update(book_id)
                if self._has_active_loans(book.id):
                    logger.warning("Refused to remove book %s with active loans", book.id)
                    raise Conflict("Cannot delete a book with active borrows.")
                self.db.delete(book)
        logger.info("Removed book %s", book_id)

    def _shift_available(self, book_id: str, step: int, guard) -> bool:
        stmt = (
            update(Book)
            .where(Book.id == book_id, guard)
            .values(available_copies=Book.available_copies + step)
            .execution_options(synchronize_session="evaluate")
        )
        return self.db.execute(stmt).rowcount == 1

    def decrement(self, book_id: str) -> Book:
        """Take one copy off the shelf. Staged only; the caller commits."""
        book = self.get_for_update(book_id)
        if book.available_copies - 1 < 0 or not self._shift_available(book.id, -1, Book.available_copies > 0):
            raise InvalidState(f"Book {book_id} has no copies left to lend.")
        return book

    def increment(self, book_id: str) -> Book:
        """Put one copy back on the shelf. Staged only; the caller commits."""
        book = self.get_for_update(book_id)
        within_total = Book.available_copies < Book.total_copies
        if book.available_copies + 1 > book.total_copies or not self._shift_available(book.id, 1, within_total):
            raise InvalidState(f"Book {book_id} already has all {book.total_copies} copies on the shelf.")
        return book


def get_catalog_service(db: Session = Depends(get_session)) -> CatalogService:
    return CatalogService(db)
