"""Borrow/return ledger.

A loan moves ``BORROWED -> RETURNED`` exactly once. Each transition is one
unit of work that writes the record, the book's available copies and the
member's loan count together; any failure rolls all three back. Overdue is a
label computed against an "as of" date and is never written.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import Depends
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, joinedload

from library_api.core.clock import Clock, system_clock
from library_api.core.errors import (
    RULE_ALREADY_RETURNED,
    RULE_INACTIVE_MEMBER,
    RULE_LIMIT_EXCEEDED,
    RULE_UNAVAILABLE,
    NotFound,
    PolicyViolation,
)
from library_api.core.settings import get_settings
from library_api.db.session import get_session, transaction
from library_api.models import BorrowRecord, BorrowStatus
from library_api.schemas.member import MemberStatistics
from library_api.services.catalog_service import CatalogService
from library_api.services.locking import book_key, entity_locks, member_key
from library_api.services.membership_service import MembershipService

logger = logging.getLogger(__name__)


class LendingLedger:
    """Orchestrates borrow and return across the catalog and membership."""

    LOAN_PERIOD_DAYS = 14
    FINE_PER_DAY = 5.0

    def __init__(
        self,
        db: Session,
        catalog: Optional[CatalogService] = None,
        membership: Optional[MembershipService] = None,
        clock: Clock = system_clock,
        lock_timeout: Optional[float] = None,
    ):
        self.db = db
        self.clock = clock
        self.lock_timeout = lock_timeout if lock_timeout is not None else get_settings().lock_timeout_seconds
        self.catalog = catalog or CatalogService(db, clock=clock, lock_timeout=self.lock_timeout)
        self.membership = membership or MembershipService(db, clock=clock, lock_timeout=self.lock_timeout)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _records(self) -> Select:
        return select(BorrowRecord).options(
            joinedload(BorrowRecord.book),
            joinedload(BorrowRecord.member),
        )

    def _get_record_for_update(self, record_id: str) -> BorrowRecord:
        stmt = (
            select(BorrowRecord)
            .where(BorrowRecord.id == record_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        record = self.db.execute(stmt).scalar_one_or_none()
        if record is None:
            raise NotFound(f"Borrow record {record_id} not found.")
        return record

    @classmethod
    def compute_fine(cls, due_date: date, return_date: date) -> float:
        """$5 per whole calendar day past the due date; nothing on or before it."""
        days_late = (return_date - due_date).days
        if days_late <= 0:
            return 0.0
        return days_late * cls.FINE_PER_DAY

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #
    def borrow(self, member_id: str, book_id: str) -> BorrowRecord:
        self.membership.get(member_id)

        with entity_locks.hold(member_key(member_id), book_key(book_id), timeout=self.lock_timeout):
            try:
                with transaction(self.db):
                    member = self.membership.get_for_update(member_id)
                    if not member.is_active:
                        raise PolicyViolation(RULE_INACTIVE_MEMBER, "Member account is not active.")

                    book = self.catalog.get_for_update(book_id)
                    if not self.catalog.is_available(book):
                        raise PolicyViolation(RULE_UNAVAILABLE, f"No copies of '{book.title}' are available.")

                    active_loans = self.membership.active_loan_count(member.id)
                    if active_loans >= self.membership.MAX_ACTIVE_LOANS:
                        raise PolicyViolation(
                            RULE_LIMIT_EXCEEDED,
                            f"Member has reached the maximum of {self.membership.MAX_ACTIVE_LOANS} borrowed books.",
                        )

                    today = self.clock()
                    record = BorrowRecord(
                        book_id=book.id,
                        member_id=member.id,
                        borrow_date=today,
                        due_date=today + timedelta(days=self.LOAN_PERIOD_DAYS),
                        status=BorrowStatus.BORROWED,
                        fine_amount=0.0,
                    )
                    self.db.add(record)
                    self.catalog.decrement(book.id)
                    self.membership.increment_loan_count(member.id)
            except PolicyViolation as exc:
                logger.warning("Borrow rejected for member %s, book %s: %s", member_id, book_id, exc.rule)
                raise

        self.db.refresh(record)
        logger.info("Member %s borrowed book %s (record %s, due %s)", member_id, book_id, record.id, record.due_date)
        return record

    def return_book(self, record_id: str) -> BorrowRecord:
        existing = self.db.get(BorrowRecord, record_id)
        if existing is None:
            raise NotFound(f"Borrow record {record_id} not found.")

        keys = (member_key(existing.member_id), book_key(existing.book_id))
        with entity_locks.hold(*keys, timeout=self.lock_timeout):
            try:
                with transaction(self.db):
                    record = self._get_record_for_update(record_id)
                    if record.status != BorrowStatus.BORROWED:
                        raise PolicyViolation(RULE_ALREADY_RETURNED, "Book is already returned.")

                    today = self.clock()
                    record.return_date = today
                    record.status = BorrowStatus.RETURNED
                    record.fine_amount = self.compute_fine(record.due_date, today)

                    self.catalog.increment(record.book_id)
                    self.membership.decrement_loan_count(record.member_id)
            except PolicyViolation as exc:
                logger.warning("Return rejected for record %s: %s", record_id, exc.rule)
                raise

        self.db.refresh(record)
        logger.info("Record %s returned on %s with fine %.2f", record.id, record.return_date, record.fine_amount)
        return record

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def get_record(self, record_id: str) -> BorrowRecord:
        record = self.db.execute(self._records().where(BorrowRecord.id == record_id)).scalar_one_or_none()
        if record is None:
            raise NotFound(f"Borrow record {record_id} not found.")
        return record

    def list_records(self) -> list[BorrowRecord]:
        stmt = self._records().order_by(BorrowRecord.borrow_date.desc(), BorrowRecord.id)
        return list(self.db.execute(stmt).scalars())

    def records_for_member(self, member_id: str) -> list[BorrowRecord]:
        self.membership.get(member_id)
        stmt = (
            self._records()
            .where(BorrowRecord.member_id == member_id)
            .order_by(BorrowRecord.borrow_date.desc(), BorrowRecord.id)
        )
        return list(self.db.execute(stmt).scalars())

    def active_loans_for_member(self, member_id: str) -> list[BorrowRecord]:
        self.membership.get(member_id)
        stmt = (
            self._records()
            .where(BorrowRecord.member_id == member_id, BorrowRecord.status == BorrowStatus.BORROWED)
            .order_by(BorrowRecord.due_date)
        )
        return list(self.db.execute(stmt).scalars())

    def records_for_book(self, book_id: str) -> list[BorrowRecord]:
        self.catalog.get(book_id)
        stmt = (
            self._records()
            .where(BorrowRecord.book_id == book_id)
            .order_by(BorrowRecord.borrow_date.desc(), BorrowRecord.id)
        )
        return list(self.db.execute(stmt).scalars())

    def records_by_status(self, status: BorrowStatus) -> list[BorrowRecord]:
        if status == BorrowStatus.OVERDUE:
            return self.list_overdue()
        stmt = self._records().where(BorrowRecord.status == status).order_by(BorrowRecord.due_date)
        return list(self.db.execute(stmt).scalars())

    def list_overdue(self, as_of: Optional[date] = None) -> list[BorrowRecord]:
        as_of = as_of or self.clock()
        stmt = (
            self._records()
            .where(BorrowRecord.status == BorrowStatus.BORROWED, BorrowRecord.due_date < as_of)
            .order_by(BorrowRecord.due_date)
        )
        return list(self.db.execute(stmt).scalars())

    def member_statistics(self, member_id: str) -> MemberStatistics:
        member = self.membership.get(member_id)
        today = self.clock()

        def _count(*criteria) -> int:
            stmt = select(func.count()).select_from(BorrowRecord).where(BorrowRecord.member_id == member.id, *criteria)
            return self.db.execute(stmt).scalar_one()

        return MemberStatistics(
            member_id=member.id,
            member_name=member.name,
            member_since=member.membership_date,
            is_active=member.is_active,
            currently_borrowed=member.books_borrowed,
            returned_books=_count(BorrowRecord.status == BorrowStatus.RETURNED),
            overdue_books=_count(BorrowRecord.status == BorrowStatus.BORROWED, BorrowRecord.due_date < today),
            total_borrowed=_count(),
        )


def get_lending_ledger(db: Session = Depends(get_session)) -> LendingLedger:
    return LendingLedger(db)
