from __future__ import annotations

import threading
from collections.abc import Callable

import pytest
from sqlalchemy import func, select

from library_api.core.errors import RULE_LIMIT_EXCEEDED, RULE_UNAVAILABLE, InvalidState, PolicyViolation
from library_api.db.session import build_engine, build_session_factory
from library_api.models import Base, Book, BorrowRecord, BorrowStatus, Member
from library_api.schemas.book import BookCreate
from library_api.schemas.member import MemberCreate
from library_api.services.catalog_service import CatalogService
from library_api.services.lending_service import LendingLedger
from library_api.services.locking import entity_locks
from library_api.services.membership_service import MembershipService

BORROWERS = 8


@pytest.fixture()
def SessionLocal(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'lending.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield build_session_factory(engine)
    finally:
        engine.dispose()


def _add_book(session, isbn: str, copies: int = 1) -> str:
    payload = BookCreate(title=f"Book {isbn}", author="Someone", isbn=isbn, category="Fiction", total_copies=copies)
    return CatalogService(session).add(payload).id


def _add_member(session, index: int) -> str:
    payload = MemberCreate(
        name=f"Borrower {index}",
        email=f"borrower{index}@example.com",
        phone="5550000000",
        address="1 Library Lane",
    )
    return MembershipService(session).register(payload).id


def _race(SessionLocal, attempts: list[Callable[[LendingLedger], object]]) -> tuple[list, list[str], list]:
    """Start every attempt at once, each on its own session; collect outcomes."""
    barrier = threading.Barrier(len(attempts))
    successes: list = []
    rejections: list[str] = []
    errors: list[BaseException] = []
    results_lock = threading.Lock()

    def run(attempt) -> None:
        with SessionLocal() as session:
            ledger = LendingLedger(session, lock_timeout=30)
            barrier.wait()
            try:
                result = attempt(ledger)
            except PolicyViolation as exc:
                with results_lock:
                    rejections.append(exc.rule)
            except Exception as exc:  # surfaced by the callers' assertions
                with results_lock:
                    errors.append(exc)
            else:
                with results_lock:
                    successes.append(result)

    threads = [threading.Thread(target=run, args=(attempt,)) for attempt in attempts]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return successes, rejections, errors


def _open_loans(session, member_id: str) -> int:
    stmt = (
        select(func.count())
        .select_from(BorrowRecord)
        .where(BorrowRecord.member_id == member_id, BorrowRecord.status == BorrowStatus.BORROWED)
    )
    return session.execute(stmt).scalar_one()


def test_concurrent_borrows_of_last_copy(SessionLocal):
    with SessionLocal() as session:
        book_id = _add_book(session, "9781111111111")
        member_ids = [_add_member(session, i) for i in range(BORROWERS)]

    successes, rejections, errors = _race(
        SessionLocal,
        [lambda ledger, member_id=member_id: ledger.borrow(member_id, book_id).id for member_id in member_ids],
    )

    assert errors == []
    assert len(successes) == 1
    assert rejections == [RULE_UNAVAILABLE] * (BORROWERS - 1)

    with SessionLocal() as session:
        assert session.get(Book, book_id).available_copies == 0
        assert session.execute(select(func.count()).select_from(BorrowRecord)).scalar_one() == 1
        assert session.execute(select(func.sum(Member.books_borrowed))).scalar_one() == 1
    assert len(entity_locks) == 0


def test_concurrent_borrows_by_one_member_respect_loan_limit(SessionLocal):
    with SessionLocal() as session:
        member_id = _add_member(session, 0)
        ledger = LendingLedger(session)
        for i in range(4):
            ledger.borrow(member_id, _add_book(session, f"97822222222{i:02d}"))
        contested = [_add_book(session, f"97833333333{i:02d}") for i in range(6)]

    successes, rejections, errors = _race(
        SessionLocal,
        [lambda ledger, book_id=book_id: ledger.borrow(member_id, book_id).id for book_id in contested],
    )

    assert errors == []
    assert len(successes) == 1
    assert rejections == [RULE_LIMIT_EXCEEDED] * 5

    with SessionLocal() as session:
        assert session.get(Member, member_id).books_borrowed == 5
        assert _open_loans(session, member_id) == 5
        on_shelf = session.execute(select(func.sum(Book.available_copies)).where(Book.id.in_(contested))).scalar_one()
        assert on_shelf == 5


def test_concurrent_borrow_and_return_by_one_member(SessionLocal):
    with SessionLocal() as session:
        member_id = _add_member(session, 0)
        ledger = LendingLedger(session)
        records = [ledger.borrow(member_id, _add_book(session, f"97844444444{i:02d}")).id for i in range(5)]
        wanted = _add_book(session, "9784444444499")

    successes, rejections, errors = _race(
        SessionLocal,
        [
            lambda ledger: ledger.return_book(records[0]).id,
            lambda ledger: ledger.borrow(member_id, wanted).id,
        ],
    )

    assert errors == []
    assert len(successes) + len(rejections) == 2
    assert set(rejections) <= {RULE_LIMIT_EXCEEDED}

    with SessionLocal() as session:
        member = session.get(Member, member_id)
        assert member.books_borrowed == _open_loans(session, member_id)
        assert member.books_borrowed == 5 - 1 + (len(successes) - 1)


def test_decrement_does_not_overwrite_a_newer_count(SessionLocal, monkeypatch):
    with SessionLocal() as session:
        book_id = _add_book(session, "9785555555555")

    stale_session = SessionLocal()
    stale_catalog = CatalogService(stale_session)
    stale_book = stale_session.get(Book, book_id)

    with SessionLocal() as session:
        CatalogService(session).decrement(book_id)
        session.commit()

    # Simulates reading the row just before another process committed.
    monkeypatch.setattr(CatalogService, "get_for_update", lambda self, _id: stale_book)
    assert stale_book.available_copies == 1
    with pytest.raises(InvalidState):
        stale_catalog.decrement(book_id)
    stale_session.rollback()
    stale_session.close()

    with SessionLocal() as session:
        assert session.get(Book, book_id).available_copies == 0


def test_loan_count_increment_does_not_pass_the_cap_on_a_stale_read(SessionLocal, monkeypatch):
    with SessionLocal() as session:
        member_id = _add_member(session, 0)

    stale_session = SessionLocal()
    stale_membership = MembershipService(stale_session)
    stale_member = stale_session.get(Member, member_id)

    with SessionLocal() as session:
        membership = MembershipService(session)
        for _ in range(membership.MAX_ACTIVE_LOANS):
            membership.increment_loan_count(member_id)
            session.flush()
        session.commit()

    monkeypatch.setattr(MembershipService, "get_for_update", lambda self, _id: stale_member)
    assert stale_member.books_borrowed == 0
    with pytest.raises(InvalidState):
        stale_membership.increment_loan_count(member_id)
    stale_session.rollback()
    stale_session.close()

    with SessionLocal() as session:
        assert session.get(Member, member_id).books_borrowed == MembershipService.MAX_ACTIVE_LOANS
