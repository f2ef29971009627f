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
from library_api.models import BorrowRecord, BorrowStatus, Member
from library_api.schemas.member import MemberCreate, MemberUpdate
from library_api.services.locking import entity_locks, member_key

logger = logging.getLogger(__name__)


class MembershipService:
    """Business logic for member registration, status and loan counts."""

    MAX_ACTIVE_LOANS = 5

    def __init__(self, db: Session, clock: Clock = system_clock, lock_timeout: Optional[float] = None):
        self.db = db
        self.clock = clock
        self.lock_timeout = lock_timeout if lock_timeout is not None else get_settings().lock_timeout_seconds

    def _handle_integrity_error(self, exc: IntegrityError) -> NoReturn:
        self.db.rollback()
        raise DuplicateKey("Email already registered.") from exc

    def _ensure_email_free(self, email: str, exclude_id: Optional[str] = None) -> None:
        existing = self.get_by_email(email)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateKey(f"A member with email {email} already exists.")

    def get_for_update(self, member_id: str) -> Member:
        stmt = (
            select(Member)
            .where(Member.id == member_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        member = self.db.execute(stmt).scalar_one_or_none()
        if member is None:
            raise NotFound(f"Member {member_id} not found.")
        return member

    def get(self, member_id: str) -> Member:
        member = self.db.get(Member, member_id)
        if member is None:
            raise NotFound(f"Member {member_id} not found.")
        return member

    def get_by_email(self, email: str) -> Optional[Member]:
        stmt = select(Member).where(func.lower(Member.email) == email.strip().lower())
        return self.db.execute(stmt).scalar_one_or_none()

    def list_members(self, skip: int = 0, limit: int = 100, search: Optional[str] = None) -> list[Member]:
        stmt = select(Member).order_by(Member.name)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(Member.name.ilike(pattern), Member.email.ilike(pattern)))
        return list(self.db.execute(stmt.offset(skip).limit(limit)).scalars())

    def list_all(self) -> list[Member]:
        return list(self.db.execute(select(Member).order_by(Member.name)).scalars())

    def search_by_name(self, name: str) -> list[Member]:
        stmt = select(Member).where(Member.name.ilike(f"%{name.strip()}%")).order_by(Member.name)
        return list(self.db.execute(stmt).scalars())

    def list_by_status(self, active: bool) -> list[Member]:
        stmt = select(Member).where(Member.is_active == active).order_by(Member.name)
        return list(self.db.execute(stmt).scalars())

    def active_loan_count(self, member_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(BorrowRecord)
            .where(BorrowRecord.member_id == member_id, BorrowRecord.status == BorrowStatus.BORROWED)
        )
        return self.db.execute(stmt).scalar_one()

    def can_borrow(self, member_id: str) -> bool:
        member = self.get(member_id)
        if not member.is_active:
            return False
        return self.active_loan_count(member.id) < self.MAX_ACTIVE_LOANS

    def register(self, payload: MemberCreate) -> Member:
        self._ensure_email_free(payload.email)

        member = Member(
            **payload.model_dump(),
            membership_date=self.clock(),
            is_active=True,
            books_borrowed=0,
        )
        self.db.add(member)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self._handle_integrity_error(exc)
        self.db.refresh(member)
        logger.info("Registered member %s (%s)", member.id, member.email)
        return member

    def update(self, member_id: str, payload: MemberUpdate) -> Member:
        member = self.get(member_id)
        self._ensure_email_free(payload.email, exclude_id=member.id)

        member.name = payload.name
        member.email = payload.email
        member.phone = payload.phone
        member.address = payload.address
        if payload.is_active is not None:
            member.is_active = payload.is_active

        try:
            self.db.commit()
        except IntegrityError as exc:
            self._handle_integrity_error(exc)
        self.db.refresh(member)
        logger.info("Updated member %s", member.id)
        return member

    def _set_active(self, member_id: str, active: bool) -> Member:
        member = self.get(member_id)
        member.is_active = active
        self.db.commit()
        self.db.refresh(member)
        logger.info("Member %s is now %s", member.id, member.status_label.lower())
        return member

    def deactivate(self, member_id: str) -> Member:
        return self._set_active(member_id, False)

    def activate(self, member_id: str) -> Member:
        return self._set_active(member_id, True)

    def remove(self, member_id: str) -> None:
        self.get(member_id)

        with entity_locks.hold(member_key(member_id), timeout=self.lock_timeout):
            with transaction(self.db):
                member = self.get_for_update(member_id)
                if member.books_borrowed > 0:
                    logger.warning(
                        "Refused to remove member %s with %d active borrows", member.id, member.books_borrowed
                    )
                    raise Conflict("Cannot delete a member with active borrows. Return all books first.")
                self.db.delete(member)
        logger.info("Removed member %s", member_id)

    def _shift_loan_count(self, member_id: str, step: int, guard) -> bool:
        stmt = (
            update(Member)
            .where(Member.id == member_id, guard)
            .values(books_borrowed=Member.books_borrowed + step)
            .execution_options(synchronize_session="evaluate")
        )
        return self.db.execute(stmt).rowcount == 1

    def increment_loan_count(self, member_id: str) -> Member:
        """Count one more open loan. Staged only; the caller commits."""
        member = self.get_for_update(member_id)
        below_cap = Member.books_borrowed < self.MAX_ACTIVE_LOANS
        if member.books_borrowed >= self.MAX_ACTIVE_LOANS or not self._shift_loan_count(member.id, 1, below_cap):
            raise InvalidState(f"Member {member_id} already holds {member.books_borrowed} loans.")
        return member

    def decrement_loan_count(self, member_id: str) -> Member:
        """Count one fewer open loan, never below zero. Staged only."""
        member = self.get_for_update(member_id)
        self._shift_loan_count(member.id, -1, Member.books_borrowed > 0)
        return member


def get_membership_service(db: Session = Depends(get_session)) -> MembershipService:
    return MembershipService(db)
