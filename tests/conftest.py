from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from datetime import date, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LIBRARY_SEED_ON_STARTUP"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from library_api.db.session import get_session
from library_api.main import app
from library_api.models import Base, Book, Member
from library_api.schemas.book import BookCreate
from library_api.schemas.member import MemberCreate
from library_api.services.catalog_service import CatalogService
from library_api.services.lending_service import LendingLedger
from library_api.services.locking import entity_locks
from library_api.services.membership_service import MembershipService


class FakeClock:
    """A controllable stand-in for ``date.today``."""

    def __init__(self, start: date) -> None:
        self.current = start

    def __call__(self) -> date:
        return self.current

    def advance(self, days: int) -> date:
        self.current = self.current + timedelta(days=days)
        return self.current


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


@pytest.fixture()
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(date(2024, 1, 1))


@pytest.fixture()
def catalog(db_session: Session, clock: FakeClock) -> CatalogService:
    return CatalogService(db_session, clock=clock, lock_timeout=2)


@pytest.fixture()
def membership(db_session: Session, clock: FakeClock) -> MembershipService:
    return MembershipService(db_session, clock=clock, lock_timeout=2)


@pytest.fixture()
def ledger(db_session: Session, clock: FakeClock, catalog, membership) -> LendingLedger:
    return LendingLedger(db_session, catalog=catalog, membership=membership, clock=clock, lock_timeout=2)


@pytest.fixture()
def make_book(catalog: CatalogService):
    counter = {"n": 0}

    def _make(copies: int = 1, **overrides) -> Book:
        counter["n"] += 1
        data = {
            "title": f"Book {counter['n']}",
            "author": "Test Author",
            "isbn": f"978000000{counter['n']:04d}",
            "category": "Fiction",
            "total_copies": copies,
        }
        data.update(overrides)
        return catalog.add(BookCreate(**data))

    return _make


@pytest.fixture()
def make_member(membership: MembershipService):
    counter = {"n": 0}

    def _make(**overrides) -> Member:
        counter["n"] += 1
        data = {
            "name": f"Reader {counter['n']}",
            "email": f"reader{counter['n']}@example.com",
            "phone": "5551234567",
            "address": "1 Library Lane",
        }
        data.update(overrides)
        return membership.register(MemberCreate(**data))

    return _make


@pytest.fixture()
def client(session_factory):
    def override_get_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_get_session
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def hold_elsewhere():
    """Hold entity locks from a background thread for the duration of a block."""

    @contextmanager
    def _hold(*keys: str):
        acquired = threading.Event()
        release = threading.Event()

        def _worker() -> None:
            with entity_locks.hold(*keys, timeout=5):
                acquired.set()
                release.wait(10)

        worker = threading.Thread(target=_worker)
        worker.start()
        assert acquired.wait(5)
        try:
            yield
        finally:
            release.set()
            worker.join()

    return _hold
