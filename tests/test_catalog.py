from __future__ import annotations

from datetime import date

import pytest

from library_api.core.errors import Conflict, DuplicateKey, InvalidState, NotFound
from library_api.models import Book, BorrowRecord
from library_api.schemas.book import BookUpdate


def _update_payload(book: Book, **changes) -> BookUpdate:
    data = {
        "title": book.title,
        "author": book.author,
        "isbn": book.isbn,
        "category": book.category,
        "total_copies": book.total_copies,
        "publication_year": book.publication_year,
        "publisher": book.publisher,
        "description": book.description,
    }
    data.update(changes)
    return BookUpdate(**data)


def test_add_puts_every_copy_on_the_shelf(make_book):
    book = make_book(copies=4, publisher="Scribner")

    assert book.id
    assert book.total_copies == 4
    assert book.available_copies == 4
    assert book.created_date == date(2024, 1, 1)


def test_add_rejects_duplicate_isbn(make_book):
    make_book(isbn="9780743273565")

    with pytest.raises(DuplicateKey):
        make_book(isbn="9780743273565")


def test_edit_shifts_available_copies_by_total_delta(catalog, ledger, make_book, make_member):
    book = make_book(copies=3)
    ledger.borrow(make_member().id, book.id)

    edited = catalog.edit(book.id, _update_payload(book, total_copies=5, title="Second Edition"))

    assert edited.title == "Second Edition"
    assert edited.total_copies == 5
    assert edited.available_copies == 4


def test_edit_cannot_drop_below_copies_on_loan(catalog, ledger, make_book, make_member):
    book = make_book(copies=2)
    ledger.borrow(make_member().id, book.id)
    ledger.borrow(make_member().id, book.id)

    with pytest.raises(InvalidState):
        catalog.edit(book.id, _update_payload(book, total_copies=1))

    reloaded = catalog.get(book.id)
    assert reloaded.total_copies == 2
    assert reloaded.available_copies == 0


def test_edit_rejects_isbn_owned_by_another_book(catalog, make_book):
    first = make_book()
    second = make_book()

    with pytest.raises(DuplicateKey):
        catalog.edit(second.id, _update_payload(second, isbn=first.isbn))


def test_remove_refuses_book_with_active_loan(catalog, ledger, make_book, make_member):
    book = make_book()
    ledger.borrow(make_member().id, book.id)

    with pytest.raises(Conflict):
        catalog.remove(book.id)

    assert catalog.get(book.id).id == book.id


def test_remove_deletes_returned_history(catalog, ledger, make_book, make_member, db_session):
    book = make_book()
    record = ledger.borrow(make_member().id, book.id)
    ledger.return_book(record.id)

    catalog.remove(book.id)

    with pytest.raises(NotFound):
        catalog.get(book.id)
    assert db_session.get(BorrowRecord, record.id) is None


def test_decrement_and_increment_respect_bounds(catalog, make_book, db_session):
    book = make_book(copies=1)

    with pytest.raises(InvalidState):
        catalog.increment(book.id)

    catalog.decrement(book.id)
    db_session.flush()
    assert book.available_copies == 0
    assert not catalog.is_available(book)

    with pytest.raises(InvalidState):
        catalog.decrement(book.id)
    db_session.rollback()


def test_catalog_queries(catalog, make_book):
    make_book(title="Dune", author="Frank Herbert", category="Science Fiction")
    make_book(title="Emma", author="Jane Austen", category="Romance")
    make_book(title="Persuasion", author="Jane Austen", category="Romance", copies=2)

    assert [b.title for b in catalog.search_by_title("dun")] == ["Dune"]
    assert [b.title for b in catalog.search_by_author("austen")] == ["Emma", "Persuasion"]
    assert [b.title for b in catalog.list_by_category("romance")] == ["Emma", "Persuasion"]
    assert catalog.list_categories() == ["Romance", "Science Fiction"]
    assert [b.title for b in catalog.list_books(search="herbert")] == ["Dune"]
    assert len(catalog.list_available()) == 3
    assert catalog.count() == 3


def test_get_unknown_book_is_not_found(catalog):
    with pytest.raises(NotFound):
        catalog.get("missing-book")
