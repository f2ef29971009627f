from __future__ import annotations

import csv
import io

from openpyxl import load_workbook

from library_api.services.export_service import (
    BOOK_HEADERS,
    BORROW_RECORD_HEADERS,
    MEMBER_HEADERS,
    XLSX_MEDIA_TYPE,
    ExportService,
)


def test_books_to_excel_has_header_and_rows(catalog, make_book):
    make_book(title="Dune", copies=3, publication_year=1965)

    workbook = load_workbook(io.BytesIO(ExportService().books_to_excel(catalog.list_all())))
    sheet = workbook.active
    rows = list(sheet.iter_rows(values_only=True))

    assert sheet.title == "Books"
    assert rows[0] == BOOK_HEADERS
    assert rows[1][1] == "Dune"
    assert rows[1][5] == 3
    assert rows[1][6] == 3
    assert rows[1][7] == 1965
    assert sheet["A1"].font.bold


def test_members_to_csv(membership, make_member):
    make_member(name="Ada Lovelace", email="ada@example.com")
    membership.deactivate(make_member(name="Bob Inactive").id)

    content = ExportService().members_to_csv(membership.list_all()).decode("utf-8")
    rows = list(csv.reader(io.StringIO(content)))

    assert tuple(rows[0]) == MEMBER_HEADERS
    assert rows[1][1:3] == ["Ada Lovelace", "ada@example.com"]
    assert rows[1][5] == "2024-01-01"
    assert rows[1][7] == "Active"
    assert rows[2][7] == "Inactive"


def test_borrow_records_to_excel_marks_open_loans(ledger, make_book, make_member):
    ledger.borrow(make_member(name="Ada").id, make_book(title="Dune").id)

    workbook = load_workbook(io.BytesIO(ExportService().borrow_records_to_excel(ledger.list_records())))
    rows = list(workbook.active.iter_rows(values_only=True))

    assert rows[0] == BORROW_RECORD_HEADERS
    assert rows[1][1:7] == ("Dune", "Ada", "2024-01-01", "2024-01-15", "Not Returned", "BORROWED")
    assert rows[1][7] == 0


def test_export_endpoints(client):
    client.post(
        "/api/books",
        json={"title": "Emma", "author": "Jane Austen", "isbn": "9780141439587", "category": "Romance", "totalCopies": 1},
    )

    excel = client.get("/api/books/export/excel")
    assert excel.status_code == 200
    assert excel.headers["content-type"] == XLSX_MEDIA_TYPE
    assert "books.xlsx" in excel.headers["content-disposition"]
    assert load_workbook(io.BytesIO(excel.content)).active["B2"].value == "Emma"

    books_csv = client.get("/api/books/export/csv")
    assert books_csv.headers["content-type"].startswith("text/csv")
    assert books_csv.text.splitlines()[1].split(",")[1] == "Emma"

    assert client.get("/api/users/export/excel").status_code == 200
    assert client.get("/api/users/export/csv").text.splitlines() == [",".join(MEMBER_HEADERS)]
    assert client.get("/api/books/borrow-records/export/excel").status_code == 200
