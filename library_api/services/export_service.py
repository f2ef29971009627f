from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from library_api.models import Book, BorrowRecord, Member

DATE_FORMAT = "%Y-%m-%d"

BOOK_HEADERS = (
    "ID",
    "Title",
    "Author",
    "ISBN",
    "Category",
    "Total Copies",
    "Available Copies",
    "Publication Year",
    "Publisher",
)
MEMBER_HEADERS = (
    "ID",
    "Name",
    "Email",
    "Phone",
    "Address",
    "Membership Date",
    "Books Borrowed",
    "Status",
)
BORROW_RECORD_HEADERS = (
    "ID",
    "Book Title",
    "Member Name",
    "Borrow Date",
    "Due Date",
    "Return Date",
    "Status",
    "Fine Amount",
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv"


def _book_row(book: Book) -> list[Any]:
    return [
        book.id,
        book.title,
        book.author,
        book.isbn,
        book.category,
        book.total_copies,
        book.available_copies,
        book.publication_year if book.publication_year is not None else "",
        book.publisher or "",
    ]


def _member_row(member: Member) -> list[Any]:
    return [
        member.id,
        member.name,
        member.email,
        member.phone,
        member.address,
        member.membership_date.strftime(DATE_FORMAT),
        member.books_borrowed,
        member.status_label,
    ]


def _borrow_record_row(record: BorrowRecord) -> list[Any]:
    return [
        record.id,
        record.book.title,
        record.member.name,
        record.borrow_date.strftime(DATE_FORMAT),
        record.due_date.strftime(DATE_FORMAT),
        record.return_date.strftime(DATE_FORMAT) if record.return_date else "Not Returned",
        record.status.value,
        record.fine_amount,
    ]


class ExportService:
    """Serializes catalog, membership and ledger read results as files."""

    def _workbook(self, sheet_title: str, headers: Sequence[str], rows: Iterable[list[Any]]) -> bytes:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = sheet_title

        sheet.append(list(headers))
        bold = Font(bold=True)
        for cell in sheet[1]:
            cell.font = bold

        widths = [len(header) for header in headers]
        for row in rows:
            sheet.append(row)
            widths = [max(width, len(str(value))) for width, value in zip(widths, row)]

        for index, width in enumerate(widths, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = min(width + 2, 60)

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    def _csv(self, headers: Sequence[str], rows: Iterable[list[Any]]) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(headers)
        writer.writerows(rows)
        return buffer.getvalue().encode("utf-8")

    def books_to_excel(self, books: Iterable[Book]) -> bytes:
        return self._workbook("Books", BOOK_HEADERS, (_book_row(book) for book in books))

    def books_to_csv(self, books: Iterable[Book]) -> bytes:
        return self._csv(BOOK_HEADERS, (_book_row(book) for book in books))

    def members_to_excel(self, members: Iterable[Member]) -> bytes:
        return self._workbook("Members", MEMBER_HEADERS, (_member_row(member) for member in members))

    def members_to_csv(self, members: Iterable[Member]) -> bytes:
        return self._csv(MEMBER_HEADERS, (_member_row(member) for member in members))

    def borrow_records_to_excel(self, records: Iterable[BorrowRecord]) -> bytes:
        return self._workbook(
            "Borrow Records", BORROW_RECORD_HEADERS, (_borrow_record_row(record) for record in records)
        )


def get_export_service() -> ExportService:
    return ExportService()
