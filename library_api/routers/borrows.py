from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from library_api.models import BorrowStatus
from library_api.schemas.borrow import BorrowRecordOut, BorrowRequest, ReturnRequest, borrow_record_to_schema
from library_api.services.export_service import XLSX_MEDIA_TYPE, ExportService, get_export_service
from library_api.services.lending_service import LendingLedger, get_lending_ledger

# Shares the /api/books prefix; must be included before the books router so
# these static paths win over /{book_id}.
router = APIRouter(prefix="/api/books", tags=["borrowing"])


@router.post(
    "/borrow",
    status_code=status.HTTP_201_CREATED,
    response_model=BorrowRecordOut,
)
def borrow_book(
    payload: BorrowRequest,
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> BorrowRecordOut:
    """Lend one copy of a book to a member."""
    record = ledger.borrow(member_id=payload.member_id, book_id=payload.book_id)
    return borrow_record_to_schema(record, ledger.clock())


@router.post(
    "/return",
    response_model=BorrowRecordOut,
)
def return_book(
    payload: ReturnRequest,
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> BorrowRecordOut:
    """Close a loan and assess any overdue fine."""
    record = ledger.return_book(payload.borrow_record_id)
    return borrow_record_to_schema(record, ledger.clock())


@router.get("/borrow-records", response_model=list[BorrowRecordOut])
def list_borrow_records(
    status_filter: Optional[BorrowStatus] = Query(default=None, alias="status"),
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> list[BorrowRecordOut]:
    records = ledger.records_by_status(status_filter) if status_filter else ledger.list_records()
    today = ledger.clock()
    return [borrow_record_to_schema(record, today) for record in records]


@router.get("/borrow-records/overdue", response_model=list[BorrowRecordOut])
def list_overdue_records(
    as_of: Optional[date] = Query(default=None, alias="asOf"),
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> list[BorrowRecordOut]:
    as_of = as_of or ledger.clock()
    return [borrow_record_to_schema(record, as_of) for record in ledger.list_overdue(as_of=as_of)]


@router.get("/borrow-records/user/{member_id}", response_model=list[BorrowRecordOut])
def list_member_records(
    member_id: str,
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> list[BorrowRecordOut]:
    today = ledger.clock()
    return [borrow_record_to_schema(record, today) for record in ledger.records_for_member(member_id)]


@router.get("/borrow-records/book/{book_id}", response_model=list[BorrowRecordOut])
def list_book_records(
    book_id: str,
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> list[BorrowRecordOut]:
    today = ledger.clock()
    return [borrow_record_to_schema(record, today) for record in ledger.records_for_book(book_id)]


@router.get("/borrow-records/export/excel")
def export_borrow_records_excel(
    ledger: LendingLedger = Depends(get_lending_ledger),
    exporter: ExportService = Depends(get_export_service),
) -> Response:
    content = exporter.borrow_records_to_excel(ledger.list_records())
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=borrow_records.xlsx"},
    )


@router.get("/borrow-records/{record_id}", response_model=BorrowRecordOut)
def get_borrow_record(
    record_id: str,
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> BorrowRecordOut:
    return borrow_record_to_schema(ledger.get_record(record_id), ledger.clock())
