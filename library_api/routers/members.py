from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from library_api.core.errors import NotFound
from library_api.schemas.borrow import BorrowRecordOut, borrow_record_to_schema
from library_api.schemas.member import (
    BorrowEligibility,
    MemberCreate,
    MemberOut,
    MemberStatistics,
    MemberUpdate,
    member_to_schema,
)
from library_api.services.export_service import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    ExportService,
    get_export_service,
)
from library_api.services.lending_service import LendingLedger, get_lending_ledger
from library_api.services.membership_service import MembershipService, get_membership_service

router = APIRouter(prefix="/api/users", tags=["members"])


@router.get("", response_model=list[MemberOut])
def list_members(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    search: Optional[str] = Query(default=None, min_length=1),
    service: MembershipService = Depends(get_membership_service),
) -> list[MemberOut]:
    return [member_to_schema(member) for member in service.list_members(skip=skip, limit=limit, search=search)]


@router.get("/active", response_model=list[MemberOut])
def list_active_members(service: MembershipService = Depends(get_membership_service)) -> list[MemberOut]:
    return [member_to_schema(member) for member in service.list_by_status(True)]


@router.get("/inactive", response_model=list[MemberOut])
def list_inactive_members(service: MembershipService = Depends(get_membership_service)) -> list[MemberOut]:
    return [member_to_schema(member) for member in service.list_by_status(False)]


@router.get("/search", response_model=list[MemberOut])
def search_members(
    name: str = Query(min_length=1),
    service: MembershipService = Depends(get_membership_service),
) -> list[MemberOut]:
    return [member_to_schema(member) for member in service.search_by_name(name)]


@router.get("/email/{email}", response_model=MemberOut)
def get_member_by_email(
    email: str,
    service: MembershipService = Depends(get_membership_service),
) -> MemberOut:
    member = service.get_by_email(email)
    if member is None:
        raise NotFound(f"Member with email {email} not found.")
    return member_to_schema(member)


@router.get("/export/excel")
def export_members_excel(
    service: MembershipService = Depends(get_membership_service),
    exporter: ExportService = Depends(get_export_service),
) -> Response:
    return Response(
        content=exporter.members_to_excel(service.list_all()),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=users.xlsx"},
    )


@router.get("/export/csv")
def export_members_csv(
    service: MembershipService = Depends(get_membership_service),
    exporter: ExportService = Depends(get_export_service),
) -> Response:
    return Response(
        content=exporter.members_to_csv(service.list_all()),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=users.csv"},
    )


@router.get("/{member_id}", response_model=MemberOut)
def get_member(
    member_id: str,
    service: MembershipService = Depends(get_membership_service),
) -> MemberOut:
    return member_to_schema(service.get(member_id))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=MemberOut)
def register_member(
    payload: MemberCreate,
    service: MembershipService = Depends(get_membership_service),
) -> MemberOut:
    """Register a new member; membership starts today and active."""
    return member_to_schema(service.register(payload))


@router.put("/{member_id}", response_model=MemberOut)
def update_member(
    member_id: str,
    payload: MemberUpdate,
    service: MembershipService = Depends(get_membership_service),
) -> MemberOut:
    return member_to_schema(service.update(member_id, payload))


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_member(
    member_id: str,
    service: MembershipService = Depends(get_membership_service),
) -> Response:
    """Delete a member who has returned every book."""
    service.remove(member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{member_id}/deactivate", response_model=MemberOut)
def deactivate_member(
    member_id: str,
    service: MembershipService = Depends(get_membership_service),
) -> MemberOut:
    return member_to_schema(service.deactivate(member_id))


@router.patch("/{member_id}/activate", response_model=MemberOut)
def activate_member(
    member_id: str,
    service: MembershipService = Depends(get_membership_service),
) -> MemberOut:
    return member_to_schema(service.activate(member_id))


@router.get("/{member_id}/borrow-history", response_model=list[BorrowRecordOut])
def borrow_history(
    member_id: str,
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> list[BorrowRecordOut]:
    today = ledger.clock()
    return [borrow_record_to_schema(record, today) for record in ledger.records_for_member(member_id)]


@router.get("/{member_id}/active-borrows", response_model=list[BorrowRecordOut])
def active_borrows(
    member_id: str,
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> list[BorrowRecordOut]:
    today = ledger.clock()
    return [borrow_record_to_schema(record, today) for record in ledger.active_loans_for_member(member_id)]


@router.get("/{member_id}/can-borrow", response_model=BorrowEligibility)
def can_borrow(
    member_id: str,
    service: MembershipService = Depends(get_membership_service),
) -> BorrowEligibility:
    return BorrowEligibility(
        member_id=member_id,
        can_borrow=service.can_borrow(member_id),
        active_loans=service.active_loan_count(member_id),
        max_active_loans=service.MAX_ACTIVE_LOANS,
    )


@router.get("/{member_id}/statistics", response_model=MemberStatistics)
def member_statistics(
    member_id: str,
    ledger: LendingLedger = Depends(get_lending_ledger),
) -> MemberStatistics:
    return ledger.member_statistics(member_id)
