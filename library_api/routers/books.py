from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from library_api.schemas.book import BookCreate, BookOut, BookUpdate
from library_api.services.catalog_service import CatalogService, get_catalog_service
from library_api.services.export_service import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    ExportService,
    get_export_service,
)

router = APIRouter(prefix="/api/books", tags=["books"])


@router.get("", response_model=list[BookOut])
def list_books(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    search: str | None = Query(default=None, min_length=1),
    service: CatalogService = Depends(get_catalog_service),
) -> list[BookOut]:
    """Return a paginated list of books with optional search."""
    books = service.list_books(skip=skip, limit=limit, search=search)
    return [BookOut.model_validate(book) for book in books]


@router.get("/available", response_model=list[BookOut])
def list_available_books(service: CatalogService = Depends(get_catalog_service)) -> list[BookOut]:
    return [BookOut.model_validate(book) for book in service.list_available()]


@router.get("/search/title", response_model=list[BookOut])
def search_by_title(
    title: str = Query(min_length=1),
    service: CatalogService = Depends(get_catalog_service),
) -> list[BookOut]:
    return [BookOut.model_validate(book) for book in service.search_by_title(title)]


@router.get("/search/author", response_model=list[BookOut])
def search_by_author(
    author: str = Query(min_length=1),
    service: CatalogService = Depends(get_catalog_service),
) -> list[BookOut]:
    return [BookOut.model_validate(book) for book in service.search_by_author(author)]


@router.get("/category/{category}", response_model=list[BookOut])
def list_by_category(
    category: str,
    service: CatalogService = Depends(get_catalog_service),
) -> list[BookOut]:
    return [BookOut.model_validate(book) for book in service.list_by_category(category)]


@router.get("/categories", response_model=list[str])
def list_categories(service: CatalogService = Depends(get_catalog_service)) -> list[str]:
    return service.list_categories()


@router.get("/export/excel")
def export_books_excel(
    service: CatalogService = Depends(get_catalog_service),
    exporter: ExportService = Depends(get_export_service),
) -> Response:
    return Response(
        content=exporter.books_to_excel(service.list_all()),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=books.xlsx"},
    )


@router.get("/export/csv")
def export_books_csv(
    service: CatalogService = Depends(get_catalog_service),
    exporter: ExportService = Depends(get_export_service),
) -> Response:
    return Response(
        content=exporter.books_to_csv(service.list_all()),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=books.csv"},
    )


@router.get("/{book_id}", response_model=BookOut)
def get_book(
    book_id: str,
    service: CatalogService = Depends(get_catalog_service),
) -> BookOut:
    """Retrieve a single book by identifier."""
    return BookOut.model_validate(service.get(book_id))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=BookOut,
)
def create_book(
    payload: BookCreate,
    service: CatalogService = Depends(get_catalog_service),
) -> BookOut:
    """Add a title to the catalog with all copies on the shelf."""
    return BookOut.model_validate(service.add(payload))


@router.put("/{book_id}", response_model=BookOut)
def update_book(
    book_id: str,
    payload: BookUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> BookOut:
    """Replace a book's details; available copies follow the change in total copies."""
    return BookOut.model_validate(service.edit(book_id, payload))


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_book(
    book_id: str,
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    """Delete a book that has no active borrows."""
    service.remove(book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
