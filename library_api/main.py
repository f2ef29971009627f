from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from library_api.core.errors import (
    Conflict,
    DuplicateKey,
    InvalidState,
    LibraryError,
    LockTimeout,
    NotFound,
    PolicyViolation,
)
from library_api.core.logging import configure_logging
from library_api.core.settings import get_settings
from library_api.db.seed import seed_database
from library_api.db.session import SessionLocal, engine
from library_api.models import Base
from library_api.routers.books import router as books_router
from library_api.routers.borrows import router as borrows_router
from library_api.routers.members import router as members_router

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    DuplicateKey: status.HTTP_409_CONFLICT,
    PolicyViolation: status.HTTP_400_BAD_REQUEST,
    InvalidState: status.HTTP_409_CONFLICT,
    Conflict: status.HTTP_409_CONFLICT,
    LockTimeout: status.HTTP_503_SERVICE_UNAVAILABLE,
}

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    if settings.seed_on_startup:
        with SessionLocal() as session:
            seed_database(session)
    yield


app = FastAPI(title="Library Lending API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LibraryError)
async def handle_library_error(request: Request, exc: LibraryError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=status_code, content={"detail": exc.to_detail()})


@app.get("/")
def read_root():
    return {"status": "ok"}


app.include_router(borrows_router)
app.include_router(books_router)
app.include_router(members_router)
