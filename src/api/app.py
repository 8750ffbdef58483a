"""FastAPI application for the bank document extraction API.

Provides endpoints to upload a check or statement for extraction, and
to list, search, fetch, edit, and delete stored records.
"""

import shutil
import uuid
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.errors import PersistenceError
from src.service import ExtractionService
from src.storage.repository import SORT_COLUMNS, StoredRecord
from src.utils.config import load_config
from src.utils.logger import get_logger

from .schemas import (
    ExtractionResponse,
    HealthResponse,
    RecordListResponse,
    RecordResponse,
    RecordUpdateRequest,
    StoredRecordResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Bank Document Extraction API",
    description="Extract account, routing, and bank details from checks and statements",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_service() -> ExtractionService:
    """Build the shared extraction service on first use."""
    return ExtractionService(load_config())


def _to_response(stored: StoredRecord) -> StoredRecordResponse:
    record = stored.record
    return StoredRecordResponse(
        id=stored.id,
        **record.fields(),
        raw_text=record.raw_text,
        raw_micr=record.raw_micr,
        created_at=record.created_at,
    )


def _save_upload(file: UploadFile, upload_dir: Path) -> Path:
    """Copy an upload to a uniquely named file in ``upload_dir``."""
    upload_dir.mkdir(parents=True, exist_ok=True)
    name = Path(file.filename or "upload").name
    target = upload_dir / f"{uuid.uuid4().hex}-{name}"
    with open(target, "wb") as out:
        shutil.copyfileobj(file.file, out)
    return target


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
        poppler_available=shutil.which("pdftoppm") is not None,
    )


@app.post("/api/v1/checks/extract", response_model=ExtractionResponse)
async def extract_document(
    service: Annotated[ExtractionService, Depends(get_service)],
    file: Annotated[UploadFile | None, File()] = None,
) -> JSONResponse:
    """Extract banking fields from an uploaded check or statement.

    The pipeline runs in a worker thread so the server keeps serving
    other requests while OCR is in progress.

    Returns:
        200 with the record on success, 400 when no file was sent,
        422 when extraction failed, 500 when the record could not be
        stored (the extracted fields are still included).
    """
    if file is None:
        return JSONResponse(
            status_code=400,
            content=ExtractionResponse(
                success=False, error="File missing", error_kind="upload_missing"
            ).model_dump(by_alias=True),
        )

    upload_dir = Path(service.config.storage.upload_dir)
    saved = await run_in_threadpool(_save_upload, file, upload_dir)
    try:
        response = await run_in_threadpool(service.process, saved, file.filename)
    except Exception as exc:
        logger.error("Extraction failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        saved.unlink(missing_ok=True)

    if response.success:
        status_code = 200
    elif response.error_kind == PersistenceError.kind:
        status_code = 500
    else:
        status_code = 422
    return JSONResponse(
        status_code=status_code, content=response.model_dump(by_alias=True)
    )


@app.get("/api/v1/checks", response_model=RecordListResponse)
async def list_records(
    service: Annotated[ExtractionService, Depends(get_service)],
    search: Annotated[str | None, Query()] = None,
    sort: Annotated[str, Query()] = "id",
    order: Annotated[Literal["asc", "desc"], Query()] = "desc",
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=200)] = 20,
) -> RecordListResponse:
    """List stored records with search, sorting, and pagination."""
    if sort not in SORT_COLUMNS:
        raise HTTPException(status_code=400, detail=f"Unsupported sort key: {sort}")
    try:
        rows, total = await run_in_threadpool(
            service.repository.list_records,
            search,
            sort,
            order == "desc",
            page_size,
            (page - 1) * page_size,
        )
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return RecordListResponse(
        data=[_to_response(row) for row in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@app.get("/api/v1/checks/{record_id}", response_model=RecordResponse)
async def get_record(
    record_id: int,
    service: Annotated[ExtractionService, Depends(get_service)],
) -> RecordResponse:
    """Fetch one stored record."""
    try:
        stored = await run_in_threadpool(service.repository.get, record_id)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if stored is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return RecordResponse(data=_to_response(stored))


@app.patch("/api/v1/checks/{record_id}", response_model=RecordResponse)
async def update_record(
    record_id: int,
    changes: RecordUpdateRequest,
    service: Annotated[ExtractionService, Depends(get_service)],
) -> RecordResponse:
    """Apply manual corrections to a stored record."""
    edits = changes.model_dump(exclude_none=True)
    if not edits:
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        stored = await run_in_threadpool(service.repository.update, record_id, edits)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if stored is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return RecordResponse(data=_to_response(stored))


@app.delete("/api/v1/checks/{record_id}")
async def delete_record(
    record_id: int,
    service: Annotated[ExtractionService, Depends(get_service)],
) -> dict[str, bool]:
    """Delete a stored record."""
    try:
        deleted = await run_in_threadpool(service.repository.delete, record_id)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail="Record not found")
    return {"success": True}
