import logging
from typing import List

import redis
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from excel_analytics.database import get_db
from excel_analytics.models.uploaded_file import UploadedFile
from excel_analytics.schemas.charts import AnalysisResponse, SeriesRequest, SeriesResponse
from excel_analytics.schemas.files import (
    RenameFileRequest,
    UploadedFileListResponse,
    UploadedFileResponse,
)
from excel_analytics.services.cache import cache_records, delete_cached_records, get_cached_records
from excel_analytics.services.column_match import missing_column_message
from excel_analytics.services.column_profiler import column_names
from excel_analytics.services.pipeline import pipeline
from excel_analytics.services.storage import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


def _get_file_or_404(file_id: int, db: Session) -> UploadedFile:
    uploaded = db.query(UploadedFile).filter(UploadedFile.id == file_id).first()
    if not uploaded:
        raise HTTPException(status_code=404, detail=f"File not found (ID: {file_id})")
    return uploaded


def _store_in_cache(file_id: int, records: list[dict]) -> None:
    try:
        cache_records(file_id, records)
    except redis.RedisError as e:
        logger.warning("Could not cache records for file %s: %s", file_id, e)


def _get_records(uploaded: UploadedFile) -> list[dict]:
    """Cached records, or re-download and re-parse on a cache miss."""
    try:
        records = get_cached_records(uploaded.id)
    except redis.RedisError as e:
        logger.warning("Record cache unavailable for file %s: %s", uploaded.id, e)
        records = None

    if records is None:
        content = storage_service.download_file(uploaded.file_path)
        # The stored file_type is authoritative; the filename can be renamed.
        records = pipeline.parse(content, fmt=uploaded.file_type)
        _store_in_cache(uploaded.id, records)
    return records


# ── Upload ───────────────────────────────────────────────────────────────────

@router.post("", response_model=UploadedFileResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """Upload a CSV, Excel or JSON file. It is parsed up front so bad files are rejected immediately."""
    content = await file.read()
    validation = storage_service.validate_file(file.filename, len(content))
    if not validation["valid"]:
        raise HTTPException(status_code=validation["status_code"], detail=validation["error"])

    logger.info("Received file %s (%s, %d bytes)", file.filename, file.content_type, len(content))
    records = pipeline.parse(content, filename=file.filename, content_type=file.content_type)

    uploaded = UploadedFile(
        filename=file.filename,
        content_type=file.content_type,
        file_type=validation["file_type"],
        file_size=validation["file_size"],
        file_path="",
        status="processing",
    )
    db.add(uploaded)
    db.commit()
    db.refresh(uploaded)

    try:
        uploaded.file_path = storage_service.upload_bytes(content, file.filename, uploaded.id, file.content_type)
    except Exception as e:
        db.delete(uploaded)
        db.commit()
        raise HTTPException(status_code=500, detail=f"Upload failed: {str(e)}")

    uploaded.status = "processed"
    uploaded.row_count = len(records)
    uploaded.column_count = len(column_names(records))
    db.commit()
    db.refresh(uploaded)

    _store_in_cache(uploaded.id, records)
    return uploaded


# ── List / Detail / Download / Rename / Delete ───────────────────────────────

@router.get("", response_model=List[UploadedFileListResponse])
def list_files(db: Session = Depends(get_db)):
    return db.query(UploadedFile).order_by(UploadedFile.created_at.desc()).all()


@router.get("/{file_id}", response_model=UploadedFileResponse)
def get_file(file_id: int, db: Session = Depends(get_db)):
    return _get_file_or_404(file_id, db)


@router.get("/{file_id}/download")
def download_file(file_id: int, db: Session = Depends(get_db)):
    uploaded = _get_file_or_404(file_id, db)
    content = storage_service.download_file(uploaded.file_path)
    return Response(
        content=content,
        media_type=uploaded.content_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{uploaded.filename}"'},
    )


@router.patch("/{file_id}", response_model=UploadedFileResponse)
def rename_file(file_id: int, payload: RenameFileRequest, db: Session = Depends(get_db)):
    uploaded = _get_file_or_404(file_id, db)
    if not payload.filename.strip():
        raise HTTPException(status_code=400, detail="New file name is required")
    uploaded.filename = payload.filename.strip()
    db.commit()
    db.refresh(uploaded)
    return uploaded


@router.delete("/{file_id}")
def delete_file(file_id: int, db: Session = Depends(get_db)):
    """Delete a file record, its stored bytes and its cached records."""
    uploaded = _get_file_or_404(file_id, db)

    if uploaded.file_path:
        storage_service.delete_file(uploaded.file_path)
    try:
        delete_cached_records(uploaded.id)
    except redis.RedisError as e:
        logger.warning("Could not evict cached records for file %s: %s", uploaded.id, e)

    db.delete(uploaded)
    db.commit()
    logger.info("Deleted file %s", file_id)
    return {"message": "File deleted"}


# ── Analysis / Series ────────────────────────────────────────────────────────

@router.get("/{file_id}/analysis", response_model=AnalysisResponse)
def analyze_stored_file(file_id: int, db: Session = Depends(get_db)):
    uploaded = _get_file_or_404(file_id, db)
    records = _get_records(uploaded)
    analysis = pipeline.analyze(records, filename=uploaded.filename)
    return {"file_id": uploaded.id, "filename": uploaded.filename, **analysis.to_dict()}


@router.post("/{file_id}/series", response_model=SeriesResponse)
def build_series(file_id: int, payload: SeriesRequest, db: Session = Depends(get_db)):
    """Series for an explicit axis choice. The suggestion is not re-run."""
    uploaded = _get_file_or_404(file_id, db)
    records = _get_records(uploaded)

    columns = column_names(records)
    for col in [payload.x_axis, *payload.y_axis]:
        if col and col not in columns:
            raise HTTPException(status_code=400, detail=missing_column_message(col, columns))

    series = pipeline.build_series(records, payload.x_axis, payload.y_axis, payload.chart_type)
    return series.to_dict()
