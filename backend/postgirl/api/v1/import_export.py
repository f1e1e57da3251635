"""
API endpoints for format detection, import and export.
"""
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from postgirl.api.deps import get_coordinator
from postgirl.database import get_db
from postgirl.schemas.import_export import (
    DetectFormatRequest,
    DetectFormatResponse,
    ExportResult,
    ImportContentRequest,
    ImportResult,
    SourceFormat,
    TargetFormat,
)
from postgirl.services.import_export import ConversionCoordinator, classify

logger = logging.getLogger(__name__)

router = APIRouter()


def _import_and_commit(
    db: Session,
    coordinator: ConversionCoordinator,
    workspace_id: str,
    content: str,
    source_format: SourceFormat | None,
) -> ImportResult:
    try:
        result = coordinator.import_collection(workspace_id, content, source_format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Partial imports are kept: whatever converted before a failure stays persisted
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to commit import into workspace %s", workspace_id)
        raise HTTPException(status_code=500, detail="Failed to save imported collection")
    return result


# ── Detect ──

@router.post("/detect", response_model=DetectFormatResponse)
async def detect_format(payload: DetectFormatRequest):
    """Report which format raw content would be imported as."""
    return DetectFormatResponse(format=classify(payload.content))


# ── Import ──

@router.post("/import", response_model=ImportResult)
async def import_content(
    payload: ImportContentRequest,
    db: Session = Depends(get_db),
    coordinator: ConversionCoordinator = Depends(get_coordinator),
):
    """Import pasted content (Postman, Insomnia, OpenAPI or curl)."""
    return _import_and_commit(db, coordinator, payload.workspace_id, payload.content, payload.format)


@router.post("/import/file", response_model=ImportResult)
async def import_file(
    file: UploadFile = File(...),
    workspace_id: str = Form(...),
    format: SourceFormat | None = Form(None),
    db: Session = Depends(get_db),
    coordinator: ConversionCoordinator = Depends(get_coordinator),
):
    """Import an uploaded Postman, Insomnia, OpenAPI or curl file."""
    raw = await file.read()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File is not valid UTF-8 text")
    return _import_and_commit(db, coordinator, workspace_id, content, format)


# ── Export ──

@router.get("/export/{collection_id}", response_model=ExportResult)
async def export_collection(
    collection_id: str,
    format: TargetFormat = Query(TargetFormat.POSTMAN),
    coordinator: ConversionCoordinator = Depends(get_coordinator),
):
    """Export a collection as Postman v2.1 JSON or curl commands."""
    return coordinator.export_collection(collection_id, format)
