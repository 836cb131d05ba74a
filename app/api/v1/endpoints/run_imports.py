import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_company
from app.core.config import settings
from app.core.exceptions import (
    InvalidTimezoneError,
    NoPickEntriesError,
    RunPersistenceError,
    UnexpectedSheetFormatError,
)
from app.db.session import get_db
from app.models.company import Company
from app.schemas.run_import import RunImportResponse, RunImportRunOut, RunPreviewResponse
from app.services.run_import_service import import_run_workbook, preview_run_workbook

logger = logging.getLogger(__name__)

router = APIRouter()


def _read_upload(file: UploadFile) -> bytes:
    payload = file.file.read(settings.RUN_IMPORT_MAX_UPLOAD_BYTES + 1)
    if len(payload) > settings.RUN_IMPORT_MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Workbook exceeds the maximum upload size",
        )
    if not payload:
        raise HTTPException(status_code=400, detail="Missing Excel file payload")
    return payload


def _layout_error(exc: UnexpectedSheetFormatError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail=f"The workbook's layout is not recognized: {exc.describe()}",
    )


@router.post("/runs", response_model=RunImportResponse, status_code=status.HTTP_201_CREATED)
def upload_run_workbook(
    file: UploadFile = File(...),
    timezone: Optional[str] = Form(None),
    include_workbook: bool = Query(True),
    db: Session = Depends(get_db),
    company: Company = Depends(get_current_company),
):
    payload = _read_upload(file)

    try:
        result = import_run_workbook(
            db, company_id=company.id, payload=payload, timezone=timezone
        )
    except InvalidTimezoneError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except UnexpectedSheetFormatError as exc:
        logger.info("run_import_rejected company_id=%s reason=%s", company.id, exc.describe())
        raise _layout_error(exc)
    except NoPickEntriesError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except RunPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Unable to import workbook: {exc}",
        )

    return RunImportResponse(
        summary=result.summary,
        run=RunImportRunOut.model_validate(result.run),
        workbook=result.workbook if include_workbook else None,
    )


@router.post("/preview", response_model=RunPreviewResponse)
def preview_workbook(
    file: UploadFile = File(...),
    company: Company = Depends(get_current_company),
):
    payload = _read_upload(file)
    try:
        workbook, summary = preview_run_workbook(payload)
    except UnexpectedSheetFormatError as exc:
        raise _layout_error(exc)
    return RunPreviewResponse(summary=summary, workbook=workbook)
