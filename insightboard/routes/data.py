from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from insightboard.database import get_db
from insightboard.errors import DataIntegrityError, StoreUnavailableError
from insightboard.routes.summary import raise_http
from insightboard.services.ingest_service import SUPPORTED_SUFFIXES, IngestService
from insightboard.services.summary_service import SummaryService
from insightboard.services.summary_store import SqlRawInsightSource

router = APIRouter(prefix="/api/data", tags=["data"])


@router.post("/import")
def import_file(
    db: Session = Depends(get_db),
    file: UploadFile = File(...),
    recompute: bool = False,
):
    """
    Load a raw export (csv/json/xlsx) into employee_insights.
    With recompute=true the summary is rebuilt right after the import.
    """
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise HTTPException(status_code=400, detail=f"Unsupported file type; expected one of {', '.join(SUPPORTED_SUFFIXES)}")

    fd, tmp_path = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as out:
            shutil.copyfileobj(file.file, out)
        try:
            res = IngestService().ingest_file(db, tmp_path)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except StoreUnavailableError as e:
            raise_http(e)
    finally:
        os.unlink(tmp_path)

    body = {"filename": file.filename, "inserted": res.inserted, "skipped_blank": res.skipped_blank}
    if recompute:
        try:
            body["recompute"] = SummaryService().recompute(db).as_dict()
        except (DataIntegrityError, StoreUnavailableError) as e:
            raise_http(e)
    return body


@router.get("/stats")
def stats(db: Session = Depends(get_db)):
    src = SqlRawInsightSource(db)
    try:
        return {"raw_records": src.count(), "distinct_keywords": len(src.distinct_keywords())}
    except StoreUnavailableError as e:
        raise_http(e)
