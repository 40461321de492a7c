from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from insightboard.database import get_db
from insightboard.errors import DataIntegrityError, StoreUnavailableError
from insightboard.services.summary_service import SummaryService, run_to_dict

router = APIRouter(prefix="/api/summary", tags=["summary"])


def _svc() -> SummaryService:
    return SummaryService()


def raise_http(e: Exception) -> None:
    """Translate run failures into structured HTTP errors."""
    if isinstance(e, DataIntegrityError):
        raise HTTPException(
            status_code=422,
            detail={
                "error": "data_integrity",
                "message": str(e),
                "offenders": [o.as_dict() for o in e.offenders],
            },
        ) from e
    if isinstance(e, StoreUnavailableError):
        raise HTTPException(status_code=503, detail={"error": "store_unavailable", "message": str(e)}) from e
    raise e


@router.post("/recompute")
def recompute(db: Session = Depends(get_db), svc: SummaryService = Depends(_svc)):
    """
    Rebuild survey_dashboard_summary from every raw record. On failure the previous
    summary stays in place and keeps being served.
    """
    try:
        return svc.recompute(db).as_dict()
    except (DataIntegrityError, StoreUnavailableError) as e:
        raise_http(e)


@router.get("")
def list_summary(db: Session = Depends(get_db), svc: SummaryService = Depends(_svc)):
    try:
        rows = svc.list_summary(db)
    except StoreUnavailableError as e:
        raise_http(e)
    return {"rows": rows, "total": len(rows)}


@router.get("/top")
def top_keywords(
    db: Session = Depends(get_db),
    svc: SummaryService = Depends(_svc),
    n: int | None = Query(None, ge=1, le=100),
):
    try:
        rows = svc.top_keywords(db, n)
    except StoreUnavailableError as e:
        raise_http(e)
    return {"rows": rows, "n": len(rows), "total_count": sum(r["total_count"] for r in rows)}


@router.get("/categories")
def categories(
    db: Session = Depends(get_db),
    svc: SummaryService = Depends(_svc),
    per_category: int = Query(5, ge=1, le=50),
):
    try:
        return svc.category_insights(db, per_category=per_category)
    except StoreUnavailableError as e:
        raise_http(e)


@router.get("/verify")
def verify(db: Session = Depends(get_db), svc: SummaryService = Depends(_svc)):
    try:
        return svc.verify(db)
    except (DataIntegrityError, StoreUnavailableError) as e:
        raise_http(e)


@router.get("/runs")
def list_runs(
    db: Session = Depends(get_db),
    svc: SummaryService = Depends(_svc),
    limit: int = Query(20, ge=1, le=200),
):
    return {"runs": [run_to_dict(r) for r in svc.list_runs(db, limit=limit)]}


@router.get("/runs/latest")
def latest_run(db: Session = Depends(get_db), svc: SummaryService = Depends(_svc)):
    run = svc.latest_run(db)
    return {"latest": run_to_dict(run) if run else None}
