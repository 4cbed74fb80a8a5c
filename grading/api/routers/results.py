from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from grading.api.dependencies import get_db
from grading.api.models.responses import (
    GradingRecordDetailResponse,
    GradingRecordListResponse,
    StatsResponse,
)
from grading.reports import summary_stats
from grading.repositories.grading_repository import GradingRepository


router = APIRouter(prefix="/api/v1", tags=["Results"])


@router.get(
    "/results",
    response_model=GradingRecordListResponse,
    summary="List grading records",
    description="Most recent records first. Filter by `run_id` to view a single grading run.",
)
async def list_results(
    run_id: Optional[str] = Query(None, description="Only records from this grading run"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    repo = GradingRepository(db)
    return GradingRecordListResponse(
        records=repo.list_records(run_id=run_id, limit=limit, offset=offset),
        total=repo.count_records(run_id=run_id),
        limit=limit,
        offset=offset,
    )


@router.get(
    "/results/{record_id}",
    response_model=GradingRecordDetailResponse,
    summary="Get one grading record",
    responses={404: {"description": "Record not found"}},
)
async def get_result(record_id: int, db: Session = Depends(get_db)):
    record = GradingRepository(db).get_by_id(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"record_not_found: {record_id}")
    return record


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Run statistics",
    description="Aggregate statistics for `run_id`, or for the latest run when omitted.",
)
async def get_stats(
    run_id: Optional[str] = Query(None, description="Grading run; defaults to the latest"),
    db: Session = Depends(get_db),
):
    repo = GradingRepository(db)
    run_id = run_id or repo.get_latest_run_id()
    rows = repo.list_records(run_id=run_id, limit=100000) if run_id else []
    stats = summary_stats([repo.to_record(row) for row in rows])
    return StatsResponse(run_id=run_id, **stats.to_dict())
