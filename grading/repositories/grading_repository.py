from pathlib import Path
from typing import List, Optional

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from grading.models.database import GradingRecordModel, TestResultModel
from grading.models.results import GradingRecord, Submission, TestResult


class GradingRepository:
    def __init__(self, session: Session):
        self.session = session

    def add_record(self, run_id: str, record: GradingRecord) -> GradingRecordModel:
        row = GradingRecordModel(
            run_id=run_id,
            submission_id=record.submission.id,
            submission_name=record.submission.name,
            source_dir=str(record.submission.source_dir),
            repository_url=record.submission.repository_url,
            server_started=record.server_started,
            total_score=record.total_score,
            max_score=record.max_score,
            percentage=record.percentage,
            grade=record.grade,
            errors=list(record.errors),
            server_log=record.server_log,
            graded_at=record.timestamp,
        )
        row.tests = [
            TestResultModel(
                position=position,
                name=test.name,
                passed=test.passed,
                skipped=test.skipped,
                points=test.points,
                max_points=test.max_points,
                detail=test.detail,
            )
            for position, test in enumerate(record.tests)
        ]
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        logger.info("record_stored", record_id=row.id, run_id=run_id, submission_id=record.submission.id)
        return row

    def get_by_id(self, record_id: int) -> Optional[GradingRecordModel]:
        return self.session.query(GradingRecordModel).filter(GradingRecordModel.id == record_id).first()

    def list_records(
        self,
        run_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[GradingRecordModel]:
        query = self.session.query(GradingRecordModel)
        if run_id:
            query = query.filter(GradingRecordModel.run_id == run_id)
        return query.order_by(GradingRecordModel.graded_at.desc(), GradingRecordModel.id.desc())\
            .offset(offset)\
            .limit(limit)\
            .all()

    def get_latest_run_id(self) -> Optional[str]:
        row = self.session.query(GradingRecordModel.run_id)\
            .order_by(GradingRecordModel.id.desc())\
            .first()
        return row[0] if row else None

    def count_records(self, run_id: Optional[str] = None) -> int:
        query = self.session.query(func.count(GradingRecordModel.id))
        if run_id:
            query = query.filter(GradingRecordModel.run_id == run_id)
        return query.scalar() or 0

    @staticmethod
    def to_record(row: GradingRecordModel) -> GradingRecord:
        return GradingRecord(
            submission=Submission(
                id=row.submission_id,
                name=row.submission_name,
                source_dir=Path(row.source_dir),
                repository_url=row.repository_url,
            ),
            server_started=row.server_started,
            tests=[
                TestResult(
                    name=test.name,
                    passed=test.passed,
                    points=test.points,
                    max_points=test.max_points,
                    detail=test.detail or "",
                    skipped=test.skipped,
                )
                for test in row.tests
            ],
            errors=list(row.errors or []),
            total_score=row.total_score,
            max_score=row.max_score,
            percentage=row.percentage,
            grade=row.grade,
            timestamp=row.graded_at,
            server_log=row.server_log or "",
        )
