from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Sequence

import pandas as pd
from loguru import logger

from grading.models.results import GradingRecord

PASSING_PERCENTAGE = 50.0


@dataclass
class SummaryStats:
    total_submissions: int
    average_score: float
    average_percentage: float
    highest_score: int
    lowest_score: int
    passed_count: int
    failed_count: int
    perfect_scores: int
    server_start_failures: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def records_frame(records: Sequence[GradingRecord]) -> pd.DataFrame:
    """One row per record with a column per test (points awarded)."""
    rows = []
    for record in records:
        row = {
            "submission_id": record.submission.id,
            "name": record.submission.name,
            "repository_url": record.submission.repository_url or "",
            "server_started": record.server_started,
            "total_score": record.total_score,
            "max_score": record.max_score,
            "percentage": record.percentage,
            "grade": record.grade,
            "errors": "; ".join(record.errors),
            "graded_at": record.timestamp.isoformat(),
        }
        for test in record.tests:
            row[test.name] = test.points
        rows.append(row)
    return pd.DataFrame(rows)


def summary_stats(records: Sequence[GradingRecord]) -> SummaryStats:
    if not records:
        return SummaryStats(0, 0.0, 0.0, 0, 0, 0, 0, 0, 0)

    df = records_frame(records)
    passed = df["percentage"] >= PASSING_PERCENTAGE
    return SummaryStats(
        total_submissions=len(df),
        average_score=round(float(df["total_score"].mean()), 2),
        average_percentage=round(float(df["percentage"].mean()), 2),
        highest_score=int(df["total_score"].max()),
        lowest_score=int(df["total_score"].min()),
        passed_count=int(passed.sum()),
        failed_count=int((~passed).sum()),
        perfect_scores=int((df["total_score"] == df["max_score"]).sum()),
        server_start_failures=int((~df["server_started"].astype(bool)).sum()),
    )


def export_csv(records: Sequence[GradingRecord], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = records_frame(records)
    if not df.empty:
        df = df.sort_values(["total_score", "submission_id"], ascending=[False, True])
    df.to_csv(path, index=False)
    logger.info("results_csv_exported", path=str(path), rows=len(df))
    return path
