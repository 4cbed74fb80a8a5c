"""
Score aggregation for graded submissions.

Weighted pass/fail results are summed into a total, a percentage rounded to
one decimal and a letter grade:

    >= 90 -> A, >= 80 -> B, >= 70 -> C, >= 60 -> D, else F

The maximum score is the sum of every configured weight (server start plus
all battery cases), so a submission whose tests never ran is still graded
out of the same total.
"""
from typing import Sequence, Tuple

from grading.models.results import ScoreResult, TestResult

SERVER_START_TEST_NAME = "Server Startup"


class ScoreAggregator:
    GRADE_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
        (90.0, "A"),
        (80.0, "B"),
        (70.0, "C"),
        (60.0, "D"),
    )
    FAILING_GRADE = "F"

    def __init__(self, server_start_points: int = 5):
        if server_start_points < 0:
            raise ValueError(f"server_start_points must be >= 0, got {server_start_points}")
        self.server_start_points = server_start_points

    def server_start_result(self, started: bool, detail: str = "") -> TestResult:
        if started:
            return TestResult(
                name=SERVER_START_TEST_NAME,
                passed=True,
                points=self.server_start_points,
                max_points=self.server_start_points,
                detail=detail or "server answered the readiness probe",
            )
        return TestResult.failed(
            SERVER_START_TEST_NAME,
            self.server_start_points,
            detail or "server did not start",
        )

    def grade_for(self, percentage: float) -> str:
        for threshold, grade in self.GRADE_THRESHOLDS:
            if percentage >= threshold:
                return grade
        return self.FAILING_GRADE

    def compute(self, results: Sequence[TestResult]) -> ScoreResult:
        total = sum(result.points for result in results)
        maximum = sum(result.max_points for result in results)
        if total > maximum:
            raise ValueError(f"score_overflow: {total} > {maximum}")

        percentage = round(total / maximum * 100, 1) if maximum else 0.0
        return ScoreResult(
            total_score=total,
            max_score=maximum,
            percentage=percentage,
            grade=self.grade_for(percentage),
        )
