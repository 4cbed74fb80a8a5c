"""
Pydantic response models for the grading results API.

Scoring recap: "Server Startup" is worth 5 points, and the recipe API battery
covers the remaining 95 (list 15, get by id 15, 404 10, create 20,
validation 15, persistence 10, error handling 10).
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class TestResultResponse(BaseModel):
    """Outcome of one weighted test case."""
    __test__ = False

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., description="Test case name", examples=["GET /api/recipes - list recipes"])
    passed: bool = Field(..., description="Whether the check passed")
    skipped: bool = Field(False, description="True when the test never ran (server not ready)")
    points: int = Field(..., description="Points awarded (0 or max_points)", ge=0)
    max_points: int = Field(..., description="Weight of the test case", ge=0)
    detail: Optional[str] = Field(None, description="Diagnostic detail")


class GradingRecordSummaryResponse(BaseModel):
    """Per-submission grading outcome without test details."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Record identifier", examples=[12])
    run_id: str = Field(..., description="Grading run the record belongs to")
    submission_id: str = Field(..., description="Submission identifier", examples=["20231234"])
    submission_name: str = Field(..., description="Display name", examples=["Jane Doe"])
    repository_url: Optional[str] = Field(None, description="Repository the submission came from")
    server_started: bool = Field(..., description="Whether the server passed the readiness probe")
    total_score: int = Field(..., ge=0, examples=[85])
    max_score: int = Field(..., ge=0, examples=[100])
    percentage: float = Field(..., ge=0, le=100, examples=[85.0])
    grade: str = Field(..., description="Letter grade A-F", examples=["B"])
    errors: List[str] = Field(default_factory=list, description="Fatal errors for this submission")
    graded_at: datetime = Field(..., description="When the submission was graded")


class GradingRecordDetailResponse(GradingRecordSummaryResponse):
    """Grading outcome including every test result and the server log tail."""

    tests: List[TestResultResponse] = Field(default_factory=list)
    server_log: Optional[str] = Field(None, description="Tail of the server output")


class GradingRecordListResponse(BaseModel):
    records: List[GradingRecordSummaryResponse]
    total: int = Field(..., ge=0, description="Records matching the filter")
    limit: int
    offset: int


class StatsResponse(BaseModel):
    """Aggregate statistics for one grading run."""

    run_id: Optional[str] = Field(None, description="Run the statistics cover (latest by default)")
    total_submissions: int = Field(..., ge=0)
    average_score: float
    average_percentage: float
    highest_score: int
    lowest_score: int
    passed_count: int = Field(..., description="Submissions at or above 50%")
    failed_count: int
    perfect_scores: int
    server_start_failures: int
