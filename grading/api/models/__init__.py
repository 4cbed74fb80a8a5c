from grading.api.models.responses import (
    GradingRecordDetailResponse,
    GradingRecordListResponse,
    GradingRecordSummaryResponse,
    StatsResponse,
    TestResultResponse,
)

__all__ = [
    "GradingRecordDetailResponse",
    "GradingRecordListResponse",
    "GradingRecordSummaryResponse",
    "StatsResponse",
    "TestResultResponse",
]
