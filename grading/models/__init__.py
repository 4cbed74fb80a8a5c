from grading.models.database import (
    Base,
    GradingRecordModel,
    TestResultModel,
)
from grading.models.results import (
    CheckOutcome,
    GradingRecord,
    LaunchSpec,
    ProcessHandle,
    ProcessState,
    ScoreResult,
    Submission,
    TestCase,
    TestResult,
)

__all__ = [
    "Base",
    "CheckOutcome",
    "GradingRecord",
    "GradingRecordModel",
    "LaunchSpec",
    "ProcessHandle",
    "ProcessState",
    "ScoreResult",
    "Submission",
    "TestCase",
    "TestResult",
    "TestResultModel",
]
