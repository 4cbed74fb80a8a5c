from grading.managers import (
    EntryPointResolver,
    PortReclaimer,
    ProcessSupervisor,
    ReadinessProbe,
    ScoreAggregator,
    SubmissionManager,
)

from grading.models.results import (
    GradingRecord,
    LaunchSpec,
    ProcessHandle,
    ProcessState,
    Submission,
    TestResult,
)

from grading.batteries import APITestBattery, TestBattery, UITestBattery
from grading.orchestrator import GradingOrchestrator

__all__ = [
    # Models
    "GradingRecord",
    "LaunchSpec",
    "ProcessHandle",
    "ProcessState",
    "Submission",
    "TestResult",
    # Managers
    "EntryPointResolver",
    "PortReclaimer",
    "ProcessSupervisor",
    "ReadinessProbe",
    "ScoreAggregator",
    "SubmissionManager",
    # Batteries
    "APITestBattery",
    "TestBattery",
    "UITestBattery",
    # Orchestration
    "GradingOrchestrator",
]
