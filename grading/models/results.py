import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Submission:
    id: str
    name: str
    source_dir: Path
    repository_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "source_dir": str(self.source_dir),
            "repository_url": self.repository_url,
        }


@dataclass(frozen=True)
class LaunchSpec:
    command: str
    args: Tuple[str, ...]
    cwd: Path
    port: int
    host: str = "localhost"
    env: Tuple[Tuple[str, str], ...] = ()

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def argv(self) -> List[str]:
        return [self.command, *self.args]


class ProcessState(enum.Enum):
    NotStarted = "not_started"
    Spawning = "spawning"
    AwaitingReadiness = "awaiting_readiness"
    Ready = "ready"
    Testing = "testing"
    Terminating = "terminating"
    Terminated = "terminated"
    Failed = "failed"


@dataclass
class ProcessHandle:
    launch_spec: LaunchSpec
    pid: Optional[int] = None
    pgid: Optional[int] = None
    state: ProcessState = ProcessState.NotStarted
    history: List[ProcessState] = field(default_factory=lambda: [ProcessState.NotStarted])
    failure_reason: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    log: List[str] = field(default_factory=list)

    @property
    def port(self) -> int:
        return self.launch_spec.port

    @property
    def is_terminated(self) -> bool:
        return self.state == ProcessState.Terminated


@dataclass(frozen=True)
class CheckOutcome:
    passed: bool
    detail: str = ""


@dataclass(frozen=True)
class TestCase:
    __test__ = False

    name: str
    weight: int
    check: Callable[[Any], CheckOutcome]


@dataclass(frozen=True)
class TestResult:
    __test__ = False

    name: str
    passed: bool
    points: int
    max_points: int
    detail: str = ""
    skipped: bool = False

    @classmethod
    def from_outcome(cls, case: TestCase, outcome: CheckOutcome) -> "TestResult":
        return cls(
            name=case.name,
            passed=outcome.passed,
            points=case.weight if outcome.passed else 0,
            max_points=case.weight,
            detail=outcome.detail,
        )

    @classmethod
    def failed(cls, name: str, max_points: int, detail: str) -> "TestResult":
        return cls(name=name, passed=False, points=0, max_points=max_points, detail=detail)

    @classmethod
    def not_run(cls, name: str, max_points: int, reason: str) -> "TestResult":
        return cls(name=name, passed=False, points=0, max_points=max_points, detail=reason, skipped=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "points": self.points,
            "max_points": self.max_points,
            "detail": self.detail,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class ScoreResult:
    total_score: int
    max_score: int
    percentage: float
    grade: str


@dataclass
class GradingRecord:
    submission: Submission
    server_started: bool
    tests: List[TestResult]
    errors: List[str]
    total_score: int
    max_score: int
    percentage: float
    grade: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    server_log: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission": self.submission.to_dict(),
            "server_started": self.server_started,
            "tests": [test.to_dict() for test in self.tests],
            "errors": list(self.errors),
            "total_score": self.total_score,
            "max_score": self.max_score,
            "percentage": self.percentage,
            "grade": self.grade,
            "timestamp": self.timestamp.isoformat(),
            "server_log": self.server_log,
        }
