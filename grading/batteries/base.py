import time
from abc import ABC
from typing import Callable, List, Optional, Sequence

from loguru import logger

from grading.errors import TestExecutionError
from grading.http_client import ApiClient, HttpResponse, HttpResult, NetworkError, describe
from grading.models.results import TestCase, TestResult


def expect_response(result: HttpResult) -> HttpResponse:
    """Unwrap an HTTP response or fail the current test case with a diagnostic."""
    if isinstance(result, NetworkError):
        raise TestExecutionError(describe(result))
    return result


class TestBattery(ABC):
    """
    Fixed, ordered sequence of weighted checks run against a live target.

    Each case runs on its own: an exception inside one case turns into a
    failed result carrying the error text and never stops the next case.
    """
    __test__ = False

    name: str = "battery"
    cases: Sequence[TestCase] = ()

    def __init__(
        self,
        request_timeout: float = 5.0,
        pacing_seconds: float = 0.0,
        client_factory: Callable[[str, float], ApiClient] = ApiClient,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.request_timeout = request_timeout
        self.pacing_seconds = pacing_seconds
        self._client_factory = client_factory
        self._sleep = sleep

    @property
    def max_score(self) -> int:
        return sum(case.weight for case in self.cases)

    def target_url(self, base_url: str) -> str:
        return base_url

    def run_case(self, case: TestCase, client: ApiClient) -> TestResult:
        try:
            outcome = case.check(client)
        except Exception as e:
            logger.warning("test_case_error", battery=self.name, test=case.name, error=str(e))
            return TestResult.failed(case.name, case.weight, f"error: {e}")
        return TestResult.from_outcome(case, outcome)

    def run_all(self, base_url: str, client: Optional[ApiClient] = None) -> List[TestResult]:
        results: List[TestResult] = []
        owns_client = client is None
        if client is None:
            client = self._client_factory(self.target_url(base_url), self.request_timeout)
        try:
            for index, case in enumerate(self.cases):
                if index and self.pacing_seconds:
                    self._sleep(self.pacing_seconds)
                result = self.run_case(case, client)
                logger.info(
                    "test_case_finished",
                    battery=self.name,
                    test=case.name,
                    passed=result.passed,
                    points=result.points,
                    max_points=result.max_points,
                )
                results.append(result)
        finally:
            if owns_client:
                client.close()
        return results

    def skipped_results(self, reason: str) -> List[TestResult]:
        return [TestResult.not_run(case.name, case.weight, reason) for case in self.cases]
