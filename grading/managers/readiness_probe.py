import time
from typing import Callable, Optional

from loguru import logger

from grading.errors import ReadinessTimeoutError
from grading.http_client import ApiClient, HttpResponse


class ReadinessProbe:
    """
    Polls a known-safe path until the server answers.

    Any HTTP response, error statuses included, means the server is up.
    Network failures mean "not yet" and are retried every ``interval``
    seconds until ``timeout`` elapses.
    """

    def __init__(
        self,
        path: str = "/",
        interval: float = 1.0,
        request_timeout: float = 2.0,
        client_factory: Callable[[str, float], ApiClient] = ApiClient,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.path = path
        self.interval = interval
        self.request_timeout = request_timeout
        self._client_factory = client_factory
        self._clock = clock
        self._sleep = sleep

    def wait(self, base_url: str, timeout: float, is_alive: Optional[Callable[[], bool]] = None) -> None:
        started = self._clock()
        attempts = 0
        with self._client_factory(base_url, self.request_timeout) as client:
            while True:
                attempts += 1
                result = client.get(self.path)
                if isinstance(result, HttpResponse):
                    logger.info(
                        "server_ready",
                        base_url=base_url,
                        status=result.status,
                        attempts=attempts,
                        elapsed=round(self._clock() - started, 2),
                    )
                    return

                if not result.is_connection_failure:
                    logger.debug("readiness_attempt_failed", base_url=base_url, kind=result.kind, error=result.message)

                if is_alive is not None and not is_alive():
                    raise ReadinessTimeoutError(f"server_exited_before_ready: {base_url} after {attempts} attempts")

                elapsed = self._clock() - started
                if elapsed + self.interval > timeout:
                    raise ReadinessTimeoutError(
                        f"readiness_timeout: {base_url} not answering after {timeout:.0f}s ({attempts} attempts)"
                    )
                self._sleep(self.interval)
