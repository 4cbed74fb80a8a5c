import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Set

from loguru import logger

from config import Settings, config
from grading.batteries import APITestBattery, TestBattery, UITestBattery
from grading.errors import (
    STRUCTURAL_ERRORS,
    PortReclaimFailure,
    ProcessSpawnError,
    ReadinessTimeoutError,
)
from grading.managers.entry_point_resolver import EntryPointResolver
from grading.managers.port_reclaimer import PortReclaimer
from grading.managers.process_supervisor import ProcessSupervisor
from grading.managers.readiness_probe import ReadinessProbe
from grading.managers.scoring_manager import ScoreAggregator
from grading.managers.submission_manager import SubmissionManager
from grading.models.results import GradingRecord, LaunchSpec, ProcessHandle, Submission, TestResult
from grading.sinks import ResultsSink

MAX_SERVER_LOG_CHARS = 10000


class GradingOrchestrator:
    """
    Grades submissions strictly one after another.

    Each submission is validated, launched, probed, tested, scored and torn
    down before the next one starts. Per-submission failures become
    zero-score records; ``grade_all`` only raises for roster-level problems.
    The accumulated records are handed to every sink after each submission.
    """

    def __init__(
        self,
        submission_manager: SubmissionManager,
        resolver: EntryPointResolver,
        supervisor: ProcessSupervisor,
        probe: ReadinessProbe,
        batteries: Sequence[TestBattery],
        aggregator: ScoreAggregator,
        sinks: Sequence[ResultsSink] = (),
        port: int = 3000,
        host: str = "localhost",
        readiness_timeout: float = 30.0,
        stabilize_seconds: float = 2.0,
        cooldown_seconds: float = 3.0,
        persist_retries: int = 3,
        persist_retry_delay: float = 1.0,
        verify_port_owner: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not batteries:
            raise ValueError("at least one test battery is required")
        self.submission_manager = submission_manager
        self.resolver = resolver
        self.supervisor = supervisor
        self.probe = probe
        self.batteries = list(batteries)
        self.aggregator = aggregator
        self.sinks = list(sinks)
        self.port = port
        self.host = host
        self.readiness_timeout = readiness_timeout
        self.stabilize_seconds = stabilize_seconds
        self.cooldown_seconds = cooldown_seconds
        self.persist_retries = max(1, persist_retries)
        self.persist_retry_delay = persist_retry_delay
        self.verify_port_owner = verify_port_owner
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        settings: Settings = config,
        sinks: Sequence[ResultsSink] = (),
        ui: Optional[bool] = None,
    ) -> "GradingOrchestrator":
        batteries: List[TestBattery] = [
            APITestBattery(
                request_timeout=settings.request_timeout_seconds,
                pacing_seconds=settings.test_pacing_seconds,
            )
        ]
        if settings.ui_battery_enabled if ui is None else ui:
            batteries.append(
                UITestBattery(
                    settings.frontend_url,
                    request_timeout=settings.request_timeout_seconds,
                    pacing_seconds=settings.test_pacing_seconds,
                )
            )

        supervisor = ProcessSupervisor(
            port_reclaimer=PortReclaimer(
                release_timeout=settings.port_release_timeout_seconds,
                kill_timeout=settings.termination_grace_seconds,
            ),
            grace_seconds=settings.termination_grace_seconds,
            log_max_lines=settings.log_max_lines,
        )
        return cls(
            submission_manager=SubmissionManager(
                server_dir_name=settings.server_dir_name,
                manifest_name=settings.manifest_name,
                npm_executable=settings.npm_executable,
                clone_timeout=settings.clone_timeout_seconds,
                install_timeout=settings.install_timeout_seconds,
            ),
            resolver=EntryPointResolver(
                manifest_name=settings.manifest_name,
                node_executable=settings.node_executable,
                npm_executable=settings.npm_executable,
            ),
            supervisor=supervisor,
            probe=ReadinessProbe(
                path=settings.readiness_path,
                interval=settings.readiness_interval_seconds,
                request_timeout=min(2.0, settings.request_timeout_seconds),
            ),
            batteries=batteries,
            aggregator=ScoreAggregator(server_start_points=settings.server_start_points),
            sinks=sinks,
            port=settings.server_port,
            host=settings.server_host,
            readiness_timeout=settings.readiness_timeout_seconds,
            stabilize_seconds=settings.stabilize_seconds,
            cooldown_seconds=settings.cooldown_seconds,
            persist_retries=settings.persist_retries,
            persist_retry_delay=settings.persist_retry_delay_seconds,
        )

    @property
    def max_score(self) -> int:
        return self.aggregator.server_start_points + sum(battery.max_score for battery in self.batteries)

    def grade_all(self, submissions: Iterable[Submission]) -> List[GradingRecord]:
        roster = list(submissions)
        records: List[GradingRecord] = []
        logger.info("grading_run_started", submissions=len(roster), port=self.port, max_score=self.max_score)

        for index, submission in enumerate(roster, start=1):
            logger.info("grading_submission", index=index, total=len(roster), submission_id=submission.id, name=submission.name)
            try:
                record = self.grade_submission(submission)
            except Exception as e:
                logger.exception("grading_error", submission_id=submission.id, error=str(e))
                record = self._not_started_record(submission, [f"grading_error: {e}"], "not_run: grading_error")

            records.append(record)
            logger.info(
                "submission_graded",
                submission_id=submission.id,
                server_started=record.server_started,
                total_score=record.total_score,
                max_score=record.max_score,
                grade=record.grade,
            )
            self._persist(records)

            if index < len(roster) and self.cooldown_seconds:
                logger.debug("cooldown", seconds=self.cooldown_seconds)
                self._sleep(self.cooldown_seconds)

        logger.info("grading_run_finished", submissions=len(records))
        return records

    def grade_submission(self, submission: Submission) -> GradingRecord:
        try:
            server_dir = self.submission_manager.validate_structure(submission)
            spec = self.resolver.resolve(Path(server_dir), self.port, self.host)
        except STRUCTURAL_ERRORS as e:
            logger.warning("submission_invalid", submission_id=submission.id, error=str(e))
            return self._not_started_record(submission, [str(e)], f"not_run: {type(e).__name__}")

        errors: List[str] = []
        self._ensure_port_free(errors)

        handle: Optional[ProcessHandle] = None
        battery_results: List[TestResult] = []
        server_started = False
        try:
            handle, server_started = self._launch(spec, errors)
            if server_started:
                if self.stabilize_seconds:
                    self._sleep(self.stabilize_seconds)
                self.supervisor.mark_testing(handle)
                for battery in self.batteries:
                    battery_results.extend(battery.run_all(spec.base_url))
        finally:
            if handle is not None:
                self.supervisor.stop(handle)
                errors.extend(handle.warnings)

        if not server_started:
            reason = "not_run: server_not_ready"
            battery_results = [result for battery in self.batteries for result in battery.skipped_results(reason)]

        startup_detail = ""
        if not server_started:
            startup_detail = (handle.failure_reason if handle is not None else None) or (errors[0] if errors else "")
        tests = [self.aggregator.server_start_result(server_started, startup_detail), *battery_results]
        return self._record(submission, server_started, tests, errors, handle)

    def _launch(self, spec: LaunchSpec, errors: List[str]):
        try:
            handle = self.supervisor.start(spec)
        except ProcessSpawnError as e:
            errors.append(str(e))
            return self.supervisor.active_handle, False

        try:
            self.probe.wait(
                spec.base_url,
                self.readiness_timeout,
                is_alive=lambda: self.supervisor.is_alive(handle),
            )
        except ReadinessTimeoutError as e:
            self.supervisor.mark_failed(handle, str(e))
            errors.append(str(e))
            return handle, False

        foreign = self._foreign_listeners(handle) if self.verify_port_owner else set()
        if foreign:
            message = f"port_owned_by_other_process: {spec.port} pids={sorted(foreign)}"
            self.supervisor.mark_failed(handle, message)
            errors.append(message)
            return handle, False

        self.supervisor.mark_ready(handle)
        return handle, True

    def _foreign_listeners(self, handle: ProcessHandle) -> Set[int]:
        """Listeners on the port outside the supervised tree; empty when unknown."""
        owners = self.supervisor.port_reclaimer.listener_pids(handle.port)
        if not owners:
            return set()
        if owners & self.supervisor.owned_pids(handle):
            return set()
        return owners

    def _ensure_port_free(self, errors: List[str]) -> None:
        try:
            self.supervisor.port_reclaimer.reclaim(self.port)
        except PortReclaimFailure as e:
            logger.warning("port_busy_before_launch", port=self.port, error=str(e))
            errors.append(str(e))

    def _not_started_record(self, submission: Submission, errors: List[str], reason: str) -> GradingRecord:
        tests = [
            self.aggregator.server_start_result(False, errors[0] if errors else ""),
            *[result for battery in self.batteries for result in battery.skipped_results(reason)],
        ]
        return self._record(submission, False, tests, errors, None)

    def _record(
        self,
        submission: Submission,
        server_started: bool,
        tests: List[TestResult],
        errors: List[str],
        handle: Optional[ProcessHandle],
    ) -> GradingRecord:
        score = self.aggregator.compute(tests)
        server_log = "\n".join(handle.log)[-MAX_SERVER_LOG_CHARS:] if handle is not None else ""
        return GradingRecord(
            submission=submission,
            server_started=server_started,
            tests=tests,
            errors=errors,
            total_score=score.total_score,
            max_score=score.max_score,
            percentage=score.percentage,
            grade=score.grade,
            server_log=server_log,
        )

    def _persist(self, records: List[GradingRecord]) -> None:
        for sink in self.sinks:
            for attempt in range(1, self.persist_retries + 1):
                try:
                    sink.save(records)
                    break
                except Exception as e:
                    logger.warning(
                        "persist_failed",
                        sink=type(sink).__name__,
                        attempt=attempt,
                        retries=self.persist_retries,
                        error=str(e),
                    )
                    if attempt < self.persist_retries:
                        self._sleep(self.persist_retry_delay)
            else:
                logger.error("persist_gave_up", sink=type(sink).__name__, records=len(records))
