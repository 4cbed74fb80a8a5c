import os
import shutil
import subprocess
import time
from typing import Callable, Dict, FrozenSet, List, Optional, Set

import psutil
from loguru import logger

from grading.errors import InvalidTransition, PortReclaimFailure, ProcessSpawnError
from grading.managers.log_sink import LogSink
from grading.managers.port_reclaimer import PortReclaimer
from grading.managers.process_terminator import ProcessGroupTerminator, default_terminator
from grading.models.results import LaunchSpec, ProcessHandle, ProcessState

S = ProcessState

# Terminating is reachable from every state: teardown is mandatory
TRANSITIONS: Dict[ProcessState, FrozenSet[ProcessState]] = {
    S.NotStarted: frozenset({S.Spawning, S.Terminating}),
    S.Spawning: frozenset({S.AwaitingReadiness, S.Failed, S.Terminating}),
    S.AwaitingReadiness: frozenset({S.Ready, S.Failed, S.Terminating}),
    S.Ready: frozenset({S.Testing, S.Terminating}),
    S.Testing: frozenset({S.Failed, S.Terminating}),
    S.Failed: frozenset({S.Terminating}),
    S.Terminating: frozenset({S.Terminated}),
    S.Terminated: frozenset(),
}


class ProcessSupervisor:
    """
    Owns at most one live submission process tree at a time.

    ``start`` refuses to spawn while the previous handle has not reached
    Terminated, so submission k+1 can never overlap submission k.
    ``stop`` always ends in Terminated: it signals the whole process group,
    waits the grace period and then reclaims the port regardless of how the
    group kill went.
    """

    def __init__(
        self,
        port_reclaimer: Optional[PortReclaimer] = None,
        terminator: Optional[ProcessGroupTerminator] = None,
        grace_seconds: float = 2.0,
        log_max_lines: int = 500,
        on_transition: Optional[Callable[[ProcessHandle, ProcessState], None]] = None,
    ):
        self.port_reclaimer = port_reclaimer or PortReclaimer()
        self.terminator = terminator or default_terminator()
        self.grace_seconds = grace_seconds
        self.log_max_lines = log_max_lines
        self._on_transition = on_transition
        self._active: Optional[ProcessHandle] = None
        self._process: Optional[subprocess.Popen] = None
        self._log_sink: Optional[LogSink] = None

    @property
    def active_handle(self) -> Optional[ProcessHandle]:
        return self._active

    def _transition(self, handle: ProcessHandle, new_state: ProcessState) -> None:
        if new_state not in TRANSITIONS[handle.state]:
            raise InvalidTransition(f"invalid_transition: {handle.state.value} -> {new_state.value}")
        logger.debug("process_state", pid=handle.pid, old=handle.state.value, new=new_state.value)
        handle.state = new_state
        handle.history.append(new_state)
        if self._on_transition is not None:
            self._on_transition(handle, new_state)

    def start(self, spec: LaunchSpec) -> ProcessHandle:
        if self._active is not None and not self._active.is_terminated:
            raise InvalidTransition(
                f"previous_process_not_terminated: pid={self._active.pid} state={self._active.state.value}"
            )

        handle = ProcessHandle(launch_spec=spec)
        self._active = handle
        self._transition(handle, S.Spawning)

        executable = shutil.which(spec.command, path=self._search_path(spec))
        if executable is None:
            self.mark_failed(handle, f"command_not_found: {spec.command}")
            raise ProcessSpawnError(f"command_not_found: {spec.command}")

        env = os.environ.copy()
        env.update(dict(spec.env))
        try:
            process = subprocess.Popen(
                [executable, *spec.args],
                cwd=str(spec.cwd),
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                **self.terminator.popen_kwargs(),
            )
        except OSError as e:
            self.mark_failed(handle, f"spawn_failed: {e}")
            raise ProcessSpawnError(f"spawn_failed: {' '.join(spec.argv)}: {e}") from e

        self._process = process
        handle.pid = process.pid
        handle.pgid = self.terminator.group_id(process)
        self._log_sink = LogSink(process.stdout, max_lines=self.log_max_lines, name=str(process.pid))
        self._log_sink.start()

        logger.info(
            "process_spawned",
            pid=handle.pid,
            pgid=handle.pgid,
            command=" ".join(spec.argv),
            cwd=str(spec.cwd),
            port=spec.port,
        )
        self._transition(handle, S.AwaitingReadiness)
        return handle

    def _search_path(self, spec: LaunchSpec) -> Optional[str]:
        for key, value in spec.env:
            if key == "PATH":
                return value
        return None

    def is_alive(self, handle: ProcessHandle) -> bool:
        """True while the leader or any member of its group is still running."""
        if handle is not self._active or self._process is None:
            return False
        if self._process.poll() is None:
            return True
        # npm-style launchers may exit after handing off to a child in the group
        return handle.pgid is not None and bool(self.terminator.members(handle.pgid))

    def owned_pids(self, handle: ProcessHandle) -> Set[int]:
        """Pids of the handle's process tree and process group."""
        pids: Set[int] = set()
        if handle.pid is None:
            return pids
        try:
            root = psutil.Process(handle.pid)
            pids.add(root.pid)
            pids.update(child.pid for child in root.children(recursive=True))
        except psutil.NoSuchProcess:
            pass
        if handle.pgid is not None:
            pids.update(self.terminator.members(handle.pgid))
        return pids

    def mark_ready(self, handle: ProcessHandle) -> None:
        self._transition(handle, S.Ready)

    def mark_testing(self, handle: ProcessHandle) -> None:
        self._transition(handle, S.Testing)

    def mark_failed(self, handle: ProcessHandle, reason: str) -> None:
        handle.failure_reason = reason
        logger.warning("process_failed", pid=handle.pid, state=handle.state.value, reason=reason)
        self._transition(handle, S.Failed)

    def recent_output(self) -> List[str]:
        return self._log_sink.lines() if self._log_sink is not None else []

    def stop(self, handle: ProcessHandle) -> None:
        if handle.is_terminated:
            return
        self._transition(handle, S.Terminating)
        started = time.monotonic()

        process = self._process if handle is self._active else None
        if process is not None and handle.pgid is not None:
            try:
                if not self.terminator.terminate(process, handle.pgid, self.grace_seconds):
                    handle.warnings.append(f"group_kill_incomplete: pgid={handle.pgid}")
            except Exception as e:
                logger.warning("group_kill_error", pid=handle.pid, pgid=handle.pgid, error=str(e))
                handle.warnings.append(f"group_kill_error: {e}")

        if self._log_sink is not None:
            handle.log = self._log_sink.close()

        # Children outside the group may still hold the port
        try:
            self.port_reclaimer.reclaim(handle.port)
        except PortReclaimFailure as e:
            logger.warning("port_reclaim_failed", port=handle.port, error=str(e))
            handle.warnings.append(str(e))

        self._process = None
        self._log_sink = None
        self._transition(handle, S.Terminated)
        logger.info(
            "process_terminated",
            pid=handle.pid,
            port=handle.port,
            duration=round(time.monotonic() - started, 2),
            warnings=len(handle.warnings),
        )
