import os
import signal
import subprocess
from abc import ABC, abstractmethod
from typing import List

import psutil
from loguru import logger


class ProcessGroupTerminator(ABC):
    """Terminates a launched process together with everything it spawned."""

    @abstractmethod
    def popen_kwargs(self) -> dict:
        """Extra ``subprocess.Popen`` arguments placing the child in its own group."""

    @abstractmethod
    def group_id(self, process: subprocess.Popen) -> int:
        pass

    @abstractmethod
    def terminate(self, process: subprocess.Popen, pgid: int, grace_seconds: float) -> bool:
        """Signal the whole group, escalate after ``grace_seconds``; True if verified gone."""

    @abstractmethod
    def members(self, pgid: int) -> List[int]:
        """Pids still alive in the group."""


class PosixProcessGroupTerminator(ProcessGroupTerminator):
    def popen_kwargs(self) -> dict:
        return {"start_new_session": True}

    def group_id(self, process: subprocess.Popen) -> int:
        try:
            return os.getpgid(process.pid)
        except ProcessLookupError:
            # start_new_session makes the leader its own group
            return process.pid

    def members(self, pgid: int) -> List[int]:
        pids = []
        for proc in psutil.process_iter(["pid", "status"]):
            try:
                if proc.info["status"] == psutil.STATUS_ZOMBIE:
                    continue
                if os.getpgid(proc.info["pid"]) == pgid:
                    pids.append(proc.info["pid"])
            except (ProcessLookupError, PermissionError, psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return pids

    def _signal_group(self, pgid: int, sig: signal.Signals) -> bool:
        try:
            os.killpg(pgid, sig)
            return True
        except ProcessLookupError:
            return False
        except PermissionError as e:
            logger.warning("group_signal_denied", pgid=pgid, signal=sig.name, error=str(e))
            return False

    def terminate(self, process: subprocess.Popen, pgid: int, grace_seconds: float) -> bool:
        self._signal_group(pgid, signal.SIGTERM)
        try:
            process.wait(timeout=grace_seconds)
        except subprocess.TimeoutExpired:
            pass

        if process.poll() is None or self.members(pgid):
            logger.debug("group_escalate_sigkill", pgid=pgid, pid=process.pid)
            self._signal_group(pgid, signal.SIGKILL)
            try:
                process.wait(timeout=grace_seconds)
            except subprocess.TimeoutExpired:
                pass

        survivors = self.members(pgid)
        if process.poll() is None or survivors:
            logger.warning("group_survivors", pgid=pgid, pids=survivors)
            return False
        return True


class WindowsProcessTreeTerminator(ProcessGroupTerminator):
    """Windows has no signalable process groups; walk the tree with psutil instead."""

    def popen_kwargs(self) -> dict:
        return {"creationflags": getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)}

    def group_id(self, process: subprocess.Popen) -> int:
        return process.pid

    def _tree(self, pid: int) -> List[psutil.Process]:
        try:
            root = psutil.Process(pid)
            return [root, *root.children(recursive=True)]
        except psutil.NoSuchProcess:
            return []

    def members(self, pgid: int) -> List[int]:
        return [proc.pid for proc in self._tree(pgid) if proc.is_running()]

    def terminate(self, process: subprocess.Popen, pgid: int, grace_seconds: float) -> bool:
        procs = self._tree(pgid)
        for proc in procs:
            try:
                proc.terminate()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        _, alive = psutil.wait_procs(procs, timeout=grace_seconds)
        for proc in alive:
            try:
                proc.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        _, alive = psutil.wait_procs(alive, timeout=grace_seconds)
        try:
            process.wait(timeout=grace_seconds)
        except subprocess.TimeoutExpired:
            pass
        if alive:
            logger.warning("tree_survivors", pid=pgid, pids=[proc.pid for proc in alive])
        return not alive and process.poll() is not None


def default_terminator() -> ProcessGroupTerminator:
    if os.name == "nt":
        return WindowsProcessTreeTerminator()
    return PosixProcessGroupTerminator()
