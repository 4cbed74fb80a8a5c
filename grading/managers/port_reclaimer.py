import errno
import os
import shutil
import socket
import subprocess
import time
from typing import Callable, Optional, Set

import psutil
from loguru import logger

from grading.errors import PortReclaimFailure


def _can_bind(family: int, address: tuple) -> Optional[bool]:
    """Test-bind one address; None when the address family is unusable here."""
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
    except OSError:
        return None
    with sock:
        if os.name != "nt":
            # Servers set SO_REUSEADDR too; TIME_WAIT leftovers must not count as bound
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if family == socket.AF_INET6:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        try:
            sock.bind(address)
        except OSError as e:
            if e.errno == errno.EADDRINUSE or getattr(e, "winerror", None) == 10048:
                return False
            if family == socket.AF_INET6:
                return None
            return False
    return True


def is_port_free(port: int) -> bool:
    """
    True when a new listener could bind ``port`` right now.

    Both the IPv4 wildcard and the dual-stack IPv6 wildcard must bind: a
    server listening on ``localhost`` often holds ``[::1]`` only.
    """
    if not _can_bind(socket.AF_INET, ("", port)):
        return False
    if socket.has_ipv6 and _can_bind(socket.AF_INET6, ("::", port)) is False:
        return False
    return True


class PortReclaimer:
    """
    Frees a well-known port after a submission is torn down.

    Listeners are found with psutil; when the OS refuses to list connections
    (macOS without root) it falls back to ``lsof``. Each owner gets SIGTERM,
    then SIGKILL after ``kill_timeout`` seconds. The port counts as reclaimed
    only once no listener is left and test binds on IPv4 and IPv6 succeed.
    """

    def __init__(
        self,
        release_timeout: float = 5.0,
        kill_timeout: float = 2.0,
        poll_interval: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.release_timeout = release_timeout
        self.kill_timeout = kill_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep

    def listener_pids(self, port: int) -> Optional[Set[int]]:
        """Pids listening on ``port``; None when the OS does not let us tell."""
        try:
            connections = psutil.net_connections(kind="inet")
        except psutil.AccessDenied:
            return self._lsof_pids(port)

        pids = set()
        for conn in connections:
            if conn.laddr and conn.laddr.port == port and conn.status == psutil.CONN_LISTEN and conn.pid:
                pids.add(conn.pid)
        if not pids and connections and all(conn.pid is None for conn in connections):
            # Connections listed without owners: not enough privileges to attribute them
            return self._lsof_pids(port)
        return pids

    def _lsof_pids(self, port: int) -> Optional[Set[int]]:
        lsof = shutil.which("lsof")
        if lsof is None:
            return None
        result = subprocess.run(
            [lsof, "-ti", f"tcp:{port}", "-sTCP:LISTEN"],
            capture_output=True,
            text=True,
            timeout=10,
        )
        return {int(line) for line in result.stdout.split() if line.strip().isdigit()}

    def _kill(self, pid: int, port: int) -> None:
        if pid == os.getpid():
            return
        try:
            proc = psutil.Process(pid)
            logger.info("port_owner_terminating", port=port, pid=pid, name=proc.name())
            proc.terminate()
            try:
                proc.wait(timeout=self.kill_timeout)
            except psutil.TimeoutExpired:
                logger.debug("port_owner_kill", port=port, pid=pid)
                proc.kill()
                proc.wait(timeout=self.kill_timeout)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.TimeoutExpired) as e:
            logger.debug("port_owner_kill_skipped", port=port, pid=pid, error=str(e))

    def reclaim(self, port: int) -> None:
        """Kill whatever still listens on ``port`` and wait until it is bindable."""
        deadline = time.monotonic() + self.release_timeout
        while True:
            owners = self.listener_pids(port) or set()
            if not owners and is_port_free(port):
                logger.debug("port_free", port=port)
                return

            for pid in owners:
                self._kill(pid, port)

            if not self.listener_pids(port) and is_port_free(port):
                logger.info("port_reclaimed", port=port, killed=sorted(owners))
                return

            if time.monotonic() >= deadline:
                raise PortReclaimFailure(f"port_still_bound: {port} owners={sorted(owners)}")
            self._sleep(self.poll_interval)
