"""
Process table access for the restarter.

ProcessProvider is the only way the rest of the package touches the OS
process table, so tests can swap in a fake. ProcessLocator builds on it to
find stale instances of a service while never reporting the supervisor
itself.
"""

import logging
import os
from typing import Iterable, Optional, Protocol

import psutil

from .models import ProcessHandle, ServiceQuery

logger = logging.getLogger(__name__)


def command_line_text(cmdline: Optional[Iterable[str]], name: Optional[str]) -> str:
    """Render a process command line the way `ps -ef` shows it."""
    if cmdline:
        return " ".join(cmdline)
    if name:
        return f"[{name}]"
    return ""


class ProcessProvider(Protocol):
    """Capability over the live process table."""

    def processes_matching(self, query: ServiceQuery) -> list[ProcessHandle]:
        """List live processes whose command line contains the query pattern."""
        ...

    def own_invocation_pids(self) -> set[int]:
        """Pids that belong to this invocation (self and ancestors)."""
        ...

    def send_signal(self, pid: int, sig: int) -> None:
        """Deliver a signal. Raises ProcessLookupError or PermissionError."""
        ...

    def wait_for_exit(self, pid: int, timeout: float) -> bool:
        """Wait up to timeout seconds; True once the process is gone."""
        ...


class PsutilProcessProvider:
    """ProcessProvider backed by psutil."""

    def processes_matching(self, query: ServiceQuery) -> list[ProcessHandle]:
        matches = []
        for proc in psutil.process_iter(["pid", "name", "cmdline"]):
            try:
                info = proc.info
                text = command_line_text(info.get("cmdline"), info.get("name"))
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
                logger.debug(f"Skipping process during scan: {e}")
                continue

            if query.matches(text):
                matches.append(ProcessHandle(pid=info["pid"], command_line=text, name=info.get("name")))
        return matches

    def own_invocation_pids(self) -> set[int]:
        pids = {os.getpid()}
        try:
            pids.update(parent.pid for parent in psutil.Process().parents())
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            logger.debug(f"Could not resolve ancestor processes: {e}")
        return pids

    def send_signal(self, pid: int, sig: int) -> None:
        try:
            psutil.Process(pid).send_signal(sig)
        except psutil.NoSuchProcess as e:
            raise ProcessLookupError(f"Process {pid} no longer exists") from e
        except psutil.AccessDenied as e:
            raise PermissionError(f"Permission denied signalling process {pid}") from e

    def wait_for_exit(self, pid: int, timeout: float) -> bool:
        try:
            psutil.Process(pid).wait(timeout=timeout)
        except psutil.NoSuchProcess:
            return True
        except psutil.TimeoutExpired:
            return False
        return True


class ProcessLocator:
    """Finds live instances of a service, excluding the caller's own invocation."""

    def __init__(self, provider: ProcessProvider = None):
        self.provider = provider or PsutilProcessProvider()

    def find(self, query: ServiceQuery) -> set[ProcessHandle]:
        """Return matching processes. Empty when nothing is running."""
        own = self.provider.own_invocation_pids()
        found = set()
        for handle in self.provider.processes_matching(query):
            if handle.pid in own:
                logger.debug(f"Ignoring own invocation {handle.pid}: {handle.command_line}")
                continue
            found.add(handle)
        return found


# Default locator over the real process table
process_locator = ProcessLocator()
