"""Shared fixtures: an in-memory process table and a sleep that never blocks."""

from __future__ import annotations

import signal

import pytest

from restarter.models import ProcessHandle, ServiceQuery
from restarter.process import ProcessLocator

SELF_PID = 4242


class FakeProcessProvider:
    """In-memory process table for testing."""

    def __init__(self, processes: dict[int, str] | None = None, own_pids: set[int] | None = None):
        self.processes: dict[int, str] = dict(processes or {})
        self.own_pids = own_pids if own_pids is not None else {SELF_PID}
        self.signals: list[tuple[int, int]] = []
        self.queries: list[str] = []
        self.signal_errors: dict[int, OSError] = {}
        self.ignore_sigterm: set[int] = set()
        self.appear_on_query: dict[int, dict[int, str]] = {}

    def processes_matching(self, query: ServiceQuery) -> list[ProcessHandle]:
        self.queries.append(query.pattern)
        self.processes.update(self.appear_on_query.get(len(self.queries), {}))
        return [
            ProcessHandle(pid=pid, command_line=cmdline)
            for pid, cmdline in self.processes.items()
            if query.matches(cmdline)
        ]

    def own_invocation_pids(self) -> set[int]:
        return set(self.own_pids)

    def send_signal(self, pid: int, sig: int) -> None:
        self.signals.append((pid, sig))
        if pid in self.signal_errors:
            raise self.signal_errors[pid]
        if pid not in self.processes:
            raise ProcessLookupError(f"Process {pid} no longer exists")
        if sig == signal.SIGTERM and pid in self.ignore_sigterm:
            return
        del self.processes[pid]

    def wait_for_exit(self, pid: int, timeout: float) -> bool:
        return pid not in self.processes


class RecordingSleep:
    """Stands in for time.sleep and remembers every delay."""

    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def provider() -> FakeProcessProvider:
    return FakeProcessProvider()


@pytest.fixture
def locator(provider: FakeProcessProvider) -> ProcessLocator:
    return ProcessLocator(provider)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()
