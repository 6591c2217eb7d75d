"""Tests for process discovery."""

from __future__ import annotations

import os
import signal
import subprocess
import sys
import uuid

import psutil
import pytest

from restarter.models import ServiceQuery
from restarter.process import ProcessLocator, PsutilProcessProvider, command_line_text

from .conftest import SELF_PID, FakeProcessProvider


class TestCommandLineText:
    """Tests for command_line_text."""

    def test_joins_arguments(self) -> None:
        assert command_line_text(["./ppaass-proxy", "-c", "proxy.toml"], "ppaass-proxy") == "./ppaass-proxy -c proxy.toml"

    def test_falls_back_to_bracketed_name(self) -> None:
        assert command_line_text([], "kworker/0:1") == "[kworker/0:1]"

    def test_empty_when_nothing_known(self) -> None:
        assert command_line_text(None, None) == ""


class TestProcessLocator:
    """Tests for ProcessLocator against a fake process table."""

    def test_finds_matching_process(self, provider: FakeProcessProvider, locator: ProcessLocator) -> None:
        provider.processes = {1234: "./ppaass-proxy", 99: "/usr/sbin/sshd -D"}

        found = locator.find(ServiceQuery("ppaass-proxy"))

        assert {h.pid for h in found} == {1234}

    def test_returns_empty_set_when_nothing_matches(self, provider: FakeProcessProvider, locator: ProcessLocator) -> None:
        provider.processes = {99: "/usr/sbin/sshd -D"}

        assert locator.find(ServiceQuery("ppaass-proxy")) == set()

    def test_excludes_own_invocation(self, provider: FakeProcessProvider, locator: ProcessLocator) -> None:
        provider.processes = {
            SELF_PID: "python -m restarter restart proxy --pattern ppaass-proxy",
            1234: "./ppaass-proxy",
        }

        found = locator.find(ServiceQuery("ppaass-proxy"))

        assert SELF_PID not in {h.pid for h in found}
        assert {h.pid for h in found} == {1234}

    def test_excludes_ancestors(self) -> None:
        provider = FakeProcessProvider(
            {
                10: "sudo restarter restart svc --pattern svc-proxy",
                11: "restarter restart svc --pattern svc-proxy",
                1234: "svc-proxy --listen 8080",
            },
            own_pids={10, 11},
        )

        found = ProcessLocator(provider).find(ServiceQuery("svc-proxy"))

        assert {h.pid for h in found} == {1234}

    def test_returns_every_match(self, provider: FakeProcessProvider, locator: ProcessLocator) -> None:
        provider.processes = {1234: "svc-proxy", 1235: "svc-proxy --worker"}

        assert {h.pid for h in locator.find(ServiceQuery("svc-proxy"))} == {1234, 1235}


@pytest.fixture
def sleeper():
    """A real child process with a unique marker on its command line."""
    marker = f"restarter-test-{uuid.uuid4().hex}"
    proc = subprocess.Popen([sys.executable, "-c", "import sys, time; time.sleep(30)", marker])
    yield marker, proc
    if proc.poll() is None:
        proc.kill()
    proc.wait(timeout=10)


class TestPsutilProcessProvider:
    """Tests for PsutilProcessProvider against the real process table."""

    def test_finds_real_process(self, sleeper) -> None:
        marker, proc = sleeper

        handles = PsutilProcessProvider().processes_matching(ServiceQuery(marker))

        assert [h.pid for h in handles] == [proc.pid]
        assert marker in handles[0].command_line

    def test_nothing_for_unknown_pattern(self) -> None:
        query = ServiceQuery(f"no-such-process-{uuid.uuid4().hex}")

        assert PsutilProcessProvider().processes_matching(query) == []

    def test_own_invocation_includes_self_and_parent(self) -> None:
        pids = PsutilProcessProvider().own_invocation_pids()

        assert os.getpid() in pids
        if os.getppid() > 0:
            assert os.getppid() in pids

    def test_locator_never_returns_self(self) -> None:
        own_command_line = " ".join(psutil.Process().cmdline())

        found = ProcessLocator(PsutilProcessProvider()).find(ServiceQuery(own_command_line))

        assert os.getpid() not in {h.pid for h in found}

    def test_send_signal_kills(self, sleeper) -> None:
        _, proc = sleeper
        provider = PsutilProcessProvider()

        provider.send_signal(proc.pid, signal.SIGKILL)

        assert proc.wait(timeout=10) == -signal.SIGKILL

    def test_send_signal_to_missing_process(self) -> None:
        proc = subprocess.Popen([sys.executable, "-c", "pass"])
        proc.wait(timeout=10)

        with pytest.raises(ProcessLookupError):
            PsutilProcessProvider().send_signal(proc.pid, signal.SIGKILL)

    def test_wait_for_exit_times_out_for_running_process(self, sleeper) -> None:
        _, proc = sleeper

        assert PsutilProcessProvider().wait_for_exit(proc.pid, 0.1) is False
