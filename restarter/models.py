"""
Data model for the restarter.

Plain immutable records passed between the locator, the termination loop
and the launcher. Nothing here is persisted; process handles are rebuilt
from the live process table on every query.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class ServiceQuery:
    """Literal substring identifying a service in process command lines."""

    pattern: str

    def __post_init__(self):
        if not self.pattern:
            raise ValueError("Service pattern must not be empty")

    def matches(self, command_line: str) -> bool:
        return self.pattern in command_line


@dataclass(frozen=True, order=True)
class ProcessHandle:
    """A live process matched by the locator."""

    pid: int
    command_line: str = field(compare=False)
    name: Optional[str] = field(default=None, compare=False)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounds for the stale-instance search.

    graceful_timeout enables a SIGTERM tier before the hard kill. It is off
    by default.
    """

    max_attempts: int = 5
    attempt_delay: float = 2.0
    graceful_timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.attempt_delay < 0:
            raise ValueError(f"attempt_delay must not be negative, got {self.attempt_delay}")
        if self.graceful_timeout is not None and self.graceful_timeout < 0:
            raise ValueError(f"graceful_timeout must not be negative, got {self.graceful_timeout}")

    @property
    def max_blocking_seconds(self) -> float:
        """Upper bound on time spent sleeping when nothing is ever found."""
        return (self.max_attempts - 1) * self.attempt_delay


class LogMode(Enum):
    TRUNCATE = "truncate"
    APPEND = "append"


@dataclass(frozen=True)
class LaunchSpec:
    """Everything needed to start the replacement instance."""

    executable_path: str
    working_directory: Path
    arguments: tuple[str, ...] = ()
    log_path: Path = Path("run.log")
    fd_limit: Optional[int] = 65536
    log_mode: LogMode = LogMode.TRUNCATE

    @property
    def argv(self) -> list[str]:
        return [self.executable_path, *self.arguments]

    @property
    def resolved_log_path(self) -> Path:
        """Log path, relative paths taken from the working directory."""
        path = Path(self.log_path)
        if path.is_absolute():
            return path
        return Path(self.working_directory) / path


@dataclass(frozen=True)
class DaemonProcess:
    """The detached replacement instance. Only an identifier, never joined."""

    pid: int
    argv: tuple[str, ...]
    log_path: Path
    started_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "pid": self.pid,
            "argv": list(self.argv),
            "log_path": str(self.log_path),
            "started_at": self.started_at.isoformat(),
        }


class TerminationStatus(Enum):
    TERMINATED = "terminated"
    SIGNAL_FAILED = "signal_failed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class TerminationOutcome:
    """Result of one run of the termination loop."""

    status: TerminationStatus
    attempts: int
    target: Optional[ProcessHandle] = None
    candidates: frozenset = frozenset()

    @property
    def found(self) -> bool:
        return self.target is not None


@dataclass(frozen=True)
class RestartReport:
    """Everything one supervisor invocation did."""

    termination: TerminationOutcome
    daemon: DaemonProcess
    healthy: Optional[bool] = None

    def to_dict(self) -> dict:
        return {
            "termination": {
                "status": self.termination.status.value,
                "attempts": self.termination.attempts,
                "pid": self.termination.target.pid if self.termination.target else None,
            },
            "daemon": self.daemon.to_dict(),
            "healthy": self.healthy,
        }
