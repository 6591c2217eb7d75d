"""
Service definitions for the restarter.

Each deployment restarts one service, identified by a command-line pattern
and started through a launch script in the build directory. Built-in
presets cover the proxy and agent; any other service can be described
entirely from the command line.
"""

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from .config import config
from .models import LaunchSpec, LogMode, RetryPolicy, ServiceQuery
from .supervisor import HealthCheck

SERVICE_PRESETS: dict[str, dict[str, Any]] = {
    "proxy": {
        "pattern": "ppaass-proxy",
        "executable": "./concrete-start-proxy.sh",
    },
    "agent": {
        "pattern": "ppaass-agent",
        "executable": "./concrete-start-agent.sh",
    },
}


class ServiceDefinition(BaseModel):
    """A fully resolved, validated description of one managed service."""

    name: str = Field(..., min_length=1, description="Service name")
    pattern: str = Field(..., min_length=1, description="Substring identifying the service in process command lines")
    executable: str = Field(..., min_length=1, description="Executable or launch script to start")
    arguments: list[str] = Field(default_factory=list, description="Arguments passed to the executable")
    working_dir: Path = Field(default_factory=lambda: config.working_dir, description="Working directory")
    log_file: str = Field(default_factory=lambda: config.service_log, description="Log file for service output")
    log_mode: Literal["truncate", "append"] = Field(
        default_factory=lambda: config.service_log_mode,
        validate_default=True,
        description="Whether a restart discards or keeps previous output",
    )
    fd_limit: int = Field(
        default_factory=lambda: config.fd_limit,
        ge=0,
        validate_default=True,
        description="Open file limit for the service, 0 to inherit the current one",
    )
    max_attempts: int = Field(default_factory=lambda: config.max_attempts, ge=1, validate_default=True)
    attempt_delay: float = Field(default_factory=lambda: config.attempt_delay, ge=0, validate_default=True)
    graceful_timeout: Optional[float] = Field(None, ge=0, description="Seconds to wait after SIGTERM before SIGKILL")
    health_port: Optional[int] = Field(None, ge=1, le=65535, description="Port to probe after launch")
    health_host: str = Field(default_factory=lambda: config.health_host)
    health_timeout: float = Field(default_factory=lambda: config.health_timeout, ge=0, validate_default=True)

    def query(self) -> ServiceQuery:
        return ServiceQuery(self.pattern)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            attempt_delay=self.attempt_delay,
            graceful_timeout=self.graceful_timeout,
        )

    def launch_spec(self) -> LaunchSpec:
        return LaunchSpec(
            executable_path=self.executable,
            working_directory=self.working_dir,
            arguments=tuple(self.arguments),
            log_path=Path(self.log_file),
            fd_limit=self.fd_limit or None,
            log_mode=LogMode(self.log_mode),
        )

    def health_check(self) -> Optional[HealthCheck]:
        if self.health_port is None:
            return None
        return HealthCheck(port=self.health_port, host=self.health_host, timeout=self.health_timeout)


def service_query(name: str, pattern: Optional[str] = None) -> ServiceQuery:
    """Query for a service: explicit pattern, else the preset's, else the name."""
    if pattern is None:
        pattern = SERVICE_PRESETS.get(name, {}).get("pattern", name)
    return ServiceQuery(pattern)


def resolve_service(name: str, **overrides) -> ServiceDefinition:
    """Build a service definition from a preset plus explicit overrides.

    Overrides set to None are ignored. Unknown services need an executable;
    their pattern defaults to the service name.
    """
    values: dict[str, Any] = {"pattern": name}
    values.update(SERVICE_PRESETS.get(name, {}))
    values.update({key: value for key, value in overrides.items() if value is not None})

    if "executable" not in values:
        raise ValueError(
            f"Unknown service '{name}' and no executable given. Known services: {list(SERVICE_PRESETS.keys())}"
        )

    return ServiceDefinition(name=name, **values)
