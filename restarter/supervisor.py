"""
Restart orchestration.

Kills a stale instance if one turns up, then launches the replacement
exactly once, whatever the termination loop found. Optionally probes the
new instance's port afterwards.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .health import wait_for_port
from .launcher import DaemonLauncher
from .models import LaunchSpec, RestartReport, RetryPolicy, ServiceQuery
from .process import ProcessLocator, process_locator
from .termination import TerminationRetryLoop

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthCheck:
    """Where and how long to wait for the new instance to listen."""

    port: int
    host: str = "127.0.0.1"
    timeout: float = 10.0
    interval: float = 0.5


class RestartSupervisor:
    """Replaces a running service with a freshly launched one."""

    def __init__(
        self,
        locator: ProcessLocator = None,
        launcher: DaemonLauncher = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.locator = locator or process_locator
        self.launcher = launcher or DaemonLauncher()
        self._sleep = sleep

    def restart(
        self,
        query: ServiceQuery,
        policy: RetryPolicy,
        spec: LaunchSpec,
        health: Optional[HealthCheck] = None,
    ) -> RestartReport:
        """Terminate any stale instance, then launch. LaunchError propagates."""
        loop = TerminationRetryLoop(self.locator, policy, sleep=self._sleep)
        outcome = loop.run(query)
        logger.info(
            f"Search for {query.pattern} finished after {outcome.attempts} attempt(s): {outcome.status.value}"
        )

        daemon = self.launcher.launch(spec)

        healthy = None
        if health is not None:
            healthy = wait_for_port(
                health.host,
                health.port,
                timeout=health.timeout,
                interval=health.interval,
                sleep=self._sleep,
            )

        return RestartReport(termination=outcome, daemon=daemon, healthy=healthy)
