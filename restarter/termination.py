"""
Stale-instance termination for the restarter.

Searches for a running instance of the service a bounded number of times,
pausing between attempts so a service that is still shutting down has time
to disappear. The first instance found is hard-killed and the loop ends
without waiting to confirm the exit.
"""

import logging
import signal
import time
from typing import Callable

from .models import (
    ProcessHandle,
    RetryPolicy,
    ServiceQuery,
    TerminationOutcome,
    TerminationStatus,
)
from .process import ProcessLocator

logger = logging.getLogger(__name__)


class TerminationRetryLoop:
    """Locate, then kill at most one stale instance of a service."""

    def __init__(
        self,
        locator: ProcessLocator,
        policy: RetryPolicy = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.locator = locator
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def run(self, query: ServiceQuery) -> TerminationOutcome:
        """Run the loop to completion. Never raises for discovery or signal failures."""
        attempts = 0
        while attempts < self.policy.max_attempts:
            attempts += 1
            candidates = self._locate(query)

            if candidates:
                target = min(candidates)
                if len(candidates) > 1:
                    others = ", ".join(str(h.pid) for h in sorted(candidates) if h != target)
                    logger.warning(f"Multiple {query.pattern} processes found, leaving {others} running")
                logger.info(f"Found {query.pattern} process: {target.pid}")
                delivered = self._terminate(target, query)
                status = TerminationStatus.TERMINATED if delivered else TerminationStatus.SIGNAL_FAILED
                return TerminationOutcome(
                    status=status,
                    attempts=attempts,
                    target=target,
                    candidates=frozenset(candidates),
                )

            logger.info(f"No {query.pattern} process")
            if attempts < self.policy.max_attempts:
                self._sleep(self.policy.attempt_delay)

        return TerminationOutcome(status=TerminationStatus.NOT_FOUND, attempts=attempts)

    def _locate(self, query: ServiceQuery) -> set[ProcessHandle]:
        try:
            return self.locator.find(query)
        except Exception as e:
            logger.error(f"Error searching for {query.pattern} processes: {e}")
            return set()

    def _terminate(self, target: ProcessHandle, query: ServiceQuery) -> bool:
        """Signal the target. Returns False if a signal could not be delivered."""
        provider = self.locator.provider
        timeout = self.policy.graceful_timeout

        try:
            if timeout is not None:
                provider.send_signal(target.pid, signal.SIGTERM)
                if provider.wait_for_exit(target.pid, timeout):
                    logger.info(f"Stopped {query.pattern} process: {target.pid}")
                    return True
                logger.warning(f"Process {target.pid} did not stop within {timeout}s, forcing kill")

            provider.send_signal(target.pid, signal.SIGKILL)
        except ProcessLookupError:
            logger.warning(f"Process {target.pid} exited before it could be killed")
            return False
        except OSError as e:
            logger.warning(f"Failed to kill {query.pattern} process {target.pid}: {e}")
            return False

        logger.info(f"Kill {query.pattern} process: {target.pid}")
        return True
