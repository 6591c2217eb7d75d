"""
Optional post-launch health probe.

Polls a TCP port until the new instance accepts connections or a timeout
passes. Only reports; nothing is rolled back or relaunched on failure.
"""

import logging
import socket
import time
from typing import Callable

logger = logging.getLogger(__name__)


def port_is_open(host: str, port: int, timeout: float = 1.0) -> bool:
    """Check whether something is accepting TCP connections on host:port."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def wait_for_port(
    host: str,
    port: int,
    timeout: float = 10.0,
    interval: float = 0.5,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll host:port until it accepts a connection. Returns False on timeout."""
    deadline = clock() + timeout
    while True:
        if port_is_open(host, port):
            logger.info(f"Service is accepting connections on {host}:{port}")
            return True
        if clock() >= deadline:
            logger.warning(f"Service not accepting connections on {host}:{port} after {timeout}s")
            return False
        sleep(interval)
