"""
Detached service launcher.

Raises the open-file limit so the child inherits it, then spawns the
service in its own session with output captured to the log sink and
returns without waiting. Once spawned, the child is on its own.
"""

import logging
import subprocess
from datetime import datetime
from pathlib import Path

import psutil

from .logsink import LogSink
from .models import DaemonProcess, LaunchSpec

logger = logging.getLogger(__name__)


class LaunchError(RuntimeError):
    """The replacement instance could not be started."""


def raise_fd_limit(limit: int) -> tuple[int, int]:
    """Raise this process's RLIMIT_NOFILE soft limit to at least `limit`.

    The hard limit is raised too when it is lower, which needs privileges.
    An existing higher limit is left alone. Returns the resulting (soft, hard).
    """
    proc = psutil.Process()
    soft, hard = proc.rlimit(psutil.RLIMIT_NOFILE)
    if soft == psutil.RLIM_INFINITY or soft >= limit:
        return soft, hard

    new_hard = hard if hard == psutil.RLIM_INFINITY or hard >= limit else limit
    try:
        proc.rlimit(psutil.RLIMIT_NOFILE, (limit, new_hard))
    except (psutil.Error, OSError, ValueError) as e:
        raise LaunchError(f"Could not raise open file limit to {limit}: {e}") from e

    logger.info(f"Raised open file limit from {soft} to {limit}")
    return limit, new_hard


class DaemonLauncher:
    """Starts a service detached from the supervisor."""

    def launch(self, spec: LaunchSpec) -> DaemonProcess:
        """Spawn the service and return immediately. Raises LaunchError."""
        if spec.fd_limit:
            raise_fd_limit(spec.fd_limit)

        if not Path(spec.working_directory).is_dir():
            raise LaunchError(f"Working directory {spec.working_directory} does not exist")

        sink = LogSink(spec.resolved_log_path, spec.log_mode)
        try:
            log_file = sink.open()
        except OSError as e:
            raise LaunchError(f"Could not open log file {sink.path}: {e}") from e

        try:
            process = subprocess.Popen(
                spec.argv,
                cwd=str(spec.working_directory),
                stdin=subprocess.DEVNULL,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                close_fds=True,
                start_new_session=True,  # Detach from our session and terminal
            )
        except (OSError, ValueError) as e:
            raise LaunchError(f"Failed to launch {spec.executable_path}: {e}") from e
        finally:
            log_file.close()

        daemon = DaemonProcess(
            pid=process.pid,
            argv=tuple(spec.argv),
            log_path=sink.path,
            started_at=datetime.now(),
        )
        logger.info(f"Launched {spec.executable_path} with PID {daemon.pid}, logging to {sink.path}")
        return daemon
