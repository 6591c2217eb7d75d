"""
Configuration for the restarter.

Loads settings from environment variables with sensible defaults.
The supervisor's own log is stored in ~/.restarter/ unless RESTARTER_HOME
points elsewhere.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Config:
    """Restarter configuration."""

    # Paths
    data_dir: Path = Path(os.environ.get("RESTARTER_HOME", str(Path.home() / ".restarter")))
    supervisor_log: Path = None
    working_dir: Path = Path(os.environ.get("RESTARTER_WORKDIR", os.getcwd()))

    # Supervisor logging
    log_max_bytes: int = int(os.environ.get("LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
    log_backup_count: int = int(os.environ.get("LOG_BACKUP_COUNT", "5"))

    # Service log sink
    service_log: str = os.environ.get("RESTARTER_LOG_FILE", "run.log")
    service_log_mode: str = os.environ.get("RESTARTER_LOG_MODE", "truncate")

    # Termination
    max_attempts: int = int(os.environ.get("RESTARTER_MAX_ATTEMPTS", "5"))
    attempt_delay: float = float(os.environ.get("RESTARTER_ATTEMPT_DELAY", "2"))

    # Launch; 0 leaves the inherited limit alone
    fd_limit: int = int(os.environ.get("RESTARTER_FD_LIMIT", "65536"))

    # Health probe
    health_host: str = os.environ.get("RESTARTER_HEALTH_HOST", "127.0.0.1")
    health_timeout: float = float(os.environ.get("RESTARTER_HEALTH_TIMEOUT", "10"))

    def __post_init__(self):
        """Initialize derived paths."""
        self.supervisor_log = self.data_dir / "restarter.log"


config = Config()
