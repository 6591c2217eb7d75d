"""Output capture for the launched service."""

import logging
from pathlib import Path
from typing import IO

from .models import LogMode

logger = logging.getLogger(__name__)


class LogSink:
    """The single file that receives a daemon's combined stdout and stderr.

    Truncated on every restart unless opened in append mode.
    """

    def __init__(self, path: Path, mode: LogMode = LogMode.TRUNCATE):
        self.path = Path(path)
        self.mode = mode

    def open(self) -> IO[bytes]:
        """Open the sink for a new daemon. The caller closes its copy after spawn."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        file_mode = "ab" if self.mode == LogMode.APPEND else "wb"
        logger.debug(f"Opening log sink {self.path} ({self.mode.value})")
        return open(self.path, file_mode)
