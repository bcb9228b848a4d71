"""Recognition timing: a first-output stopwatch and the append-only timing log."""

import logging
import os
import time
from datetime import timedelta
from typing import Callable, Optional

from .exceptions import FileSystemError
from .models import TimingRecord

logger = logging.getLogger(__name__)


class Stopwatch:
    """Measures from the first `start()` call to `stop()`. Unstarted reads as zero."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._started_at is not None and self._stopped_at is None

    def start(self) -> None:
        # later calls keep the original start
        if self._started_at is None:
            self._started_at = self._clock()

    def stop(self) -> None:
        if self.running:
            self._stopped_at = self._clock()

    @property
    def elapsed(self) -> timedelta:
        if self._started_at is None:
            return timedelta(0)
        end = self._stopped_at if self._stopped_at is not None else self._clock()
        return timedelta(seconds=end - self._started_at)


class TimingLog:
    """Appends one `<output path>: <elapsed>` line per completed file."""

    def __init__(self, path: str):
        self.path = path
        self._file = None

    def __enter__(self) -> "TimingLog":
        try:
            parent = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(parent, exist_ok=True)
            self._file = open(self.path, 'a', encoding='utf-8')
        except OSError as e:
            logger.error(f"Could not open timing log {self.path}: {e}", exc_info=True)
            raise FileSystemError(f"Could not open timing log {self.path}: {e}") from e
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def append(self, record: TimingRecord) -> None:
        if self._file is None:
            raise FileSystemError(f"Timing log {self.path} is not open.")
        self._file.write(record.to_log_line() + "\n")
        self._file.flush()
        logger.info(f"Recorded timing {record.elapsed} for {record.output_path}")
