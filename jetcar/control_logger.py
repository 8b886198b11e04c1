"""Append-only log of control commands."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from types import TracebackType

log = logging.getLogger(__name__)


def timestamp() -> str:
    """Local time as YYYY-MM-DD HH:MM:SS.mmm."""
    now = datetime.now()
    return f"{now:%Y-%m-%d %H:%M:%S}.{now.microsecond // 1000:03d}"


class ControlLogger:
    """Writes control updates and errors to a file, one line each."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._file = open(path, "a", encoding="utf-8")
        with self._lock:
            self._file.write(f"\n=== Control Logging Session Started at {timestamp()} ===\n")
            self._file.flush()
        log.info("control log %s opened", path)

    @property
    def closed(self) -> bool:
        return self._file is None

    def _write_line(self, line: str) -> bool:
        with self._lock:
            if self._file is None:
                log.error("control log file is not open")
                return False
            self._file.write(line + "\n")
            self._file.flush()
            return True

    def log_control_update(self, command: str, steering: float, throttle: float) -> None:
        """Record a command together with the steering and throttle it set."""
        line = (
            f"{timestamp()} - Command: {command}, "
            f"Steering: {steering:g}, Throttle: {throttle:g}"
        )
        if self._write_line(line):
            log.debug("logged control update steering=%g throttle=%g", steering, throttle)

    def log_error(self, message: str) -> None:
        """Record an error message."""
        if self._write_line(f"{timestamp()} - ERROR - {message}"):
            log.debug("logged control error: %s", message)

    def close(self) -> None:
        """Write the session end marker and close the file."""
        with self._lock:
            if self._file is None:
                return
            try:
                self._file.write(f"\n=== Control Logging Session Ended at {timestamp()} ===\n")
                self._file.flush()
            finally:
                self._file.close()
                self._file = None

    def __enter__(self) -> ControlLogger:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()