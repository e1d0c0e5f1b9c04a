"""
Exception types and error logging for notesweep.

Every error the engine raises derives from SweepError, so callers can catch
the whole family. The CLI logs full tracebacks to a file and shows clean
messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional


class SweepError(Exception):
    """Base class for all notesweep errors."""


class ValidationError(SweepError, ValueError):
    """A request is malformed: empty filter set, bad pattern, unknown comparator.

    Raised before any call to the item store is made. Never retried.
    """


class StoreError(SweepError):
    """The item store failed or rejected a call.

    Carries the number of items the store confirmed before the failure and
    the identifiers that were part of the failing call, so counts can be
    reported accurately.
    """

    def __init__(
        self,
        message: str,
        *,
        succeeded: int = 0,
        failed_ids: Optional[Iterable[str]] = None,
    ):
        super().__init__(message)
        self.succeeded = succeeded
        self.failed_ids = list(failed_ids or [])


class SnapshotError(SweepError):
    """Base class for snapshot cache errors."""


class CacheMiss(SnapshotError):
    """No snapshot exists at the requested path."""


class DecodeError(SnapshotError):
    """A snapshot exists but cannot be decoded (truncated, corrupt, wrong format)."""


def _error_log_path() -> Path:
    """Resolve error log path, respecting NOTESWEEP_HOME."""
    home = os.environ.get("NOTESWEEP_HOME")
    if home:
        return Path(home) / "notesweep-errors.log"
    return Path.home() / ".notesweep" / "notesweep-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write(f" {type(exc).__name__}: {exc}\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log; don't crash over it
    return log_path
