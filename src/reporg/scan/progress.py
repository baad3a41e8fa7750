"""Live scan progress state and observer fan-out."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Literal, Optional

from pydantic import BaseModel

LOGGER = logging.getLogger(__name__)

ScanStatus = Literal["idle", "scanning", "completed", "error", "cancelled"]
ProgressListener = Callable[["ScanProgress"], None]


class ScanProgress(BaseModel):
    """Snapshot of the scan in flight (or the last one to finish).

    Attributes:
        status: Lifecycle state.
        current_directory: Scan directory being walked.
        current_directory_index: Number of scan directories finished.
        total_directories: Number of enabled scan directories.
        repos_found: Repositories discovered so far.
        started_at: When the scan started.
        completed_at: When the scan finished, failed, or was cancelled.
        error: Failure message for ``error`` status.
    """

    status: ScanStatus = "idle"
    current_directory: str = ""
    current_directory_index: int = 0
    total_directories: int = 0
    repos_found: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


def format_progress_event(progress: ScanProgress) -> str:
    """Render ``progress`` as one server-sent event frame."""
    return f"data: {progress.model_dump_json()}\n\n"


class ScanProgressTracker:
    """Own the single :class:`ScanProgress` and notify subscribers of changes.

    Every transition pushes a fresh copy to each listener. A listener that
    raises is logged and does not affect delivery to the others.
    """

    def __init__(self) -> None:
        self._progress = ScanProgress()
        self._cancelled = threading.Event()
        self._listeners: list[ProgressListener] = []
        self._lock = threading.Lock()

    def snapshot(self) -> ScanProgress:
        """Return a copy of the current progress."""
        return self._progress.model_copy()

    @property
    def is_scanning(self) -> bool:
        return self._progress.status == "scanning"

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self, total_directories: int) -> None:
        """Enter ``scanning`` with counters cleared."""
        self._cancelled.clear()
        self._progress = ScanProgress(
            status="scanning",
            total_directories=total_directories,
            started_at=datetime.now(timezone.utc),
        )
        self._notify()

    def update(
        self,
        *,
        current_directory: str | None = None,
        current_directory_index: int | None = None,
        repos_found: int | None = None,
    ) -> None:
        """Merge the supplied counters into the current progress."""
        changes: dict[str, object] = {}
        if current_directory is not None:
            changes["current_directory"] = current_directory
        if current_directory_index is not None:
            changes["current_directory_index"] = current_directory_index
        if repos_found is not None:
            changes["repos_found"] = repos_found
        self._progress = self._progress.model_copy(update=changes)
        self._notify()

    def complete(self, repos_found: int) -> None:
        """Enter ``completed``."""
        self._finish("completed", repos_found=repos_found)

    def fail(self, error: str) -> None:
        """Enter ``error`` recording ``error``."""
        self._finish("error", error=error)

    def cancel(self) -> bool:
        """Request cooperative cancellation of a running scan.

        Returns:
            bool: False when no scan was running.
        """
        if not self.is_scanning:
            return False
        self._cancelled.set()
        self._finish("cancelled")
        return True

    def reset(self) -> None:
        """Return to ``idle``."""
        self._cancelled.clear()
        self._progress = ScanProgress()
        self._notify()

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: ProgressListener) -> None:
        """Remove ``listener``; unknown listeners are ignored."""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _finish(self, status: ScanStatus, **changes: object) -> None:
        self._progress = self._progress.model_copy(
            update={"status": status, "completed_at": datetime.now(timezone.utc), **changes}
        )
        self._notify()

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self._progress.model_copy())
            except Exception:  # listener failures stay isolated
                LOGGER.exception("Scan progress listener %r failed", listener)


__all__ = ["ScanProgress", "ScanProgressTracker", "ScanStatus", "format_progress_event"]
