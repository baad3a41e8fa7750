"""Drive discovery, probing, and classification across scan directories."""

from __future__ import annotations

import logging
import math
import os
import time
from dataclasses import dataclass
from typing import Callable, Sequence

from pydantic import BaseModel

from reporg.classification import ThemeClassifier
from reporg.config.models import ScanSettings
from reporg.discovery import RepositoryProber, RepositoryWalker
from reporg.paths import last_segment, normalize
from reporg.results import ActionResult
from reporg.state import RecordStore, RepositoryRecord, ScanDirectory, path_key

from .progress import ScanProgressTracker

LOGGER = logging.getLogger(__name__)


class ScanSummary(BaseModel):
    """Counts reported when a scan finishes.

    Attributes:
        new_repos: Records created by this scan.
        updated_repos: Existing records refreshed by this scan.
        total_scanned: Unique repositories discovered.
        cancelled: Whether the scan stopped early on request.
    """

    new_repos: int = 0
    updated_repos: int = 0
    total_scanned: int = 0
    cancelled: bool = False


@dataclass(slots=True)
class DiscoveredRepository:
    """Probe and classification results for one repository path."""

    path: str
    name: str
    remote_url: str | None
    last_commit_sha: str | None
    is_dirty: bool
    suggested_theme: str | None


class ScanOrchestrator:
    """Run scans against the record store and publish progress.

    Only one scan runs at a time, and a new scan is refused within the
    cooldown window of the previous start. Cancellation is cooperative: the
    flag is polled before each scan directory and before each repository
    probe, and a directory is abandoned once its soft timeout elapses.

    Args:
        store: Record store holding scan directories and repositories.
        walker: Discovery walker.
        prober: Repository prober.
        classifier: Theme classifier.
        settings: Scan limits; defaults apply when omitted.
        progress: Progress tracker; a new one is created when omitted.
        clock: Monotonic clock used for the cooldown and soft timeouts.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        walker: RepositoryWalker | None = None,
        prober: RepositoryProber | None = None,
        classifier: ThemeClassifier | None = None,
        settings: ScanSettings | None = None,
        progress: ScanProgressTracker | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._settings = settings or ScanSettings()
        self._walker = walker or RepositoryWalker(
            max_depth=self._settings.max_depth,
            skip_directories=self._settings.skip_directories,
        )
        self._prober = prober or RepositoryProber(
            timeout=self._settings.git_timeout_seconds,
            readme_max_bytes=self._settings.readme_max_bytes,
        )
        self._classifier = classifier or ThemeClassifier()
        self._progress = progress or ScanProgressTracker()
        self._clock = clock
        self._last_started: float | None = None

    @property
    def progress(self) -> ScanProgressTracker:
        """Return the tracker publishing this orchestrator's progress."""
        return self._progress

    def start_scan(self) -> ActionResult[ScanSummary]:
        """Scan every enabled directory and upsert the repositories found.

        Returns:
            ActionResult[ScanSummary]: Counts on success; a recoverable error
            when a scan is running, the cooldown is active, no directories are
            enabled, or the scan fails.
        """
        if self._progress.is_scanning:
            return ActionResult.fail("A scan is already in progress")

        now = self._clock()
        cooldown = self._settings.cooldown_seconds
        if self._last_started is not None and now - self._last_started < cooldown:
            wait = math.ceil(cooldown - (now - self._last_started))
            return ActionResult.fail(f"Please wait {wait} seconds before scanning again")
        self._last_started = now

        directories = self._store.list_scan_directories(enabled_only=True)
        if not directories:
            return ActionResult.fail("No scan directories configured. Add directories in Settings.")

        self._progress.start(len(directories))
        try:
            discovered = self.discover(directories)
            summary = self._persist(discovered)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            LOGGER.exception("Scan failed")
            self._progress.fail(message)
            return ActionResult.fail(message)

        if self._progress.is_cancelled:
            summary.cancelled = True
            LOGGER.info("Scan cancelled after %s repositories", summary.total_scanned)
            return ActionResult.ok(
                summary,
                message=(
                    f"Scan cancelled: found {summary.new_repos} new repositories, "
                    f"updated {summary.updated_repos}"
                ),
            )

        self._progress.complete(summary.total_scanned)
        return ActionResult.ok(
            summary,
            message=(
                f"Found {summary.new_repos} new repositories, updated {summary.updated_repos}"
            ),
        )

    def stop_scan(self) -> ActionResult[None]:
        """Request cancellation of the running scan."""
        if not self._progress.cancel():
            return ActionResult.fail("No scan is currently in progress")
        return ActionResult.ok(message="Scan stopped")

    def discover(self, directories: Sequence[ScanDirectory]) -> list[DiscoveredRepository]:
        """Walk, probe, and classify ``directories`` in order.

        Paths are deduplicated case-insensitively; the first occurrence wins.
        """
        seen: set[str] = set()
        discovered: list[DiscoveredRepository] = []

        for index, directory in enumerate(directories):
            if self._progress.is_cancelled:
                break
            self._progress.update(current_directory=directory.path)
            should_stop = self._directory_budget(directory.path)

            for step in self._walker.walk(
                directory.path, self._settings.max_depth, should_stop=should_stop
            ):
                if not step.is_found:
                    continue
                key = path_key(step.path)
                if key in seen:
                    continue
                seen.add(key)
                discovered.append(self.inspect(step.path))

            self._progress.update(
                current_directory_index=index + 1, repos_found=len(discovered)
            )

        return discovered

    def _directory_budget(self, path: str) -> Callable[[], bool]:
        """Return a walker stop check for cancellation and the soft timeout."""
        timeout = self._settings.directory_timeout_seconds
        deadline = self._clock() + timeout

        def should_stop() -> bool:
            if self._progress.is_cancelled:
                return True
            if self._clock() > deadline:
                LOGGER.warning("Abandoning %s after %.0fs", path, timeout)
                return True
            return False

        return should_stop

    def inspect(self, path: str) -> DiscoveredRepository:
        """Probe and classify a single repository."""
        report = self._prober.probe(path)
        for name, reason in report.skipped().items():
            LOGGER.debug("%s probe skipped for %s: %s", name, path, reason)
        signals = self._prober.collect_signals(path, remote_url=report.remote_url)
        return DiscoveredRepository(
            path=normalize(path),
            name=last_segment(path),
            remote_url=report.remote_url,
            last_commit_sha=report.last_commit_sha,
            is_dirty=report.is_dirty,
            suggested_theme=self._classifier.classify(signals),
        )

    def refresh_repository(self, repo_id: int) -> ActionResult[RepositoryRecord]:
        """Re-probe one repository at its current location."""
        record = self._store.get_repository(repo_id)
        if record is None:
            return ActionResult.fail("Repository not found")

        path = record.current_path
        if not os.path.isdir(path):
            return ActionResult.fail(
                "Could not access repository. It may have been moved or deleted."
            )

        report = self._prober.probe(path)
        updated = self._store.update_repository(
            repo_id,
            remote_url=report.remote_url,
            last_commit_sha=report.last_commit_sha,
            is_dirty=report.is_dirty,
        )
        return ActionResult.ok(updated, message="Repository status refreshed")

    def _persist(self, discovered: Sequence[DiscoveredRepository]) -> ScanSummary:
        summary = ScanSummary(total_scanned=len(discovered))
        for item in discovered:
            existing = self._store.find_repository_by_path(item.path)
            if existing is not None:
                changes: dict[str, object] = {
                    "remote_url": item.remote_url,
                    "last_commit_sha": item.last_commit_sha,
                    "is_dirty": item.is_dirty,
                }
                if not existing.theme and item.suggested_theme:
                    changes["theme"] = item.suggested_theme
                self._store.update_repository(existing.id, **changes)
                summary.updated_repos += 1
            else:
                self._store.create_repository(
                    name=item.name,
                    original_path=item.path,
                    remote_url=item.remote_url,
                    last_commit_sha=item.last_commit_sha,
                    is_dirty=item.is_dirty,
                    theme=item.suggested_theme,
                )
                summary.new_repos += 1
        return summary


__all__ = ["ScanOrchestrator", "ScanSummary", "DiscoveredRepository"]
