"""Execute approved move previews."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Callable, Iterable, Sequence

from reporg import paths
from reporg.discovery import RepositoryProber
from reporg.state import RecordStore, TriageStatus, path_key

from .models import MoveBatchResult, MoveOptions, MovePreviewEntry, MoveResult

LOGGER = logging.getLogger(__name__)

INVALIDATED_VIEWS = ("repositories", "triage", "dashboard")

InvalidationHook = Callable[[Sequence[str]], None]


class MoveExecutor:
    """Relocate repositories on disk and record their new location.

    Entries run one at a time; a failure is recorded against that entry and
    the batch continues. No undo log is kept.

    Args:
        store: Record store updated after each successful move.
        prober: Prober used to write git bundles when backups are requested.
        on_invalidate: Called once per executed batch with the names of views
            whose cached data is now stale.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        prober: RepositoryProber | None = None,
        on_invalidate: InvalidationHook | None = None,
    ) -> None:
        self._store = store
        self._prober = prober or RepositoryProber()
        self._on_invalidate = on_invalidate

    def execute(
        self,
        entries: Iterable[MovePreviewEntry],
        options: MoveOptions | None = None,
        *,
        backup_destination: str | None = None,
        organization_root: str | None = None,
    ) -> MoveBatchResult:
        """Execute every executable entry in order.

        Entries with conflicts or no target are dropped before execution and
        do not appear in the results.

        Args:
            entries: Preview entries, usually from :class:`MovePlanner`.
            options: Conflict policy and backup flag.
            backup_destination: Directory receiving git bundles when
                ``options.create_backup`` is set.
            organization_root: When given, entries whose target resolves
                outside this directory fail without touching the disk.

        Returns:
            MoveBatchResult: Success and failure counts with per-entry results.
        """
        options = options or MoveOptions()
        executable = [entry for entry in entries if entry.is_executable]
        batch = MoveBatchResult()
        if not executable:
            return batch

        if options.create_backup and not backup_destination:
            LOGGER.warning("Backup requested but no backup destination is configured")

        for entry in executable:
            result = self._execute_entry(entry, options, backup_destination, organization_root)
            batch.results.append(result)
            if result.success:
                batch.successful += 1
            else:
                batch.failed += 1

        if self._on_invalidate is not None:
            self._on_invalidate(INVALIDATED_VIEWS)
        return batch

    def _execute_entry(
        self,
        entry: MovePreviewEntry,
        options: MoveOptions,
        backup_destination: str | None,
        organization_root: str | None,
    ) -> MoveResult:
        try:
            if organization_root and not paths.is_inside_root(entry.target, organization_root):
                LOGGER.warning("Refusing to move %s outside %s", entry.target, organization_root)
                error: str | None = "Target is outside the organization root"
            else:
                error = self._relocate(entry, options, backup_destination)
        except Exception as exc:  # one failed entry must not abort the batch
            LOGGER.warning("Move of %s to %s failed: %s", entry.source, entry.target, exc)
            error = str(exc) or "Move failed"
        return MoveResult(
            success=error is None,
            repo_id=entry.repo_id,
            repo_name=entry.repo_name,
            source=entry.source,
            target=entry.target,
            error=error,
        )

    def _relocate(
        self,
        entry: MovePreviewEntry,
        options: MoveOptions,
        backup_destination: str | None,
    ) -> str | None:
        source = paths.normalize(entry.source)
        target = paths.normalize(entry.target)

        if path_key(source) == path_key(target):
            if not os.path.isdir(source):
                return "Source directory not found"
            self._record_move(entry.repo_id, target)
            return None

        os.makedirs(paths.parent_of(target), exist_ok=True)

        if not os.path.isdir(source):
            return "Source directory not found"

        if os.path.lexists(target):
            if options.handle_conflicts == "skip":
                return "Target already exists (skipped)"
            if options.handle_conflicts == "fail":
                return "Target already exists"
            LOGGER.warning("Target %s appeared after preview; relying on planned name", target)

        if options.create_backup and backup_destination:
            self._prober.create_bundle(source, backup_destination)

        if paths.same_volume(source, target):
            os.rename(source, target)
            self._record_move(entry.repo_id, target)
        else:
            shutil.copytree(source, target, symlinks=True)
            # the copy is complete; the record follows it even if cleanup fails
            self._record_move(entry.repo_id, target)
            try:
                shutil.rmtree(source)
            except OSError as exc:
                LOGGER.warning(
                    "Copied %s to %s but could not remove the source: %s", source, target, exc
                )
                return f"Copied to {target} but could not remove {source}: {exc}"

        LOGGER.info("Moved %s to %s", source, target)
        return None

    def _record_move(self, repo_id: int, target: str) -> None:
        record = self._store.require_repository(repo_id)
        if record.triage_status is TriageStatus.AUTO and record.physical_path == target:
            return
        self._store.update_repository(
            repo_id, physical_path=target, triage_status=TriageStatus.AUTO
        )


__all__ = ["MoveExecutor", "INVALIDATED_VIEWS", "InvalidationHook"]
