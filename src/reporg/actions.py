"""Action surface shared by the CLI and any other front end.

Every public method returns an :class:`~reporg.results.ActionResult` and
never raises: validation problems, missing records, and unexpected failures
all come back as ``ActionResult(success=False, error=...)``.
"""

from __future__ import annotations

import functools
import logging
import os
from typing import Any, Callable, Iterable, Sequence, TypeVar

from pydantic import ValidationError

from reporg.classification import DEFAULT_THEMES
from reporg.config.models import ReporgConfig
from reporg.organization import (
    MoveBatchResult,
    MoveExecutor,
    MoveOptions,
    MovePlanner,
    MovePreviewEntry,
)
from reporg.organization.executor import InvalidationHook
from reporg.paths import (
    is_system_path,
    is_valid_path,
    is_wsl_form,
    normalize,
    strip_trailing_separator,
)
from reporg.results import ActionResult
from reporg.scan import ScanOrchestrator, ScanProgress, ScanSummary
from reporg.state import (
    RecordStore,
    RepositoryRecord,
    ScanDirectory,
    Settings,
    StoreError,
    Theme,
    TriageStatus,
)
from reporg.state.models import check_theme_name

LOGGER = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., ActionResult[Any]])


def _validation_message(exc: ValidationError, fallback: str) -> str:
    errors = exc.errors()
    if not errors:
        return fallback
    message = str(errors[0].get("msg") or fallback)
    return message.removeprefix("Value error, ")


def reported(fallback: str) -> Callable[[F], F]:
    """Convert exceptions raised by an action into failed results.

    Args:
        fallback: Error text used when the exception carries no message.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> ActionResult[Any]:
            try:
                return func(*args, **kwargs)
            except ValidationError as exc:
                return ActionResult.fail(_validation_message(exc, fallback))
            except (StoreError, ValueError) as exc:
                return ActionResult.fail(str(exc) or fallback)
            except Exception as exc:
                LOGGER.exception("%s", fallback)
                return ActionResult.fail(str(exc) or fallback)

        return wrapper  # type: ignore[return-value]

    return decorator


class ReporgActions:
    """Facade over the record store, scan orchestrator, planner, and executor.

    Args:
        store: Record store.
        config: Loaded configuration; defaults apply when omitted.
        orchestrator: Scan orchestrator; built from ``config`` when omitted.
        planner: Move planner; built from ``store`` when omitted.
        executor: Move executor; built from ``store`` when omitted.
        on_invalidate: Receives the names of views made stale by a mutation.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        config: ReporgConfig | None = None,
        orchestrator: ScanOrchestrator | None = None,
        planner: MovePlanner | None = None,
        executor: MoveExecutor | None = None,
        on_invalidate: InvalidationHook | None = None,
    ) -> None:
        self._store = store
        self._config = config or ReporgConfig()
        self._on_invalidate = on_invalidate
        self._orchestrator = orchestrator or ScanOrchestrator(store, settings=self._config.scan)
        self._planner = planner or MovePlanner(store)
        self._executor = executor or MoveExecutor(store, on_invalidate=on_invalidate)

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def orchestrator(self) -> ScanOrchestrator:
        return self._orchestrator

    # Scanning ---------------------------------------------------------

    @reported("Scan failed")
    def trigger_scan(self) -> ActionResult[ScanSummary]:
        """Start a scan of every enabled scan directory."""
        result = self._orchestrator.start_scan()
        if result.success:
            self._invalidate("repositories", "triage", "dashboard")
        return result

    @reported("Failed to stop scan")
    def stop_scan(self) -> ActionResult[None]:
        """Cancel the running scan."""
        return self._orchestrator.stop_scan()

    @reported("Failed to read scan progress")
    def scan_progress(self) -> ActionResult[ScanProgress]:
        """Return the current scan progress snapshot."""
        return ActionResult.ok(self._orchestrator.progress.snapshot())

    @reported("Failed to refresh status")
    def refresh_repository_status(self, repo_id: int) -> ActionResult[RepositoryRecord]:
        """Re-probe a repository's remote, commit, and dirty state."""
        result = self._orchestrator.refresh_repository(repo_id)
        if result.success:
            self._invalidate("repositories")
        return result

    # Moves ------------------------------------------------------------

    @reported("Failed to generate preview")
    def generate_preview(self, repo_ids: Iterable[int]) -> ActionResult[list[MovePreviewEntry]]:
        """Compute move previews for ``repo_ids``."""
        settings = self._store.get_settings()
        if not settings.organization_root:
            return ActionResult.fail("Organization root not configured. Update Settings first.")

        unique_ids = list(dict.fromkeys(repo_ids))
        if not unique_ids:
            return ActionResult.fail("No repositories selected")
        return ActionResult.ok(self._planner.preview(unique_ids, settings.organization_root))

    @reported("Failed to execute moves")
    def execute_moves(
        self,
        entries: Sequence[MovePreviewEntry],
        options: MoveOptions | None = None,
    ) -> ActionResult[MoveBatchResult]:
        """Execute approved preview entries.

        Partial success is reported as success with per-entry failures in the
        payload; only a batch in which every attempted move failed is reported
        as a failure.
        """
        if not any(entry.is_executable for entry in entries):
            return ActionResult.fail("No valid moves to execute. Resolve conflicts first.")

        if options is None:
            defaults = self._config.organization
            options = MoveOptions(
                handle_conflicts=defaults.handle_conflicts,
                create_backup=defaults.create_backup,
            )
        settings = self._store.get_settings()
        batch = self._executor.execute(
            entries,
            options,
            backup_destination=settings.backup_destination,
            organization_root=settings.organization_root,
        )

        if batch.successful == 0 and batch.failed > 0:
            details = "; ".join(
                f"{result.repo_name or result.repo_id}: {result.error}" for result in batch.results
            )
            return ActionResult.fail(f"All {batch.failed} moves failed: {details}")

        message = f"Moved {batch.successful} repositories"
        if batch.failed:
            message += f", {batch.failed} failed"
        return ActionResult.ok(batch, message=message)

    @reported("Failed to load triage queue")
    def triage_ready(self) -> ActionResult[list[RepositoryRecord]]:
        """Return themed repositories that have not been moved yet."""
        ready = [
            record
            for record in self._store.list_repositories()
            if record.theme
            and record.physical_path is None
            and record.triage_status in (TriageStatus.PENDING, TriageStatus.MANUAL)
        ]
        ready.sort(key=lambda record: (record.theme or "", record.name.lower()))
        return ActionResult.ok(ready)

    # Repositories -----------------------------------------------------

    @reported("Failed to list repositories")
    def repositories(
        self,
        *,
        status: str | None = None,
        theme: str | None = None,
        search: str | None = None,
        is_dirty: bool | None = None,
    ) -> ActionResult[list[RepositoryRecord]]:
        """Return repositories filtered by status, theme, text, or dirty flag."""
        triage = TriageStatus(status) if status and status != "all" else None
        return ActionResult.ok(
            self._store.list_repositories(
                status=triage, theme=theme, search=search, is_dirty=is_dirty
            )
        )

    @reported("Failed to assign theme")
    def assign_theme(self, repo_id: int, theme: str) -> ActionResult[RepositoryRecord]:
        """Assign ``theme`` to a repository and mark it manually triaged.

        Organized repositories keep the ``auto`` status so a later preview can
        move them into the new theme directory. Ignored repositories stay
        ignored until they are reset.
        """
        check_theme_name(theme)
        record = self._store.get_repository(repo_id)
        if record is None:
            return ActionResult.fail("Repository not found")
        updated = self._store.update_repository(
            repo_id, theme=theme, triage_status=self._assigned_status(record)
        )
        self._invalidate("repositories", "triage", "dashboard")
        return ActionResult.ok(updated, message=f'Theme "{theme}" assigned to {record.name}')

    @reported("Failed to assign themes")
    def bulk_assign_theme(self, repo_ids: Iterable[int], theme: str) -> ActionResult[int]:
        """Assign ``theme`` to every existing repository in ``repo_ids``."""
        check_theme_name(theme)
        unique_ids = list(dict.fromkeys(repo_ids))
        if not unique_ids:
            return ActionResult.fail("No repositories selected")

        assigned = 0
        for repo_id in unique_ids:
            record = self._store.get_repository(repo_id)
            if record is None:
                LOGGER.debug("Skipping unknown repository %s during bulk assignment", repo_id)
                continue
            self._store.update_repository(
                repo_id, theme=theme, triage_status=self._assigned_status(record)
            )
            assigned += 1
        self._invalidate("repositories", "triage", "dashboard")
        return ActionResult.ok(assigned, message=f'Theme "{theme}" assigned to {assigned} repositories')

    @reported("Failed to update status")
    def set_triage_status(self, repo_id: int, status: str) -> ActionResult[RepositoryRecord]:
        """Move a repository between the user-controlled triage states."""
        target = TriageStatus(status)
        if target is TriageStatus.AUTO:
            return ActionResult.fail("Status auto is only set by executing a move")
        record = self._store.get_repository(repo_id)
        if record is None:
            return ActionResult.fail("Repository not found")
        if record.triage_status is TriageStatus.AUTO:
            return ActionResult.fail("Organized repositories cannot change triage status")
        updated = self._store.update_repository(repo_id, triage_status=target)
        self._invalidate("repositories", "triage")
        return ActionResult.ok(updated, message=f'Status updated to "{target.value}"')

    def ignore_repository(self, repo_id: int) -> ActionResult[RepositoryRecord]:
        """Mark a repository as ignored."""
        return self.set_triage_status(repo_id, TriageStatus.IGNORED.value)

    @reported("Failed to reset repository")
    def reset_repository(self, repo_id: int) -> ActionResult[RepositoryRecord]:
        """Return an ignored repository to ``pending``."""
        record = self._store.get_repository(repo_id)
        if record is None:
            return ActionResult.fail("Repository not found")
        if record.triage_status is not TriageStatus.IGNORED:
            return ActionResult.fail("Only ignored repositories can be reset")
        updated = self._store.update_repository(repo_id, triage_status=TriageStatus.PENDING)
        self._invalidate("repositories", "triage")
        return ActionResult.ok(updated, message=f"{record.name} returned to pending")

    @reported("Failed to delete repository")
    def delete_repository_record(self, repo_id: int) -> ActionResult[None]:
        """Forget a repository; its files are left in place."""
        self._store.delete_repository(repo_id)
        self._invalidate("repositories", "dashboard")
        return ActionResult.ok(message="Repository removed from database")

    @reported("Failed to count repositories")
    def repository_counts(self) -> ActionResult[dict[str, int]]:
        """Return repository totals by triage status plus the dirty count."""
        return ActionResult.ok(self._store.repository_counts())

    # Settings and scan directories ------------------------------------

    @reported("Failed to load settings")
    def settings(self) -> ActionResult[Settings]:
        """Return the current settings."""
        return ActionResult.ok(self._store.get_settings())

    @reported("Failed to save settings")
    def update_settings(
        self,
        *,
        organization_root: str | None = None,
        auto_triage_enabled: bool | None = None,
        backup_destination: str | None = None,
    ) -> ActionResult[Settings]:
        """Validate and persist settings, creating the organization root if needed."""
        changes: dict[str, Any] = {}
        if organization_root is not None:
            root = self._checked_path(organization_root, "Cannot use system directories")
            try:
                os.makedirs(root, exist_ok=True)
            except OSError:
                return ActionResult.fail(f"Cannot access or create directory: {organization_root}")
            changes["organization_root"] = root
        if backup_destination is not None:
            changes["backup_destination"] = self._checked_path(
                backup_destination, "Cannot use system directories"
            )
        if auto_triage_enabled is not None:
            changes["auto_triage_enabled"] = auto_triage_enabled

        updated = self._store.update_settings(**changes)
        self._invalidate("settings", "dashboard")
        return ActionResult.ok(updated, message="Settings saved")

    @reported("Failed to list scan directories")
    def scan_directories(self) -> ActionResult[list[ScanDirectory]]:
        """Return configured scan directories."""
        return ActionResult.ok(self._store.list_scan_directories())

    @reported("Failed to add scan directory")
    def add_scan_directory(
        self, path: str, *, is_wsl: bool | None = None
    ) -> ActionResult[ScanDirectory]:
        """Register an existing, non-system directory for scanning."""
        stored = self._checked_path(path, "Cannot scan system directories")
        if not os.path.isdir(stored):
            if os.path.exists(stored):
                return ActionResult.fail("Path is not a directory")
            return ActionResult.fail("Directory does not exist or is not accessible")

        directory = self._store.add_scan_directory(
            stored, is_wsl=is_wsl_form(path) if is_wsl is None else is_wsl
        )
        self._invalidate("settings")
        return ActionResult.ok(directory, message="Scan directory added")

    @reported("Failed to remove scan directory")
    def remove_scan_directory(self, directory_id: int) -> ActionResult[None]:
        """Remove a scan directory."""
        self._store.remove_scan_directory(directory_id)
        self._invalidate("settings")
        return ActionResult.ok(message="Scan directory removed")

    @reported("Failed to toggle scan directory")
    def toggle_scan_directory(self, directory_id: int) -> ActionResult[ScanDirectory]:
        """Flip a scan directory between enabled and disabled."""
        directory = self._store.get_scan_directory(directory_id)
        if directory is None:
            return ActionResult.fail("Scan directory not found")
        updated = self._store.update_scan_directory(directory_id, enabled=not directory.enabled)
        self._invalidate("settings")
        message = "Scan directory enabled" if updated.enabled else "Scan directory disabled"
        return ActionResult.ok(updated, message=message)

    @reported("Failed to check setup")
    def is_setup_complete(self) -> ActionResult[bool]:
        """Return True once an organization root and a scan directory exist."""
        settings = self._store.get_settings()
        complete = bool(settings.organization_root and self._store.list_scan_directories())
        return ActionResult.ok(complete)

    # Themes -----------------------------------------------------------

    @reported("Failed to list themes")
    def themes(self) -> ActionResult[list[Theme]]:
        """Return all themes ordered by name."""
        return ActionResult.ok(self._store.list_themes())

    @reported("Failed to create theme")
    def create_theme(
        self, name: str, *, color: str | None = None, description: str | None = None
    ) -> ActionResult[Theme]:
        """Create a theme."""
        theme = self._store.create_theme(name, color=color, description=description)
        self._invalidate("settings", "repositories")
        return ActionResult.ok(theme, message=f'Theme "{theme.name}" created')

    @reported("Failed to update theme")
    def update_theme(self, theme_id: int, **changes: Any) -> ActionResult[Theme]:
        """Update a theme's name, color, or description."""
        theme = self._store.update_theme(
            theme_id, **{key: value for key, value in changes.items() if value is not None}
        )
        self._invalidate("settings", "repositories")
        return ActionResult.ok(theme, message="Theme updated")

    @reported("Failed to delete theme")
    def delete_theme(self, theme_id: int) -> ActionResult[None]:
        """Delete a theme that no repository uses."""
        theme = self._store.get_theme(theme_id)
        if theme is None:
            return ActionResult.fail("Theme not found")
        in_use = len(self._store.list_repositories(theme=theme.name))
        if in_use:
            return ActionResult.fail(f"Cannot delete theme: {in_use} repositories are using it")
        self._store.delete_theme(theme_id)
        self._invalidate("settings")
        return ActionResult.ok(message=f'Theme "{theme.name}" deleted')

    @reported("Failed to create default themes")
    def create_default_themes(self) -> ActionResult[list[Theme]]:
        """Seed the built-in themes into an empty theme table."""
        if self._store.list_themes():
            return ActionResult.fail("Themes already exist")
        created = self._store.create_themes(DEFAULT_THEMES)
        self._invalidate("settings")
        return ActionResult.ok(created, message=f"Created {len(created)} default themes")

    # Internal helpers -------------------------------------------------

    @staticmethod
    def _assigned_status(record: RepositoryRecord) -> TriageStatus:
        # organized and ignored repositories keep their status
        if record.triage_status in (TriageStatus.AUTO, TriageStatus.IGNORED):
            return record.triage_status
        return TriageStatus.MANUAL

    @staticmethod
    def _checked_path(path: str, system_message: str) -> str:
        if not path or len(path) < 3:
            raise ValueError("Path must be at least 3 characters")
        if is_system_path(path):
            raise ValueError(system_message)
        if not is_valid_path(path):
            raise ValueError(f"Invalid path: {path}")
        return strip_trailing_separator(normalize(path))

    def _invalidate(self, *views: str) -> None:
        if self._on_invalidate is not None:
            self._on_invalidate(views)


__all__ = ["ReporgActions", "reported"]
