"""JSON-backed record store for repositories, scan directories, themes, and settings."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from reporg.paths import normalize

from .errors import DuplicateRecordError, RecordNotFoundError, StoreError
from .models import (
    DEFAULT_THEME_COLOR,
    RepositoryRecord,
    ScanDirectory,
    Settings,
    StoreSnapshot,
    Theme,
    TriageStatus,
)

LOGGER = logging.getLogger(__name__)

_REPOSITORY_FIELDS = {
    "name",
    "physical_path",
    "remote_url",
    "last_commit_sha",
    "is_dirty",
    "theme",
    "triage_status",
}
_SCAN_DIRECTORY_FIELDS = {"path", "is_wsl", "enabled"}
_THEME_FIELDS = {"name", "color", "description"}
_SETTINGS_FIELDS = {"organization_root", "auto_triage_enabled", "backup_destination"}


def path_key(path: str) -> str:
    """Return the case-insensitive lookup key for a stored path."""
    return normalize(path).rstrip("/").lower()


class RecordStore:
    """Persist reporg records in a single JSON document.

    When ``path`` is None the store lives in memory only, which is what the
    test suite and one-shot tooling use. Every mutation rewrites the file
    through a temporary sibling so a crash never leaves a truncated store.
    Returned models are copies; mutate records through the ``update_*``
    methods.
    """

    def __init__(self, path: Path | None = None) -> None:
        """Open the store, loading existing data when the file is present.

        Args:
            path: JSON file backing the store, or None for an in-memory store.

        Raises:
            StoreError: If the existing file cannot be parsed.
        """
        self._path = path.expanduser() if path is not None else None
        self._repositories: dict[int, RepositoryRecord] = {}
        self._scan_directories: dict[int, ScanDirectory] = {}
        self._themes: dict[int, Theme] = {}
        self._settings: Settings | None = None
        self._next_ids: dict[str, int] = {"repositories": 1, "scan_directories": 1, "themes": 1}
        self._load()

    @property
    def path(self) -> Path | None:
        """Return the backing file, if any."""
        return self._path

    # Repositories -----------------------------------------------------

    def create_repository(
        self,
        *,
        name: str,
        original_path: str,
        remote_url: str | None = None,
        last_commit_sha: str | None = None,
        is_dirty: bool = True,
        theme: str | None = None,
        triage_status: TriageStatus = TriageStatus.PENDING,
    ) -> RepositoryRecord:
        """Insert a new repository record.

        Raises:
            DuplicateRecordError: If a record already tracks ``original_path``.
        """
        stored_path = normalize(original_path)
        if self._find_repository(stored_path) is not None:
            raise DuplicateRecordError(f"Repository already tracked: {stored_path}")

        record = RepositoryRecord(
            id=self._allocate("repositories"),
            name=name,
            original_path=stored_path,
            remote_url=remote_url,
            last_commit_sha=last_commit_sha,
            is_dirty=is_dirty,
            theme=theme,
            triage_status=triage_status,
        )
        self._repositories[record.id] = record
        self._save()
        LOGGER.debug("Created repository record %s for %s", record.id, stored_path)
        return record.model_copy(deep=True)

    def get_repository(self, repo_id: int) -> Optional[RepositoryRecord]:
        """Return a repository by id, or None."""
        record = self._repositories.get(repo_id)
        return record.model_copy(deep=True) if record is not None else None

    def require_repository(self, repo_id: int) -> RepositoryRecord:
        """Return a repository by id.

        Raises:
            RecordNotFoundError: If no record has ``repo_id``.
        """
        record = self.get_repository(repo_id)
        if record is None:
            raise RecordNotFoundError("Repository not found")
        return record

    def find_repository_by_path(self, path: str) -> Optional[RepositoryRecord]:
        """Return the record whose original or physical path matches ``path``."""
        record = self._find_repository(path)
        return record.model_copy(deep=True) if record is not None else None

    def list_repositories(
        self,
        *,
        status: TriageStatus | None = None,
        theme: str | None = None,
        search: str | None = None,
        is_dirty: bool | None = None,
    ) -> list[RepositoryRecord]:
        """Return repositories matching every supplied filter, ordered by status then name."""
        needle = search.lower() if search else None
        matches: list[RepositoryRecord] = []
        for record in self._repositories.values():
            if status is not None and record.triage_status is not status:
                continue
            if theme is not None and record.theme != theme:
                continue
            if is_dirty is not None and record.is_dirty != is_dirty:
                continue
            if needle and not any(
                needle in (value or "").lower()
                for value in (record.name, record.original_path, record.remote_url)
            ):
                continue
            matches.append(record.model_copy(deep=True))
        matches.sort(key=lambda item: (item.triage_status.value, item.name.lower(), item.id))
        return matches

    def update_repository(self, repo_id: int, **changes: Any) -> RepositoryRecord:
        """Apply ``changes`` to a repository and persist the result.

        Raises:
            RecordNotFoundError: If no record has ``repo_id``.
            StoreError: If an unknown field is supplied.
            pydantic.ValidationError: If the updated record is invalid.
        """
        current = self._repositories.get(repo_id)
        if current is None:
            raise RecordNotFoundError("Repository not found")
        self._check_fields(changes, _REPOSITORY_FIELDS, "repository")
        if changes.get("physical_path"):
            changes["physical_path"] = normalize(changes["physical_path"])

        payload = current.model_dump()
        payload.update(changes)
        payload["updated_at"] = datetime.now(timezone.utc)
        updated = RepositoryRecord.model_validate(payload)
        self._repositories[repo_id] = updated
        self._save()
        return updated.model_copy(deep=True)

    def delete_repository(self, repo_id: int) -> RepositoryRecord:
        """Remove a repository record; files on disk are untouched."""
        record = self._repositories.pop(repo_id, None)
        if record is None:
            raise RecordNotFoundError("Repository not found")
        self._save()
        return record

    def repository_counts(self) -> dict[str, int]:
        """Return totals per triage status plus the dirty count."""
        counts = {"total": len(self._repositories)}
        for status in TriageStatus:
            counts[status.value] = sum(
                1 for record in self._repositories.values() if record.triage_status is status
            )
        counts["dirty"] = sum(1 for record in self._repositories.values() if record.is_dirty)
        return counts

    # Scan directories -------------------------------------------------

    def add_scan_directory(self, path: str, *, is_wsl: bool = False) -> ScanDirectory:
        """Register a scan directory.

        Raises:
            DuplicateRecordError: If ``path`` is already configured.
        """
        if self._find_scan_directory(path) is not None:
            raise DuplicateRecordError("This directory is already configured")
        directory = ScanDirectory(
            id=self._allocate("scan_directories"), path=path, is_wsl=is_wsl, enabled=True
        )
        self._scan_directories[directory.id] = directory
        self._save()
        return directory.model_copy(deep=True)

    def list_scan_directories(self, *, enabled_only: bool = False) -> list[ScanDirectory]:
        """Return scan directories in the order they were added."""
        return [
            directory.model_copy(deep=True)
            for directory in self._scan_directories.values()
            if directory.enabled or not enabled_only
        ]

    def get_scan_directory(self, directory_id: int) -> Optional[ScanDirectory]:
        """Return a scan directory by id, or None."""
        directory = self._scan_directories.get(directory_id)
        return directory.model_copy(deep=True) if directory is not None else None

    def update_scan_directory(self, directory_id: int, **changes: Any) -> ScanDirectory:
        """Apply ``changes`` to a scan directory."""
        current = self._scan_directories.get(directory_id)
        if current is None:
            raise RecordNotFoundError("Scan directory not found")
        self._check_fields(changes, _SCAN_DIRECTORY_FIELDS, "scan directory")
        if "path" in changes:
            other = self._find_scan_directory(changes["path"])
            if other is not None and other.id != directory_id:
                raise DuplicateRecordError("This directory is already configured")

        updated = ScanDirectory.model_validate({**current.model_dump(), **changes})
        self._scan_directories[directory_id] = updated
        self._save()
        return updated.model_copy(deep=True)

    def remove_scan_directory(self, directory_id: int) -> ScanDirectory:
        """Remove a scan directory."""
        directory = self._scan_directories.pop(directory_id, None)
        if directory is None:
            raise RecordNotFoundError("Scan directory not found")
        self._save()
        return directory

    # Themes -----------------------------------------------------------

    def create_theme(
        self, name: str, *, color: str | None = None, description: str | None = None
    ) -> Theme:
        """Create a theme.

        Raises:
            DuplicateRecordError: If a theme called ``name`` exists.
            pydantic.ValidationError: If the name, color, or description is invalid.
        """
        theme = Theme(
            id=self._next_ids["themes"],
            name=name,
            color=color or DEFAULT_THEME_COLOR,
            description=description,
        )
        if self._find_theme(name) is not None:
            raise DuplicateRecordError("A theme with this name already exists")
        self._allocate("themes")
        self._themes[theme.id] = theme
        self._save()
        return theme.model_copy(deep=True)

    def create_themes(self, definitions: Iterable[dict[str, str]]) -> list[Theme]:
        """Create several themes in one write."""
        created: list[Theme] = []
        for definition in definitions:
            theme = Theme(id=self._allocate("themes"), **definition)
            if self._find_theme(theme.name) is not None:
                raise DuplicateRecordError("A theme with this name already exists")
            self._themes[theme.id] = theme
            created.append(theme.model_copy(deep=True))
        self._save()
        return created

    def list_themes(self) -> list[Theme]:
        """Return all themes ordered by name."""
        return sorted(
            (theme.model_copy(deep=True) for theme in self._themes.values()),
            key=lambda theme: theme.name,
        )

    def get_theme(self, theme_id: int) -> Optional[Theme]:
        """Return a theme by id, or None."""
        theme = self._themes.get(theme_id)
        return theme.model_copy(deep=True) if theme is not None else None

    def get_theme_by_name(self, name: str) -> Optional[Theme]:
        """Return a theme by name, or None."""
        theme = self._find_theme(name)
        return theme.model_copy(deep=True) if theme is not None else None

    def update_theme(self, theme_id: int, **changes: Any) -> Theme:
        """Apply ``changes`` to a theme, keeping names unique."""
        current = self._themes.get(theme_id)
        if current is None:
            raise RecordNotFoundError("Theme not found")
        self._check_fields(changes, _THEME_FIELDS, "theme")
        updated = Theme.model_validate({**current.model_dump(), **changes})
        other = self._find_theme(updated.name)
        if other is not None and other.id != theme_id:
            raise DuplicateRecordError("A theme with this name already exists")
        self._themes[theme_id] = updated
        self._save()
        return updated.model_copy(deep=True)

    def delete_theme(self, theme_id: int) -> Theme:
        """Remove a theme."""
        theme = self._themes.pop(theme_id, None)
        if theme is None:
            raise RecordNotFoundError("Theme not found")
        self._save()
        return theme

    # Settings ---------------------------------------------------------

    def get_settings(self) -> Settings:
        """Return the settings singleton, creating defaults on first access."""
        if self._settings is None:
            self._settings = Settings()
            self._save()
        return self._settings.model_copy(deep=True)

    def update_settings(self, **changes: Any) -> Settings:
        """Apply ``changes`` to the settings singleton."""
        self._check_fields(changes, _SETTINGS_FIELDS, "settings")
        current = self._settings or Settings()
        self._settings = Settings.model_validate({**current.model_dump(), **changes})
        self._save()
        return self._settings.model_copy(deep=True)

    # Internal helpers -------------------------------------------------

    def _allocate(self, collection: str) -> int:
        next_id = self._next_ids.get(collection, 1)
        self._next_ids[collection] = next_id + 1
        return next_id

    def _find_repository(self, path: str) -> RepositoryRecord | None:
        key = path_key(path)
        for record in self._repositories.values():
            if path_key(record.original_path) == key:
                return record
            if record.physical_path and path_key(record.physical_path) == key:
                return record
        return None

    def _find_scan_directory(self, path: str) -> ScanDirectory | None:
        key = path_key(path)
        for directory in self._scan_directories.values():
            if path_key(directory.path) == key:
                return directory
        return None

    def _find_theme(self, name: str) -> Theme | None:
        for theme in self._themes.values():
            if theme.name == name:
                return theme
        return None

    @staticmethod
    def _check_fields(changes: dict[str, Any], allowed: set[str], kind: str) -> None:
        unknown = sorted(set(changes) - allowed)
        if unknown:
            raise StoreError(f"Unknown {kind} field(s): {', '.join(unknown)}")

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            snapshot = StoreSnapshot.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StoreError(f"Invalid record store data in {self._path}: {exc}") from exc

        self._repositories = {record.id: record for record in snapshot.repositories}
        self._scan_directories = {item.id: item for item in snapshot.scan_directories}
        self._themes = {theme.id: theme for theme in snapshot.themes}
        self._settings = snapshot.settings
        for collection, items in (
            ("repositories", self._repositories),
            ("scan_directories", self._scan_directories),
            ("themes", self._themes),
        ):
            floor = max(items, default=0) + 1
            self._next_ids[collection] = max(snapshot.next_ids.get(collection, 1), floor)

    def _save(self) -> None:
        if self._path is None:
            return
        snapshot = StoreSnapshot(
            repositories=list(self._repositories.values()),
            scan_directories=list(self._scan_directories.values()),
            themes=list(self._themes.values()),
            settings=self._settings,
            next_ids=dict(self._next_ids),
        )
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_name(self._path.name + ".tmp")
        temp_path.write_text(
            json.dumps(snapshot.model_dump(mode="json"), indent=2), encoding="utf-8"
        )
        os.replace(temp_path, self._path)


__all__ = [
    "RecordStore",
    "RepositoryRecord",
    "ScanDirectory",
    "Theme",
    "Settings",
    "TriageStatus",
    "StoreError",
    "RecordNotFoundError",
    "DuplicateRecordError",
    "path_key",
]
