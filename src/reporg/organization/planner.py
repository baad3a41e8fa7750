"""Compute conflict-aware move previews."""

from __future__ import annotations

import logging
import os
from typing import Iterable

from reporg.paths import (
    MAX_PATH_LENGTH,
    PathConflictError,
    join_paths,
    last_segment,
    normalize,
    resolve_conflict,
    same_volume,
    strip_trailing_separator,
)
from reporg.state import RecordStore, path_key

from .models import MovePreviewEntry

LOGGER = logging.getLogger(__name__)

NO_THEME = "No theme assigned"
NOT_FOUND = "Repository not found"
ALREADY_ORGANIZED = "Already organized"
DIRTY_WARNING = "Repository has uncommitted changes"
CROSS_VOLUME_WARNING = "Cross-volume move (will copy and delete)"


class MovePlanner:
    """Plan moves of repositories into ``<root>/<theme>/<name>``.

    Planning only reads the store and lists the organization root; nothing is
    modified.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def preview(self, repo_ids: Iterable[int], organization_root: str) -> list[MovePreviewEntry]:
        """Return one preview entry per requested id, in request order.

        Targets already present under the root, and targets claimed earlier in
        the same batch, are suffixed deterministically and flagged with a
        warning.

        Args:
            repo_ids: Repository identifiers to plan.
            organization_root: Destination root directory.

        Returns:
            list[MovePreviewEntry]: Entries mapped 1:1 to ``repo_ids``.
        """
        root = strip_trailing_separator(normalize(organization_root))
        taken = self.list_existing_targets(root)
        entries: list[MovePreviewEntry] = []

        for repo_id in repo_ids:
            record = self._store.get_repository(repo_id)
            if record is None:
                entries.append(MovePreviewEntry(repo_id=repo_id, conflicts=[NO_THEME, NOT_FOUND]))
                continue
            if not record.theme:
                entries.append(
                    MovePreviewEntry(
                        repo_id=record.id,
                        repo_name=record.name,
                        source=record.current_path,
                        conflicts=[NO_THEME],
                    )
                )
                continue

            source = record.current_path
            target = join_paths(root, record.theme, record.name)
            conflicts: list[str] = []
            warnings: list[str] = []

            if path_key(source) == path_key(target):
                warnings.append(ALREADY_ORGANIZED)
            else:
                if record.is_dirty:
                    warnings.append(DIRTY_WARNING)
                if not same_volume(source, target):
                    warnings.append(CROSS_VOLUME_WARNING)
                if path_key(target) in taken:
                    try:
                        resolved = resolve_conflict(target, taken)
                    except PathConflictError as exc:
                        conflicts.append(str(exc))
                        resolved = ""
                    else:
                        warnings.append(f"Path conflict: will use {last_segment(resolved)}")
                    target = resolved
                if len(target) > MAX_PATH_LENGTH:
                    warnings.append(f"Target path exceeds {MAX_PATH_LENGTH} characters")

            if target:
                taken.add(path_key(target))
            entries.append(
                MovePreviewEntry(
                    repo_id=record.id,
                    repo_name=record.name,
                    source=source,
                    target=target,
                    theme=record.theme,
                    conflicts=conflicts,
                    warnings=warnings,
                )
            )

        return entries

    @staticmethod
    def list_existing_targets(root: str) -> set[str]:
        """Return lower-cased ``root/theme/name`` directories that already exist.

        A missing or unreadable root yields an empty set.
        """
        existing: set[str] = set()
        try:
            with os.scandir(root) as themes:
                theme_dirs = [entry.name for entry in themes if entry.is_dir()]
        except OSError:
            return existing

        for theme in theme_dirs:
            theme_path = join_paths(root, theme)
            try:
                with os.scandir(theme_path) as repos:
                    for entry in repos:
                        if entry.is_dir():
                            existing.add(path_key(join_paths(theme_path, entry.name)))
            except OSError as exc:
                LOGGER.debug("Unable to list %s: %s", theme_path, exc)
        return existing


__all__ = ["MovePlanner", "NO_THEME", "NOT_FOUND", "ALREADY_ORGANIZED"]
