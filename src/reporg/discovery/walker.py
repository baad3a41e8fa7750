"""Breadth-first discovery of git working trees."""

from __future__ import annotations

import logging
import os
from collections import deque
from typing import Callable, Iterable, Iterator

from reporg.paths import join_paths, normalize, strip_trailing_separator

from .models import WalkStep

LOGGER = logging.getLogger(__name__)

GIT_MARKER = ".git"

NOISE_DIRECTORIES = frozenset(
    {
        "node_modules",
        "vendor",
        "__pycache__",
        "venv",
        "env",
        "dist",
        "build",
        "out",
        "target",
        "coverage",
        "bower_components",
        "site-packages",
    }
)


class RepositoryWalker:
    """Walk directory trees and report every git working tree found.

    A directory holding a ``.git`` entry (directory or gitfile) is reported
    and never descended into, so nested repositories are not detected.
    Dot-directories and dependency, build, and virtualenv folders are skipped.
    """

    def __init__(self, *, max_depth: int = 5, skip_directories: Iterable[str] = ()) -> None:
        self.max_depth = max_depth
        self.skip_directories = NOISE_DIRECTORIES | frozenset(skip_directories)

    def walk(
        self,
        root: str,
        max_depth: int | None = None,
        *,
        should_stop: Callable[[], bool] | None = None,
    ) -> Iterator[WalkStep]:
        """Yield a step for each repository or unreadable directory under ``root``.

        Each call starts a fresh traversal. The root sits at depth 0 and
        directories deeper than ``max_depth`` are never listed.

        Args:
            root: Directory to search.
            max_depth: Override for the configured depth limit.
            should_stop: Polled before each directory is listed; the walk ends
                as soon as it returns True.

        Yields:
            WalkStep: ``found`` for repository roots, ``skipped`` for directories
            that could not be listed.
        """
        limit = self.max_depth if max_depth is None else max_depth
        queue: deque[tuple[str, int]] = deque([(strip_trailing_separator(normalize(root)), 0)])

        while queue:
            current, depth = queue.popleft()
            if should_stop is not None and should_stop():
                LOGGER.debug("Walk of %s stopped before listing %s", root, current)
                return
            try:
                with os.scandir(current) as iterator:
                    entries = sorted(iterator, key=lambda entry: entry.name)
            except OSError as exc:
                reason = exc.strerror or type(exc).__name__
                LOGGER.warning("Skipping unreadable directory %s: %s", current, reason)
                yield WalkStep.skipped(current, reason)
                continue

            if any(entry.name == GIT_MARKER for entry in entries):
                yield WalkStep.found(current)
                continue

            if depth >= limit:
                continue

            for entry in entries:
                if entry.name.startswith(".") or entry.name in self.skip_directories:
                    continue
                try:
                    if not entry.is_dir(follow_symlinks=False):
                        continue
                except OSError:
                    continue
                queue.append((join_paths(current, entry.name), depth + 1))

    def iter_repositories(self, root: str, max_depth: int | None = None) -> Iterator[str]:
        """Yield only the repository paths found under ``root``."""
        for step in self.walk(root, max_depth):
            if step.is_found:
                yield step.path


__all__ = ["RepositoryWalker", "NOISE_DIRECTORIES", "GIT_MARKER"]
