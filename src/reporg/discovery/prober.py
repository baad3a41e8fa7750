"""Git and content probes for a single repository."""

from __future__ import annotations

import codecs
import json
import logging
import os
import re
import subprocess
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable

from reporg.classification.models import RepoSignals
from reporg.paths import join_paths, last_segment, normalize

from .models import ProbeOutcome, ProbeReport

LOGGER = logging.getLogger(__name__)

README_CANDIDATES = ("README.md", "README", "readme.md", "README.rst", "README.txt")
MANIFEST_NAME = "package.json"

_GITHUB_PATTERNS = (
    re.compile(r"git@github\.com:([^/]+)/([^/]+?)(?:\.git)?/?$"),
    re.compile(r"github\.com[:/]([^/]+)/([^/]+?)(?:\.git)?/?$"),
)


class GitCommandError(RuntimeError):
    """Raised when a git subprocess exits with a non-zero status."""


class RepositoryProber:
    """Collect version-control state and content signals from a repository.

    Args:
        git_executable: Name or path of the git binary.
        timeout: Seconds allowed for each git subprocess.
        readme_max_bytes: Maximum number of README bytes read; a multi-byte
            character cut at the limit is dropped.
        max_workers: Thread pool size used to run git probes concurrently.
    """

    def __init__(
        self,
        *,
        git_executable: str = "git",
        timeout: float = 10.0,
        readme_max_bytes: int = 4096,
        max_workers: int = 4,
    ) -> None:
        self.git_executable = git_executable
        self.timeout = timeout
        self.readme_max_bytes = readme_max_bytes
        self.max_workers = max_workers

    def run_git(self, path: str, *args: str) -> str:
        """Run a git command inside ``path`` and return its stdout.

        Raises:
            GitCommandError: If git exits with a non-zero status.
            OSError: If git cannot be executed.
            subprocess.TimeoutExpired: If git exceeds the timeout.
        """
        result = subprocess.run(
            [self.git_executable, *args],
            cwd=path,
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=False,
        )
        if result.returncode != 0:
            message = result.stderr.strip() or f"exit status {result.returncode}"
            raise GitCommandError(f"git {' '.join(args)} failed: {message}")
        return result.stdout

    # Individual probes ------------------------------------------------

    def remote_url(self, path: str) -> str | None:
        """Return the fetch URL of ``origin``, else of the first remote listed."""
        output = self.run_git(path, "remote", "-v")
        remotes: list[tuple[str, str]] = []
        for line in output.splitlines():
            parts = line.split()
            if len(parts) < 2:
                continue
            if len(parts) >= 3 and parts[2] != "(fetch)":
                continue
            remotes.append((parts[0], parts[1]))
        for name, url in remotes:
            if name == "origin":
                return url
        return remotes[0][1] if remotes else None

    def last_commit_sha(self, path: str) -> str | None:
        """Return the HEAD commit hash, or None for an empty history."""
        return self.run_git(path, "log", "-1", "--format=%H").strip() or None

    def current_branch(self, path: str) -> str | None:
        """Return the checked-out branch, or None when HEAD is detached."""
        return self.run_git(path, "branch", "--show-current").strip() or None

    def is_dirty(self, path: str) -> bool:
        """Return True when any tracked, staged, or untracked change exists."""
        output = self.run_git(path, "status", "--porcelain")
        return any(line.strip() for line in output.splitlines())

    def probe(self, path: str) -> ProbeReport:
        """Run every git probe for ``path`` concurrently and join the results.

        Individual probe failures are recorded as skipped outcomes; this
        method never raises for a broken or unreadable repository.
        """
        probes: dict[str, Callable[[str], Any]] = {
            "remote_url": self.remote_url,
            "last_commit_sha": self.last_commit_sha,
            "branch": self.current_branch,
            "is_dirty": self.is_dirty,
        }
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                name: pool.submit(self._attempt, name, func, path) for name, func in probes.items()
            }
            outcomes = {name: future.result() for name, future in futures.items()}

        return ProbeReport(
            path=normalize(path),
            remote_url=outcomes["remote_url"].value_or(None),
            last_commit_sha=outcomes["last_commit_sha"].value_or(None),
            branch=outcomes["branch"].value_or(None),
            is_dirty=bool(outcomes["is_dirty"].value_or(True)),
            outcomes=outcomes,
        )

    def _attempt(self, name: str, func: Callable[[str], Any], path: str) -> ProbeOutcome:
        try:
            return ProbeOutcome.success(func(path))
        except Exception as exc:  # probe failures must not abort a scan
            LOGGER.debug("Probe %s failed for %s: %s", name, path, exc)
            return ProbeOutcome.skip(f"{type(exc).__name__}: {exc}")

    # Content signals --------------------------------------------------

    def is_repository_root(self, path: str) -> bool:
        """Return True when ``path`` holds a ``.git`` directory or gitfile."""
        return os.path.exists(join_paths(path, ".git"))

    def list_top_level_files(self, path: str) -> list[str]:
        """Return sorted entry names directly under ``path``; empty on error."""
        try:
            return sorted(os.listdir(path))
        except OSError as exc:
            LOGGER.debug("Unable to list %s: %s", path, exc)
            return []

    def read_manifest(self, path: str) -> dict[str, Any] | None:
        """Return parsed ``package.json`` contents, or None when absent or invalid."""
        manifest_path = join_paths(path, MANIFEST_NAME)
        try:
            with open(manifest_path, encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def read_readme(self, path: str) -> str | None:
        """Return the start of the first README variant found, capped in size."""
        for candidate in README_CANDIDATES:
            readme_path = join_paths(path, candidate)
            if not os.path.isfile(readme_path):
                continue
            try:
                with open(readme_path, "rb") as handle:
                    head = handle.read(self.readme_max_bytes)
            except OSError as exc:
                LOGGER.debug("Unable to read %s: %s", readme_path, exc)
                continue
            return _decode_prefix(head)
        return None

    def collect_signals(self, path: str, *, remote_url: str | None = None) -> RepoSignals:
        """Gather the classifier inputs for ``path``."""
        manifest = self.read_manifest(path)
        description = manifest.get("description") if manifest else None
        return RepoSignals(
            files=self.list_top_level_files(path),
            package_json=manifest,
            readme=self.read_readme(path),
            remote_url=remote_url,
            description=description if isinstance(description, str) else None,
        )

    # Backups ----------------------------------------------------------

    def create_bundle(self, path: str, destination_dir: str) -> str:
        """Write a git bundle of every ref in ``path`` into ``destination_dir``.

        Returns:
            str: Path of the bundle file.

        Raises:
            GitCommandError: If git cannot create the bundle.
        """
        os.makedirs(destination_dir, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        bundle_path = join_paths(destination_dir, f"{last_segment(path)}-{stamp}.bundle")
        self.run_git(path, "bundle", "create", bundle_path, "--all")
        LOGGER.info("Created bundle %s", bundle_path)
        return bundle_path


def _decode_prefix(data: bytes) -> str:
    """Decode UTF-8 ``data``, dropping a trailing character cut by the size cap."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    return decoder.decode(data, final=False)


def parse_github_url(url: str) -> tuple[str, str] | None:
    """Return ``(owner, repo)`` for an HTTPS or SSH GitHub URL."""
    for pattern in _GITHUB_PATTERNS:
        match = pattern.search(url.strip())
        if match:
            return match.group(1), match.group(2)
    return None


def is_github_remote(url: str | None) -> bool:
    """Return True when ``url`` points at github.com."""
    return url is not None and "github.com" in url


__all__ = [
    "GitCommandError",
    "RepositoryProber",
    "README_CANDIDATES",
    "parse_github_url",
    "is_github_remote",
]
