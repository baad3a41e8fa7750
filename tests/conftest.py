"""Shared pytest fixtures."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable, Mapping

import pytest

from reporg import paths

GIT_IDENTITY = (
    "-c",
    "user.name=reporg tests",
    "-c",
    "user.email=tests@example.com",
    "-c",
    "commit.gpgsign=false",
    "-c",
    "init.defaultBranch=main",
)


def _git(path: Path, *args: str) -> str:
    """Run git in ``path`` with a throwaway identity and return stdout."""
    completed = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=path,
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout


@pytest.fixture
def make_git_repo() -> Callable[..., Path]:
    """Return a factory that creates real git repositories.

    Tests using this fixture are skipped when git is not installed.
    """
    if shutil.which("git") is None:
        pytest.skip("git executable not available")

    def _make(
        path: Path,
        *,
        files: Mapping[str, str] | None = None,
        commit: bool = True,
        remotes: Mapping[str, str] | None = None,
    ) -> Path:
        path.mkdir(parents=True, exist_ok=True)
        _git(path, "init", "-q")
        for name, content in (files or {"README.md": "# demo\n"}).items():
            (path / name).write_text(content, encoding="utf-8")
        if commit:
            _git(path, "add", "-A")
            _git(path, "commit", "-q", "-m", "initial")
        for name, url in (remotes or {}).items():
            _git(path, "remote", "add", name, url)
        return path

    return _make


@pytest.fixture
def fake_repo() -> Callable[..., Path]:
    """Return a factory that creates directories that merely look like repositories."""

    def _make(path: Path, *, files: Mapping[str, str] | None = None) -> Path:
        (path / ".git").mkdir(parents=True, exist_ok=True)
        for name, content in (files or {}).items():
            (path / name).write_text(content, encoding="utf-8")
        return path

    return _make


@pytest.fixture
def temp_dirs_allowed(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> None:
    """Drop the protected entry covering pytest's base temp directory.

    Test trees live under ``/tmp`` on most hosts, which the action surface
    refuses as a scan directory or organization root.
    """
    base = tmp_path_factory.getbasetemp().resolve().as_posix().lower() + "/"
    monkeypatch.setattr(
        paths,
        "SYSTEM_PATHS_POSIX",
        tuple(entry for entry in paths.SYSTEM_PATHS_POSIX if not base.startswith(entry + "/")),
    )
