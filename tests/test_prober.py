"""Repository prober tests."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Callable

import pytest

from reporg.discovery import RepositoryProber
from reporg.discovery.prober import GitCommandError, is_github_remote, parse_github_url


def test_probe_reads_git_state(tmp_path: Path, make_git_repo: Callable[..., Path]) -> None:
    """Ensure a committed repository reports remote, commit, branch, and clean state.

    Args:
        tmp_path: Temporary directory provided by pytest.
        make_git_repo: Factory creating real git repositories.
    """
    repo = make_git_repo(
        tmp_path / "app", remotes={"origin": "git@github.com:me/app.git"}
    )

    report = RepositoryProber().probe(str(repo))

    assert report.path == repo.as_posix()
    assert report.remote_url == "git@github.com:me/app.git"
    head = subprocess.run(
        ["git", "rev-parse", "HEAD"], cwd=repo, capture_output=True, text=True, check=True
    )
    assert report.last_commit_sha == head.stdout.strip()
    assert report.branch == "main"
    assert report.is_dirty is False
    assert report.skipped() == {}


def test_probe_detects_untracked_changes(
    tmp_path: Path, make_git_repo: Callable[..., Path]
) -> None:
    """Ensure untracked files mark a real repository dirty.

    Args:
        tmp_path: Temporary directory provided by pytest.
        make_git_repo: Factory creating real git repositories.
    """
    repo = make_git_repo(tmp_path / "app")
    (repo / "scratch.txt").write_text("wip", encoding="utf-8")

    assert RepositoryProber().probe(str(repo)).is_dirty is True


def test_probe_without_commits_skips_commit_probe(
    tmp_path: Path, make_git_repo: Callable[..., Path]
) -> None:
    """Ensure a repository without commits reports the commit probe as skipped.

    Args:
        tmp_path: Temporary directory provided by pytest.
        make_git_repo: Factory creating real git repositories.
    """
    repo = make_git_repo(tmp_path / "empty", commit=False)

    report = RepositoryProber().probe(str(repo))

    assert report.last_commit_sha is None
    assert report.remote_url is None
    assert "last_commit_sha" in report.skipped()


def test_probe_failures_fall_back_to_dirty(tmp_path: Path) -> None:
    """Ensure a missing git executable degrades every probe safely.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    prober = RepositoryProber(git_executable="reporg-test-missing-git")

    report = prober.probe(str(tmp_path))

    assert report.is_dirty is True
    assert report.remote_url is None
    assert report.last_commit_sha is None
    assert set(report.skipped()) == {"remote_url", "last_commit_sha", "branch", "is_dirty"}


def test_dirty_probe_error_is_not_treated_as_clean(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Ensure a failing status probe reports the repository as dirty.

    Args:
        tmp_path: Temporary directory provided by pytest.
        monkeypatch: Pytest fixture for patching attributes.
    """
    prober = RepositoryProber()

    def _boom(path: str) -> bool:
        raise GitCommandError("index.lock exists")

    monkeypatch.setattr(prober, "is_dirty", _boom)
    monkeypatch.setattr(prober, "remote_url", lambda path: None)
    monkeypatch.setattr(prober, "last_commit_sha", lambda path: "abc123")
    monkeypatch.setattr(prober, "current_branch", lambda path: "main")

    report = prober.probe(str(tmp_path))

    assert report.is_dirty is True
    assert report.last_commit_sha == "abc123"
    assert report.skipped() == {"is_dirty": "GitCommandError: index.lock exists"}


@pytest.mark.parametrize(
    ("listing", "expected"),
    [
        (
            "backup\tgit@host:me/app.git (fetch)\n"
            "backup\tgit@host:me/app.git (push)\n"
            "origin\thttps://github.com/me/app.git (fetch)\n"
            "origin\thttps://github.com/me/app.git (push)\n",
            "https://github.com/me/app.git",
        ),
        (
            "upstream\thttps://example.com/app.git (fetch)\n"
            "upstream\tssh://push.example.com/app.git (push)\n",
            "https://example.com/app.git",
        ),
        ("", None),
    ],
)
def test_remote_url_prefers_origin(
    monkeypatch: pytest.MonkeyPatch, listing: str, expected: str | None
) -> None:
    prober = RepositoryProber()
    monkeypatch.setattr(prober, "run_git", lambda path, *args: listing)

    assert prober.remote_url("/code/app") == expected


def test_collect_signals_reads_manifest_and_readme(tmp_path: Path) -> None:
    """Ensure repository contents feed the classifier signals.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    (tmp_path / "package.json").write_text(
        json.dumps({"description": "Dashboard", "dependencies": {"next": "14.0.0"}}),
        encoding="utf-8",
    )
    (tmp_path / "README.md").write_text("# Dashboard\n" + "x" * 100, encoding="utf-8")
    (tmp_path / "src").mkdir()

    signals = RepositoryProber(readme_max_bytes=11).collect_signals(
        str(tmp_path), remote_url="https://github.com/me/dash"
    )

    assert signals.files == ["README.md", "package.json", "src"]
    assert signals.readme == "# Dashboard"
    assert signals.description == "Dashboard"
    assert signals.dependency_names() == {"next"}
    assert signals.remote_url == "https://github.com/me/dash"


def test_readme_cap_counts_bytes(tmp_path: Path) -> None:
    """Ensure the README limit is measured in bytes, not characters.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    (tmp_path / "README.md").write_text("caf\u00e9 na\u00efve", encoding="utf-8")

    assert RepositoryProber(readme_max_bytes=5).read_readme(str(tmp_path)) == "caf\u00e9"
    assert RepositoryProber(readme_max_bytes=4).read_readme(str(tmp_path)) == "caf"
    assert RepositoryProber(readme_max_bytes=3).read_readme(str(tmp_path)) == "caf"

def test_invalid_manifest_is_ignored(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{broken", encoding="utf-8")

    signals = RepositoryProber().collect_signals(str(tmp_path))

    assert signals.package_json is None
    assert signals.readme is None


def test_is_repository_root(tmp_path: Path) -> None:
    prober = RepositoryProber()
    assert not prober.is_repository_root(str(tmp_path))

    (tmp_path / ".git").mkdir()
    assert prober.is_repository_root(str(tmp_path))


def test_create_bundle(tmp_path: Path, make_git_repo: Callable[..., Path]) -> None:
    """Ensure a bundle of a real repository is written to the destination.

    Args:
        tmp_path: Temporary directory provided by pytest.
        make_git_repo: Factory creating real git repositories.
    """
    repo = make_git_repo(tmp_path / "app")

    bundle = RepositoryProber().create_bundle(str(repo), str(tmp_path / "backups"))

    assert Path(bundle).is_file()
    assert Path(bundle).name.startswith("app-")
    assert bundle.endswith(".bundle")


def test_parse_github_url() -> None:
    assert parse_github_url("git@github.com:me/app.git") == ("me", "app")
    assert parse_github_url("https://github.com/me/app") == ("me", "app")
    assert parse_github_url("https://gitlab.com/me/app.git") is None
    assert is_github_remote("https://github.com/me/app")
    assert not is_github_remote(None)
