"""Discovery walker tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

from reporg.discovery import RepositoryWalker


def _posix(path: Path) -> str:
    return path.as_posix()


def test_walk_finds_repositories_breadth_first(
    tmp_path: Path, fake_repo: Callable[..., Path]
) -> None:
    """Ensure repositories are reported shallowest first and never descended into.

    Args:
        tmp_path: Temporary directory provided by pytest.
        fake_repo: Factory creating directories containing a ``.git`` entry.
    """
    fake_repo(tmp_path / "b" / "deep")
    fake_repo(tmp_path / "a")
    fake_repo(tmp_path / "a" / "nested")
    (tmp_path / "notes.txt").write_text("not a directory", encoding="utf-8")

    found = list(RepositoryWalker().iter_repositories(str(tmp_path)))

    assert found == [_posix(tmp_path / "a"), _posix(tmp_path / "b" / "deep")]


def test_walk_skips_noise_and_hidden_directories(
    tmp_path: Path, fake_repo: Callable[..., Path]
) -> None:
    """Ensure noise and dot directories are never searched.

    Args:
        tmp_path: Temporary directory provided by pytest.
        fake_repo: Factory creating directories containing a ``.git`` entry.
    """
    fake_repo(tmp_path / "node_modules" / "left-pad")
    fake_repo(tmp_path / ".cache" / "tool")
    fake_repo(tmp_path / "venv" / "src" / "pkg")
    fake_repo(tmp_path / "archive" / "old")
    fake_repo(tmp_path / "keep")

    walker = RepositoryWalker(skip_directories=["archive"])

    assert list(walker.iter_repositories(str(tmp_path))) == [_posix(tmp_path / "keep")]


def test_gitfile_marks_a_worktree(tmp_path: Path) -> None:
    """Ensure a ``.git`` file marks a linked worktree.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    worktree = tmp_path / "worktree"
    worktree.mkdir()
    (worktree / ".git").write_text("gitdir: /elsewhere/.git/worktrees/wt\n", encoding="utf-8")

    assert list(RepositoryWalker().iter_repositories(str(tmp_path))) == [_posix(worktree)]


def test_depth_limit(tmp_path: Path, fake_repo: Callable[..., Path]) -> None:
    """Verify the depth limit, both configured and per call.

    Args:
        tmp_path: Temporary directory provided by pytest.
        fake_repo: Factory creating directories containing a ``.git`` entry.
    """
    fake_repo(tmp_path / "l1" / "l2" / "l3")

    assert list(RepositoryWalker(max_depth=2).iter_repositories(str(tmp_path))) == []
    assert list(RepositoryWalker().iter_repositories(str(tmp_path), max_depth=3)) == [
        _posix(tmp_path / "l1" / "l2" / "l3")
    ]


def test_root_that_is_a_repository(tmp_path: Path, fake_repo: Callable[..., Path]) -> None:
    fake_repo(tmp_path / "sub")
    (tmp_path / ".git").mkdir()

    steps = list(RepositoryWalker().walk(str(tmp_path) + "/"))

    assert [step.path for step in steps] == [_posix(tmp_path)]


def test_symlinked_directories_are_not_followed(
    tmp_path: Path, fake_repo: Callable[..., Path]
) -> None:
    """Ensure symlinked directories are never followed.

    Args:
        tmp_path: Temporary directory provided by pytest.
        fake_repo: Factory creating directories containing a ``.git`` entry.
    """
    outside = fake_repo(tmp_path / "outside" / "repo")
    root = tmp_path / "root"
    root.mkdir()
    os.symlink(outside, root / "link")

    assert list(RepositoryWalker().iter_repositories(str(root))) == []


def test_unreadable_root_yields_skipped_step(tmp_path: Path) -> None:
    """Ensure a root that cannot be listed yields one skipped step.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    missing = tmp_path / "missing"

    steps = list(RepositoryWalker().walk(str(missing)))

    assert len(steps) == 1
    assert steps[0].kind == "skipped"
    assert steps[0].path == _posix(missing)
    assert steps[0].reason


def test_each_walk_starts_fresh(tmp_path: Path, fake_repo: Callable[..., Path]) -> None:
    """Ensure consecutive walks share no state.

    Args:
        tmp_path: Temporary directory provided by pytest.
        fake_repo: Factory creating directories containing a ``.git`` entry.
    """
    fake_repo(tmp_path / "app")
    walker = RepositoryWalker()

    first = list(walker.iter_repositories(str(tmp_path)))
    second = list(walker.iter_repositories(str(tmp_path)))

    assert first == second == [_posix(tmp_path / "app")]


def test_should_stop_is_polled_before_each_listing(
    tmp_path: Path, fake_repo: Callable[..., Path]
) -> None:
    """Ensure a stop request ends the walk even when no repository is yielded.

    Args:
        tmp_path: Temporary directory provided by pytest.
        fake_repo: Factory creating directories containing a ``.git`` entry.
    """
    for index in range(10):
        (tmp_path / f"empty{index}" / "deeper").mkdir(parents=True)
    fake_repo(tmp_path / "zz" / "late")
    polls: list[int] = []

    def stop_after_three() -> bool:
        polls.append(1)
        return len(polls) > 3

    steps = list(RepositoryWalker().walk(str(tmp_path), should_stop=stop_after_three))

    assert steps == []
    assert len(polls) == 4
