"""Move planner tests."""

from __future__ import annotations

from pathlib import Path

from reporg.organization import MovePlanner
from reporg.organization.planner import (
    ALREADY_ORGANIZED,
    NO_THEME,
    NOT_FOUND,
)
from reporg.state import RecordStore, TriageStatus


def _root(tmp_path: Path) -> str:
    return (tmp_path / "organized").as_posix()


def test_preview_targets_theme_directory(tmp_path: Path) -> None:
    """Ensure previews target ``root/theme/name`` without conflicts.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    store = RecordStore()
    repo = store.create_repository(
        name="api", original_path="/code/api", theme="python", is_dirty=False
    )

    [entry] = MovePlanner(store).preview([repo.id], _root(tmp_path))

    assert entry.target == f"{_root(tmp_path)}/python/api"
    assert entry.source == "/code/api"
    assert entry.theme == "python"
    assert entry.conflicts == []
    assert entry.warnings == ["Cross-volume move (will copy and delete)"]
    assert entry.is_executable


def test_missing_and_unthemed_repositories_are_blocked(tmp_path: Path) -> None:
    """Verify unknown and unthemed repositories yield blocked entries.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    store = RecordStore()
    unthemed = store.create_repository(name="misc", original_path="/code/misc")

    missing, blocked = MovePlanner(store).preview([404, unthemed.id], _root(tmp_path))

    assert missing.repo_id == 404
    assert missing.conflicts == [NO_THEME, NOT_FOUND]
    assert not missing.is_executable
    assert blocked.conflicts == [NO_THEME]
    assert blocked.target == ""


def test_dirty_repositories_carry_a_warning(tmp_path: Path) -> None:
    store = RecordStore()
    repo = store.create_repository(name="wip", original_path="/code/wip", theme="experiments")

    [entry] = MovePlanner(store).preview([repo.id], _root(tmp_path))

    assert "Repository has uncommitted changes" in entry.warnings
    assert entry.is_executable


def test_existing_target_on_disk_gets_suffix(tmp_path: Path) -> None:
    """Ensure a target already on disk is replaced by the first free suffix.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    (tmp_path / "organized" / "python" / "api").mkdir(parents=True)
    store = RecordStore()
    repo = store.create_repository(name="api", original_path="/code/api", theme="python")

    [entry] = MovePlanner(store).preview([repo.id], _root(tmp_path))

    assert entry.target == f"{_root(tmp_path)}/python/api-2"
    assert "Path conflict: will use api-2" in entry.warnings
    assert entry.is_executable


def test_same_batch_collisions_are_suffixed_in_order(tmp_path: Path) -> None:
    """Ensure entries in one batch never share a target.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    store = RecordStore()
    first = store.create_repository(name="app", original_path="/work/app", theme="python")
    second = store.create_repository(name="app", original_path="/home/app", theme="python")
    third = store.create_repository(name="App", original_path="/old/App", theme="python")

    entries = MovePlanner(store).preview([first.id, second.id, third.id], _root(tmp_path))

    assert [entry.target.rsplit("/", 1)[-1] for entry in entries] == ["app", "app-2", "App-3"]


def test_repository_already_in_place(tmp_path: Path) -> None:
    """Ensure an organized repository previews as already in place.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    target = tmp_path / "organized" / "python" / "api"
    target.mkdir(parents=True)
    store = RecordStore()
    repo = store.create_repository(name="api", original_path="/code/api", theme="python")
    store.update_repository(
        repo.id, physical_path=target.as_posix(), triage_status=TriageStatus.AUTO
    )

    [entry] = MovePlanner(store).preview([repo.id], _root(tmp_path) + "/")

    assert entry.source == target.as_posix()
    assert entry.target == target.as_posix()
    assert entry.warnings == [ALREADY_ORGANIZED]
    assert entry.conflicts == []


def test_long_targets_are_flagged(tmp_path: Path) -> None:
    store = RecordStore()
    repo = store.create_repository(
        name="n" * 240, original_path="/code/" + "n" * 240, theme="python"
    )

    [entry] = MovePlanner(store).preview([repo.id], _root(tmp_path))

    assert "Target path exceeds 250 characters" in entry.warnings
    assert entry.is_executable


def test_exhausted_suffixes_block_the_move(tmp_path: Path) -> None:
    """Ensure exhausting every suffix turns into a blocking conflict.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    theme_dir = tmp_path / "organized" / "python"
    (theme_dir / "app").mkdir(parents=True)
    for suffix in range(2, 101):
        (theme_dir / f"app-{suffix}").mkdir()
    store = RecordStore()
    repo = store.create_repository(name="app", original_path="/code/app", theme="python")

    [entry] = MovePlanner(store).preview([repo.id], _root(tmp_path))

    assert entry.target == ""
    assert entry.conflicts and "Too many path conflicts" in entry.conflicts[0]
    assert not entry.is_executable


def test_preview_does_not_touch_disk_or_store(tmp_path: Path) -> None:
    """Confirm previews neither create directories nor update records.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    store = RecordStore()
    repo = store.create_repository(name="api", original_path="/code/api", theme="python")
    before = store.get_repository(repo.id)

    MovePlanner(store).preview([repo.id], _root(tmp_path))

    assert not (tmp_path / "organized").exists()
    assert store.get_repository(repo.id) == before


def test_list_existing_targets_handles_missing_root(tmp_path: Path) -> None:
    assert MovePlanner.list_existing_targets((tmp_path / "nope").as_posix()) == set()

    (tmp_path / "python" / "Api").mkdir(parents=True)
    (tmp_path / "python" / "notes.txt").write_text("x", encoding="utf-8")

    assert MovePlanner.list_existing_targets(tmp_path.as_posix()) == {
        f"{tmp_path.as_posix().lower()}/python/api"
    }
