"""CLI tests for the ``reporg config`` commands."""

import os
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from reporg.cli import cli
from reporg.config import ConfigManager


@pytest.fixture
def env(tmp_path: Path) -> dict[str, Any]:
    values = dict(os.environ)
    values["HOME"] = str(tmp_path)
    values["REPORG__LOGGING__LEVEL"] = "CRITICAL"
    return values


@pytest.fixture
def file_manager(tmp_path: Path) -> ConfigManager:
    """Manager over the file the CLI writes, ignoring the process environment."""
    return ConfigManager(config_path=tmp_path / ".reporg" / "config.yaml", env={})


def test_view_creates_the_file_on_first_use(
    env: dict[str, Any], file_manager: ConfigManager
) -> None:
    result = CliRunner().invoke(cli, ["config", "view"], env=env)

    assert result.exit_code == 0
    assert "scan:" in result.output
    assert file_manager.config_path.exists()


def test_view_shows_environment_unless_disabled(env: dict[str, Any]) -> None:
    env["REPORG__SCAN__MAX_DEPTH"] = "9"
    runner = CliRunner()

    assert "max_depth: 9" in runner.invoke(cli, ["config", "view"], env=env).output
    assert "max_depth: 5" in runner.invoke(cli, ["config", "view", "--no-env"], env=env).output


def test_set_persists_dotted_key(env: dict[str, Any], file_manager: ConfigManager) -> None:
    result = CliRunner().invoke(cli, ["config", "set", "scan.max_depth", "--value", "3"], env=env)

    assert result.exit_code == 0
    assert "Updated scan.max_depth." in result.output
    assert file_manager.load().scan.max_depth == 3


def test_set_to_current_value_is_a_no_op(env: dict[str, Any]) -> None:
    result = CliRunner().invoke(cli, ["config", "set", "scan.max_depth", "--value", "5"], env=env)

    assert result.exit_code == 0
    assert "No changes applied" in result.output


def test_set_invalid_value_leaves_file_alone(
    env: dict[str, Any], file_manager: ConfigManager
) -> None:
    """Ensure a rejected value leaves the configuration file unchanged.

    Args:
        env: Environment with ``HOME`` pointing at the temporary directory.
        file_manager: Manager reading the configuration file the CLI writes.
    """
    result = CliRunner().invoke(
        cli, ["config", "set", "organization.handle_conflicts", "--value", "overwrite"], env=env
    )

    assert result.exit_code != 0
    assert file_manager.load().organization.handle_conflicts == "suffix"


def test_edit_writes_validated_text(
    env: dict[str, Any], file_manager: ConfigManager, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Ensure edited configuration is written once it validates.

    Args:
        env: Environment with ``HOME`` pointing at the temporary directory.
        file_manager: Manager reading the configuration file the CLI writes.
        monkeypatch: Pytest fixture for patching attributes.
    """
    file_manager.ensure_exists()
    monkeypatch.setattr(
        "reporg.cli.click.edit", lambda text, **_: text.replace("max_depth: 5", "max_depth: 2")
    )

    result = CliRunner().invoke(cli, ["config", "edit"], env=env)

    assert result.exit_code == 0
    assert "updated" in result.output.lower()
    assert file_manager.load().scan.max_depth == 2


def test_edit_with_invalid_value_is_rejected(
    env: dict[str, Any], file_manager: ConfigManager, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        "reporg.cli.click.edit", lambda text, **_: text.replace("max_depth: 5", "max_depth: -1")
    )

    result = CliRunner().invoke(cli, ["config", "edit"], env=env)

    assert result.exit_code != 0
    assert file_manager.load().scan.max_depth == 5
