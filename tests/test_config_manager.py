"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from reporg.config import (
    ConfigError,
    ConfigManager,
    ReporgConfig,
    flatten_for_env,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Ensure the default configuration file is created with its header.

    Args:
        tmp_path: Temporary directory provided by pytest.
        monkeypatch: Pytest fixture for patching attributes.
    """
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".reporg" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "reporg configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, ReporgConfig)
    assert config.scan.max_depth == 5


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verify later configuration sources override earlier ones.

    Args:
        tmp_path: Temporary directory provided by pytest.
        monkeypatch: Pytest fixture for patching attributes.
    """
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.save(
        {"scan": {"max_depth": 3, "cooldown_seconds": 2}, "organization": {"create_backup": True}}
    )

    env = {"REPORG__SCAN__MAX_DEPTH": "4", "REPORG__ORGANIZATION__HANDLE_CONFLICTS": "skip"}
    cli = {"scan.max_depth": 7}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.scan.cooldown_seconds == pytest.approx(2)
    assert config.organization.create_backup is True
    assert config.organization.handle_conflicts == "skip"
    # CLI overrides take precedence over environment
    assert config.scan.max_depth == 7


def test_environment_overrides_come_from_mapping(tmp_path: Path) -> None:
    """Ensure ``REPORG__`` variables override file values and can be disabled.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    manager = ConfigManager(
        config_path=tmp_path / "config.yaml",
        env={"REPORG__LOGGING__LEVEL": "DEBUG", "UNRELATED": "1", "REPORG__": "x"},
    )

    assert manager.load().logging.level == "DEBUG"
    assert manager.load(include_env=False).logging.level == "WARNING"


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure an unparsable configuration file raises ConfigError.

    Args:
        tmp_path: Temporary directory provided by pytest.
        monkeypatch: Pytest fixture for patching attributes.
    """
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    manager = ConfigManager(config_path=tmp_path / "config.yaml", env={})
    manager.save({"scan": {"max_dpeth": 3}})

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_round_trips_defaults() -> None:
    flat = flatten_for_env(ReporgConfig())

    assert flat["REPORG__SCAN__MAX_DEPTH"] == "5"
    assert flat["REPORG__ORGANIZATION__HANDLE_CONFLICTS"] == "suffix"
    assert flat["REPORG__SCAN__SKIP_DIRECTORIES"] == "[]"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=ReporgConfig(),
            file_overrides={"organization": {"handle_conflicts": "overwrite"}},
        )


def test_set_value_writes_nested_key(tmp_path: Path) -> None:
    """Ensure ``set_value`` creates missing sections and persists the value.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    manager = ConfigManager(config_path=tmp_path / "config.yaml", env={})
    manager.ensure_exists()

    resolved = manager.set_value("scan.skip_directories", ["archive", "scratch"])

    assert resolved.scan.skip_directories == ["archive", "scratch"]
    assert manager.load().scan.skip_directories == ["archive", "scratch"]


def test_set_value_rejects_invalid_results(tmp_path: Path) -> None:
    """Ensure invalid assignments leave the configuration file untouched.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    manager = ConfigManager(config_path=tmp_path / "config.yaml", env={})
    manager.ensure_exists()
    before = manager.read_text()

    with pytest.raises(ConfigError):
        manager.set_value("scan.max_depth", -2)
    with pytest.raises(ConfigError):
        manager.set_value("scan.max_depth.inner", 1)
    with pytest.raises(ConfigError):
        manager.set_value(" . ", 1)

    assert manager.read_text() == before


def test_replace_text_validates_before_writing(tmp_path: Path) -> None:
    """Ensure edited text must be a valid mapping before it replaces the file.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    manager = ConfigManager(config_path=tmp_path / "config.yaml", env={})
    manager.ensure_exists()

    with pytest.raises(ConfigError):
        manager.replace_text("- a\n- b\n")
    with pytest.raises(ConfigError):
        manager.replace_text("scan: [unclosed")

    resolved = manager.replace_text("organization:\n  create_backup: true\n")
    assert resolved.organization.create_backup is True
    assert manager.load().organization.create_backup is True


def test_validation_errors_name_the_offending_field() -> None:
    with pytest.raises(ConfigError, match=r"scan\.max_depth"):
        resolve_with_precedence(defaults=ReporgConfig(), cli_overrides={"scan.max_depth": -1})


def test_dotted_and_nested_overrides_merge() -> None:
    config = resolve_with_precedence(
        defaults=ReporgConfig(),
        file_overrides={"scan": {"max_depth": 2}, "scan.cooldown_seconds": 0},
        cli_overrides={"logging.level": "debug"},
    )

    assert config.scan.max_depth == 2
    assert config.scan.cooldown_seconds == 0
    assert config.logging.level == "DEBUG"


def test_unknown_logging_level_is_rejected() -> None:
    with pytest.raises(ConfigError, match="logging.level"):
        resolve_with_precedence(defaults=ReporgConfig(), cli_overrides={"logging.level": "LOUD"})
