"""Configuration management for reporg."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import LoggingSettings, OrganizationOptions, ReporgConfig, ScanSettings
from .resolver import ENV_PREFIX, flatten_for_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.reporg/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # reporg configuration file
    # Generated automatically; manage via `reporg config edit` or `reporg config set`.
    """
)


class ConfigManager:
    """Load and persist configuration data, applying precedence rules."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> ReporgConfig:
        """Load configuration data from disk, applying precedence rules."""
        if ensure_file:
            self.ensure_exists()

        env_data: Mapping[str, str] | None = None
        if include_env:
            env_data = env_overrides if env_overrides is not None else self._env

        return resolve_with_precedence(
            defaults=ReporgConfig(),
            file_overrides=self._read_file(),
            env_overrides=self._extract_env(env_data) if env_data else None,
            cli_overrides=cli_overrides,
        )

    def save(self, config: ReporgConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        if isinstance(config, ReporgConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)
        self._write_file(data)

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        if not self._config_path.exists():
            self._write_file(ReporgConfig().model_dump(mode="python"))
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def set_value(self, key: str, value: Any) -> ReporgConfig:
        """Write ``value`` at the dotted ``key`` once the result validates.

        Args:
            key: Dotted path such as ``scan.max_depth``.
            value: Parsed value to store.

        Returns:
            ReporgConfig: Configuration resolved from the updated file.

        Raises:
            ConfigError: If the key is empty, crosses a scalar value, or the
                resulting configuration is invalid. The file is left untouched.
        """
        segments = [segment.strip() for segment in key.split(".") if segment.strip()]
        if not segments:
            raise ConfigError("KEY must specify a dotted path such as 'scan.max_depth'.")

        data = self._read_file()
        node = data
        for segment in segments[:-1]:
            child = node.get(segment)
            if child is None:
                child = {}
                node[segment] = child
            elif not isinstance(child, dict):
                raise ConfigError(
                    f"Cannot assign into '{segment}': it is not a mapping in the config file."
                )
            node = child
        node[segments[-1]] = value

        resolved = resolve_with_precedence(defaults=ReporgConfig(), file_overrides=data)
        self._write_file(data)
        return resolved

    def replace_text(self, text: str) -> ReporgConfig:
        """Replace the file with edited YAML ``text`` once it validates.

        Raises:
            ConfigError: If ``text`` is not a YAML mapping of valid settings.
        """
        try:
            parsed = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML: {exc}") from exc
        if not isinstance(parsed, dict):
            raise ConfigError("Configuration file must contain a top-level mapping.")

        resolved = resolve_with_precedence(defaults=ReporgConfig(), file_overrides=parsed)
        self._write_file(parsed)
        return resolved

    # Internal helpers -------------------------------------------------

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{serialized}", encoding="utf-8"
        )

    def _extract_env(self, env: Mapping[str, str]) -> dict[str, Any]:
        """Map ``REPORG__SCAN__MAX_DEPTH=3`` style variables to dotted keys."""
        overrides: dict[str, Any] = {}
        for name in sorted(env):
            if not name.startswith(ENV_PREFIX):
                continue
            dotted = ".".join(
                part.lower() for part in name[len(ENV_PREFIX) :].split("__") if part
            )
            if not dotted:
                continue
            raw_value = env[name]
            try:
                overrides[dotted] = yaml.safe_load(raw_value)
            except yaml.YAMLError:
                overrides[dotted] = raw_value
        return overrides


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "ReporgConfig",
    "ScanSettings",
    "OrganizationOptions",
    "LoggingSettings",
    "resolve_with_precedence",
    "flatten_for_env",
    "ConfigError",
]
