"""Merge configuration sources in precedence order."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import ReporgConfig

ENV_PREFIX = "REPORG__"


def resolve_with_precedence(
    *,
    defaults: ReporgConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> ReporgConfig:
    """Merge configuration sources: defaults < file < environment < CLI.

    Keys in any source may be nested mappings, dotted strings
    (``"scan.max_depth"``), or a mix of both.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML configuration file.
        env_overrides: Nested values extracted from ``REPORG__`` variables.
        cli_overrides: Overrides supplied on the command line.

    Returns:
        ReporgConfig: Validated configuration.

    Raises:
        ConfigError: If a source is malformed or the merged values are invalid.
    """
    merged = defaults.model_dump(mode="python")
    for label, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source is not None:
            merged = _merge(merged, _expand(source, label))

    try:
        return ReporgConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {_describe(exc)}") from exc


def flatten_for_env(config: ReporgConfig) -> Dict[str, str]:
    """Return ``REPORG__SECTION__KEY`` variables reproducing ``config``."""
    flat: Dict[str, str] = {}
    pending: list[tuple[tuple[str, ...], Any]] = [((), config.model_dump(mode="python"))]
    while pending:
        prefix, value = pending.pop()
        if isinstance(value, dict):
            pending.extend((prefix + (str(key),), child) for key, child in value.items())
            continue
        if isinstance(value, list):
            rendered = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            rendered = "null"
        else:
            rendered = str(value)
        flat[ENV_PREFIX + "__".join(part.upper() for part in prefix)] = rendered
    return flat


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "config"
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(problems)


def _expand(source: Mapping[str, Any], label: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{label.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label.capitalize()} override keys must be strings.")
        *parents, leaf = key.split(".")
        node = expanded
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(f"{label.capitalize()} override for {key} conflicts with {segment}.")
            node = child
        if isinstance(value, MappingABC):
            existing = node.get(leaf)
            node[leaf] = _merge(existing if isinstance(existing, dict) else {}, _expand(value, label))
        else:
            node[leaf] = value
    return expanded


def _merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "flatten_for_env"]
