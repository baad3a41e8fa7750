"""Configuration models describing reporg settings."""

from __future__ import annotations

import logging
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReporgBaseModel(BaseModel):
    """Shared configuration for reporg settings models."""

    model_config = ConfigDict(extra="forbid")


class ScanSettings(ReporgBaseModel):
    """Options governing repository discovery.

    Attributes:
        max_depth: Deepest directory level (root is 0) the walker expands.
        directory_timeout_seconds: Soft wall-clock budget per scan directory.
        cooldown_seconds: Minimum interval between two scan starts.
        readme_max_bytes: Cap on README bytes read for classification.
        git_timeout_seconds: Timeout applied to each git subprocess.
        skip_directories: Extra directory names skipped in addition to the built-in noise set.
    """

    max_depth: int = Field(default=5, ge=0)
    directory_timeout_seconds: float = Field(default=60.0, gt=0)
    cooldown_seconds: float = Field(default=5.0, ge=0)
    readme_max_bytes: int = Field(default=4096, gt=0)
    git_timeout_seconds: float = Field(default=10.0, gt=0)
    skip_directories: List[str] = Field(default_factory=list)


class OrganizationOptions(ReporgBaseModel):
    """Defaults applied when executing moves.

    Attributes:
        handle_conflicts: What to do when a target appears between preview and execution.
        create_backup: Whether to bundle each repository before moving it.
    """

    handle_conflicts: Literal["suffix", "skip", "fail"] = "suffix"
    create_backup: bool = False


class StoreSettings(ReporgBaseModel):
    """Location of the persisted record store.

    Attributes:
        path: JSON file holding repositories, scan directories, themes, and settings.
    """

    path: str = "~/.reporg/store.json"


class LoggingSettings(ReporgBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Rotating log file location.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: str = "~/.reporg/reporg.log"
    max_size_mb: int = Field(default=10, gt=0)
    backup_count: int = Field(default=5, ge=0)

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"unknown logging level {value!r}")
        return normalized


class CLIOptions(ReporgBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class ReporgConfig(ReporgBaseModel):
    """Top-level configuration struct for reporg.

    Attributes:
        scan: Discovery settings.
        organization: Move execution defaults.
        store: Record store location.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    scan: ScanSettings = Field(default_factory=ScanSettings)
    organization: OrganizationOptions = Field(default_factory=OrganizationOptions)
    store: StoreSettings = Field(default_factory=StoreSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "ReporgBaseModel",
    "ScanSettings",
    "OrganizationOptions",
    "StoreSettings",
    "LoggingSettings",
    "CLIOptions",
    "ReporgConfig",
]
