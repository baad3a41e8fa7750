"""Persisted record models for discovered repositories and user configuration."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_THEME_COLOR = "#6B7280"
_THEME_NAME = re.compile(r"^[a-z0-9-]+$")
_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_theme_name(value: str) -> str:
    """Return ``value`` if it is usable as a theme directory name.

    Raises:
        ValueError: If the name is empty, too long, or has disallowed characters.
    """
    if not value:
        raise ValueError("Theme name is required")
    if len(value) > 50:
        raise ValueError("Theme name must be 50 characters or less")
    if not _THEME_NAME.match(value):
        raise ValueError("Theme name must be lowercase alphanumeric with dashes only")
    return value


class TriageStatus(str, Enum):
    """Lifecycle of a discovered repository.

    ``pending`` on discovery, ``manual`` after a theme assignment, ``auto``
    after a successful move. ``ignored`` is reachable from any non-``auto``
    state and only left through an explicit reset.
    """

    PENDING = "pending"
    MANUAL = "manual"
    AUTO = "auto"
    IGNORED = "ignored"


class RepositoryRecord(BaseModel):
    """A repository tracked by reporg.

    Attributes:
        id: Store-assigned identifier.
        name: Final path segment at discovery time.
        original_path: Normalized path where the repository was first found.
        physical_path: Normalized path after a successful move.
        remote_url: Preferred remote URL, if any.
        last_commit_sha: Latest commit identifier, if any.
        is_dirty: Whether the working tree has uncommitted changes.
        theme: Assigned or suggested theme label.
        triage_status: Current triage state.
        created_at: Record creation timestamp.
        updated_at: Last modification timestamp.
    """

    id: int
    name: str
    original_path: str
    physical_path: Optional[str] = None
    remote_url: Optional[str] = None
    last_commit_sha: Optional[str] = None
    is_dirty: bool = True
    theme: Optional[str] = None
    triage_status: TriageStatus = TriageStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _physical_path_matches_status(self) -> "RepositoryRecord":
        organized = self.triage_status is TriageStatus.AUTO
        if organized and not self.physical_path:
            raise ValueError("Organized repositories must record a physical path")
        if not organized and self.physical_path:
            raise ValueError("Only organized repositories may record a physical path")
        return self

    @property
    def current_path(self) -> str:
        """Return where the repository lives now."""
        return self.physical_path or self.original_path


class ScanDirectory(BaseModel):
    """A root searched for repositories during a scan."""

    id: int
    path: str
    is_wsl: bool = False
    enabled: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class Theme(BaseModel):
    """A classification label that doubles as a destination directory name."""

    id: int
    name: str
    color: str = DEFAULT_THEME_COLOR
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return check_theme_name(value)

    @field_validator("color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        if not _HEX_COLOR.match(value):
            raise ValueError("Invalid hex color")
        return value

    @field_validator("description")
    @classmethod
    def _check_description(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) > 200:
            raise ValueError("Theme description must be 200 characters or less")
        return value


class Settings(BaseModel):
    """Singleton application settings."""

    organization_root: Optional[str] = None
    auto_triage_enabled: bool = False
    backup_destination: Optional[str] = None


class StoreSnapshot(BaseModel):
    """On-disk layout of the record store file."""

    repositories: List[RepositoryRecord] = Field(default_factory=list)
    scan_directories: List[ScanDirectory] = Field(default_factory=list)
    themes: List[Theme] = Field(default_factory=list)
    settings: Optional[Settings] = None
    next_ids: Dict[str, int] = Field(default_factory=dict)


__all__ = [
    "DEFAULT_THEME_COLOR",
    "check_theme_name",
    "TriageStatus",
    "RepositoryRecord",
    "ScanDirectory",
    "Theme",
    "Settings",
    "StoreSnapshot",
]
