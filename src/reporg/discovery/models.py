"""Tagged step and outcome types produced by discovery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Literal, TypeVar

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class WalkStep:
    """One result of a discovery walk.

    Attributes:
        kind: ``found`` for a repository root, ``skipped`` for a directory that
            could not be examined.
        path: Normalized directory path.
        reason: Why the directory was skipped; None for found repositories.
    """

    kind: Literal["found", "skipped"]
    path: str
    reason: str | None = None

    @classmethod
    def found(cls, path: str) -> "WalkStep":
        return cls(kind="found", path=path)

    @classmethod
    def skipped(cls, path: str, reason: str) -> "WalkStep":
        return cls(kind="skipped", path=path, reason=reason)

    @property
    def is_found(self) -> bool:
        return self.kind == "found"


@dataclass(slots=True, frozen=True)
class ProbeOutcome(Generic[T]):
    """Result of a single git probe: a value, or the reason it was skipped."""

    ok: bool
    value: T | None = None
    reason: str | None = None

    @classmethod
    def success(cls, value: T | None) -> "ProbeOutcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def skip(cls, reason: str) -> "ProbeOutcome[T]":
        return cls(ok=False, reason=reason)

    def value_or(self, default: T | None) -> T | None:
        """Return the probed value, or ``default`` when the probe was skipped."""
        return self.value if self.ok else default


@dataclass(slots=True)
class ProbeReport:
    """Joined results of probing one repository.

    Failed probes fall back to None, except the dirty check, which falls back
    to True so an unknown working tree is never treated as clean.
    """

    path: str
    remote_url: str | None
    last_commit_sha: str | None
    branch: str | None
    is_dirty: bool
    outcomes: dict[str, ProbeOutcome] = field(default_factory=dict)

    def skipped(self) -> dict[str, str]:
        """Return probe names mapped to their skip reasons."""
        return {
            name: outcome.reason or "unknown"
            for name, outcome in self.outcomes.items()
            if not outcome.ok
        }


__all__ = ["WalkStep", "ProbeOutcome", "ProbeReport"]
