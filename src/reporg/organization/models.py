"""Move preview and execution data models."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ConflictStrategy = Literal["suffix", "skip", "fail"]


class MovePreviewEntry(BaseModel):
    """Proposed relocation of one repository.

    Attributes:
        repo_id: Identifier of the requested repository.
        repo_name: Repository name, empty when the id is unknown.
        source: Current location of the repository.
        target: Computed destination, empty when blocked.
        theme: Theme directory the repository moves into.
        conflicts: Blocking reasons; a non-empty list excludes the entry from execution.
        warnings: Advisories that do not block execution.
    """

    repo_id: int
    repo_name: str = ""
    source: str = ""
    target: str = ""
    theme: str = ""
    conflicts: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def is_executable(self) -> bool:
        """Return True when the entry carries a target and no blocking conflict."""
        return not self.conflicts and bool(self.target)


class MoveOptions(BaseModel):
    """Options applied when executing a preview batch.

    Attributes:
        handle_conflicts: Policy when a target exists at execution time. ``suffix``
            trusts the name chosen during preview.
        create_backup: Bundle each repository into the backup destination first.
    """

    handle_conflicts: ConflictStrategy = "suffix"
    create_backup: bool = False


class MoveResult(BaseModel):
    """Outcome of executing one preview entry."""

    success: bool
    repo_id: int
    repo_name: str
    source: str
    target: str
    error: Optional[str] = None


class MoveBatchResult(BaseModel):
    """Aggregate outcome of a move batch."""

    successful: int = 0
    failed: int = 0
    results: List[MoveResult] = Field(default_factory=list)


__all__ = [
    "ConflictStrategy",
    "MoveBatchResult",
    "MoveOptions",
    "MovePreviewEntry",
    "MoveResult",
]
