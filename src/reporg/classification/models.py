"""Models exchanged between the prober and the theme classifier."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RepoSignals(BaseModel):
    """Lightweight content signals gathered from a repository.

    Attributes:
        files: Names of entries at the repository's top level.
        package_json: Parsed ``package.json`` contents, if present and valid.
        readme: Leading excerpt of the repository README.
        remote_url: Preferred remote URL.
        description: Free-text project description (``package.json`` description).
    """

    files: List[str] = Field(default_factory=list)
    package_json: Optional[Dict[str, Any]] = None
    readme: Optional[str] = None
    remote_url: Optional[str] = None
    description: Optional[str] = None

    def dependency_names(self) -> set[str]:
        """Return the union of direct and development dependency names."""
        names: set[str] = set()
        if not self.package_json:
            return names
        for section in ("dependencies", "devDependencies"):
            block = self.package_json.get(section)
            if isinstance(block, dict):
                names.update(str(key) for key in block)
        return names


class ClassificationDecision(BaseModel):
    """Outcome of classifying one repository.

    Attributes:
        theme: Selected theme label.
        rule: Identifier of the rule that produced the label.
        reasoning: Human-readable explanation.
        scores: Keyword hit counts per theme when text scoring ran.
    """

    theme: str
    rule: str
    reasoning: str
    scores: Dict[str, int] = Field(default_factory=dict)


__all__ = ["RepoSignals", "ClassificationDecision"]
