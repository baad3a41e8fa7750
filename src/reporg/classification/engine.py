"""Heuristic theme classifier for discovered repositories.

Rules are evaluated in a fixed order and the first match wins, so lifecycle
signals (archived, deprecated) dominate technology signals.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping

from .models import ClassificationDecision, RepoSignals
from .themes import (
    ARCHIVAL_KEYWORDS,
    ARCHIVAL_URL_MARKERS,
    ARCHIVED_THEME,
    BASE_UI_DEPENDENCY,
    EXPERIMENTS_THEME,
    FLAGSHIP_DEPENDENCY,
    MIN_KEYWORD_HITS,
    NEXTJS_THEME,
    PYTHON_MARKER_FILES,
    PYTHON_SOURCE_SUFFIX,
    PYTHON_THEME,
    SECONDARY_UI_DEPENDENCY,
    THEME_KEYWORDS,
    UNCLASSIFIED_THEME,
)

LOGGER = logging.getLogger(__name__)


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?![a-z0-9])")


def count_keyword_hits(text: str, keywords: Iterable[str]) -> int:
    """Return how many distinct ``keywords`` occur in ``text`` as whole words."""
    lowered = text.lower()
    return sum(1 for keyword in keywords if _keyword_pattern(keyword).search(lowered))


class ThemeClassifier:
    """Map repository signals to a theme label.

    Args:
        keywords: Theme keyword table; declaration order breaks score ties.
        min_hits: Keyword hits required before a text-derived theme is accepted.
    """

    def __init__(
        self,
        keywords: Mapping[str, Iterable[str]] | None = None,
        *,
        min_hits: int = MIN_KEYWORD_HITS,
    ) -> None:
        table = keywords if keywords is not None else THEME_KEYWORDS
        self._keywords = {theme: tuple(words) for theme, words in table.items()}
        self._min_hits = min_hits

    def classify(self, signals: RepoSignals) -> str:
        """Return the theme label for ``signals``; never fails."""
        return self.explain(signals).theme

    def explain(self, signals: RepoSignals) -> ClassificationDecision:
        """Return the theme along with the rule that selected it.

        Args:
            signals: Content signals gathered by the prober.

        Returns:
            ClassificationDecision: Selected theme, rule identifier, and reasoning.
        """
        text = "\n".join(part for part in (signals.readme, signals.description) if part)
        remote = (signals.remote_url or "").lower()

        marker = next((token for token in ARCHIVAL_URL_MARKERS if token in remote), None)
        if marker:
            return ClassificationDecision(
                theme=ARCHIVED_THEME,
                rule="archived-remote",
                reasoning=f"Remote URL contains '{marker}'.",
            )
        archival_hits = count_keyword_hits(text, ARCHIVAL_KEYWORDS) if text else 0
        if archival_hits >= MIN_KEYWORD_HITS:
            return ClassificationDecision(
                theme=ARCHIVED_THEME,
                rule="archived-keywords",
                reasoning=f"README mentions {archival_hits} archival keywords.",
            )

        dependencies = signals.dependency_names()
        if FLAGSHIP_DEPENDENCY in dependencies:
            return ClassificationDecision(
                theme=NEXTJS_THEME,
                rule="flagship-dependency",
                reasoning="package.json depends on next.",
            )
        if BASE_UI_DEPENDENCY in dependencies:
            return ClassificationDecision(
                theme=NEXTJS_THEME,
                rule="base-ui-dependency",
                reasoning="package.json depends on react without next.",
            )

        python_marker = self._python_marker(signals.files)
        if python_marker:
            return ClassificationDecision(
                theme=PYTHON_THEME,
                rule="language-marker",
                reasoning=f"Found Python marker {python_marker}.",
            )

        if SECONDARY_UI_DEPENDENCY in dependencies:
            return ClassificationDecision(
                theme=EXPERIMENTS_THEME,
                rule="secondary-ui-dependency",
                reasoning="package.json depends on vue.",
            )

        if text:
            scores = {
                theme: count_keyword_hits(text, words) for theme, words in self._keywords.items()
            }
            best_theme = None
            best_score = 0
            for theme, score in scores.items():
                if score > best_score:
                    best_theme, best_score = theme, score
            if best_theme is not None and best_score >= self._min_hits:
                return ClassificationDecision(
                    theme=best_theme,
                    rule="keyword-score",
                    reasoning=f"README matched {best_score} {best_theme} keywords.",
                    scores=scores,
                )
            LOGGER.debug("Keyword scores below threshold: %s", scores)
            return ClassificationDecision(
                theme=UNCLASSIFIED_THEME,
                rule="default",
                reasoning="No rule matched.",
                scores=scores,
            )

        return ClassificationDecision(
            theme=UNCLASSIFIED_THEME, rule="default", reasoning="No rule matched."
        )

    @staticmethod
    def _python_marker(files: Iterable[str]) -> str | None:
        for name in files:
            if name in PYTHON_MARKER_FILES or name.endswith(PYTHON_SOURCE_SUFFIX):
                return name
        return None


__all__ = ["ThemeClassifier", "count_keyword_hits"]
