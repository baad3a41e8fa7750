"""Theme classification package."""

from .engine import ThemeClassifier, count_keyword_hits
from .models import ClassificationDecision, RepoSignals
from .themes import DEFAULT_THEMES, UNCLASSIFIED_THEME

__all__ = [
    "ThemeClassifier",
    "ClassificationDecision",
    "RepoSignals",
    "DEFAULT_THEMES",
    "UNCLASSIFIED_THEME",
    "count_keyword_hits",
]
