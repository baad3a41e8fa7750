"""Built-in theme definitions and keyword tables."""

from __future__ import annotations

NEXTJS_THEME = "nextjs"
PYTHON_THEME = "python"
EXPERIMENTS_THEME = "experiments"
ARCHIVED_THEME = "archived"
UNCLASSIFIED_THEME = "unclassified"

DEFAULT_THEMES: tuple[dict[str, str], ...] = (
    {"name": NEXTJS_THEME, "color": "#000000", "description": "Next.js / React projects"},
    {"name": PYTHON_THEME, "color": "#3776AB", "description": "Python projects"},
    {
        "name": EXPERIMENTS_THEME,
        "color": "#FF6B6B",
        "description": "Experimental / learning projects",
    },
    {"name": ARCHIVED_THEME, "color": "#6B7280", "description": "Deprecated / inactive projects"},
    {
        "name": UNCLASSIFIED_THEME,
        "color": "#9CA3AF",
        "description": "Fallback for repos without clear theme",
    },
)

ARCHIVAL_URL_MARKERS = ("archived", "deprecated")

ARCHIVAL_KEYWORDS = (
    "deprecated",
    "archived",
    "no longer maintained",
    "unmaintained",
    "obsolete",
    "abandoned",
    "end of life",
    "superseded",
)

# Declaration order breaks score ties.
THEME_KEYWORDS: dict[str, tuple[str, ...]] = {
    NEXTJS_THEME: (
        "next.js",
        "nextjs",
        "react",
        "tailwind",
        "vercel",
        "web app",
        "frontend",
        "jsx",
        "dashboard",
    ),
    PYTHON_THEME: (
        "python",
        "django",
        "flask",
        "fastapi",
        "pandas",
        "numpy",
        "pytorch",
        "tensorflow",
        "scikit-learn",
        "machine learning",
        "data science",
        "jupyter",
    ),
    EXPERIMENTS_THEME: (
        "experiment",
        "experiments",
        "experimental",
        "prototype",
        "proof of concept",
        "poc",
        "playground",
        "learning",
        "tutorial",
        "sandbox",
    ),
}

PYTHON_MARKER_FILES = frozenset(
    {
        "requirements.txt",
        "setup.py",
        "setup.cfg",
        "pyproject.toml",
        "Pipfile",
        "Pipfile.lock",
        "poetry.lock",
    }
)
PYTHON_SOURCE_SUFFIX = ".py"

MIN_KEYWORD_HITS = 2

FLAGSHIP_DEPENDENCY = "next"
BASE_UI_DEPENDENCY = "react"
SECONDARY_UI_DEPENDENCY = "vue"

__all__ = [
    "ARCHIVAL_KEYWORDS",
    "ARCHIVAL_URL_MARKERS",
    "ARCHIVED_THEME",
    "BASE_UI_DEPENDENCY",
    "DEFAULT_THEMES",
    "EXPERIMENTS_THEME",
    "FLAGSHIP_DEPENDENCY",
    "MIN_KEYWORD_HITS",
    "NEXTJS_THEME",
    "PYTHON_MARKER_FILES",
    "PYTHON_SOURCE_SUFFIX",
    "PYTHON_THEME",
    "SECONDARY_UI_DEPENDENCY",
    "THEME_KEYWORDS",
    "UNCLASSIFIED_THEME",
]
