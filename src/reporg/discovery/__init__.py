"""Repository discovery: directory walking and git probing."""

from .models import ProbeOutcome, ProbeReport, WalkStep
from .prober import GitCommandError, RepositoryProber, is_github_remote, parse_github_url
from .walker import NOISE_DIRECTORIES, RepositoryWalker

__all__ = [
    "GitCommandError",
    "NOISE_DIRECTORIES",
    "ProbeOutcome",
    "ProbeReport",
    "RepositoryProber",
    "RepositoryWalker",
    "WalkStep",
    "is_github_remote",
    "parse_github_url",
]
