"""Path normalization and safety predicates.

Every helper here operates on plain strings and performs no filesystem I/O so
the same rules apply to Windows drive paths, WSL mount paths, UNC shares, and
POSIX paths regardless of the host platform. Canonical paths always use forward
slashes.
"""

from __future__ import annotations

import os
import posixpath
import re
from typing import Iterable

UNKNOWN_SEGMENT = "unknown"
MAX_CONFLICT_SUFFIX = 100
MAX_PATH_LENGTH = 250

_DRIVE = re.compile(r"^([A-Za-z]):")
_WSL_MOUNT = re.compile(r"^/mnt/([a-zA-Z])/(.*)$")
_WSL_MOUNT_PREFIX = re.compile(r"^/mnt/[a-zA-Z]/")
_SEPARATOR_RUN = re.compile(r"/+")
_INVALID_CHARS = re.compile(r'[<>:"|?*]')

SYSTEM_PATHS_WINDOWS = (
    "C:/Windows",
    "C:/Program Files",
    "C:/Program Files (x86)",
    "C:/ProgramData",
    "C:/Users/Default",
    "C:/Recovery",
    "C:/$Recycle.Bin",
    "C:/System Volume Information",
)

SYSTEM_PATHS_POSIX = (
    "/bin",
    "/boot",
    "/dev",
    "/etc",
    "/lib",
    "/lib64",
    "/opt",
    "/proc",
    "/root",
    "/sbin",
    "/sys",
    "/tmp",
    "/usr",
    "/var",
)


class PathConflictError(RuntimeError):
    """Raised when no conflict-free suffix can be found for a target path."""


def normalize(path: str) -> str:
    """Return ``path`` with every backslash converted to a forward slash."""

    return path.replace("\\", "/")


def is_wsl_form(path: str) -> bool:
    """Return True for WSL share, WSL mount, or POSIX-style paths.

    Args:
        path: Raw path string in any separator style.

    Returns:
        bool: True when the path looks like it lives on the Linux side of WSL.
    """

    lowered = normalize(path).lower()
    if lowered.startswith("//wsl$/") or lowered.startswith("//wsl.localhost/"):
        return True
    if _WSL_MOUNT_PREFIX.match(path):
        return True
    return path.startswith("/") and not path.startswith("//")


def to_windows_form(path: str) -> str:
    """Rewrite ``/mnt/<drive>/...`` into ``<DRIVE>:/...``; normalize anything else."""

    match = _WSL_MOUNT.match(path)
    if match:
        return f"{match.group(1).upper()}:/{match.group(2)}"
    return normalize(path)


def drive_letter(path: str) -> str | None:
    """Return the upper-cased drive letter of ``path`` or None when absent."""

    match = _DRIVE.match(normalize(path))
    return match.group(1).upper() if match else None


def same_volume(first: str, second: str) -> bool:
    """Return True only when both paths carry the same drive letter.

    POSIX paths never compare as same-volume, so moves between them always
    take the copy-then-delete route.
    """

    first_drive = drive_letter(first)
    second_drive = drive_letter(second)
    if not first_drive or not second_drive:
        return False
    return first_drive == second_drive


def _absolute(path: str) -> str:
    """Resolve ``path`` to an absolute canonical form, collapsing ``.``/``..``."""

    normalized = normalize(path)
    match = _DRIVE.match(normalized)
    if match:
        rest = normalized[2:] or "/"
        if not rest.startswith("/"):
            rest = "/" + rest
        return f"{match.group(1).upper()}:{posixpath.normpath(rest)}"
    if not normalized.startswith("/"):
        normalized = normalize(os.getcwd()).rstrip("/") + "/" + normalized
        return _absolute(normalized)
    return posixpath.normpath(normalized)


def is_inside_root(target: str, root: str) -> bool:
    """Return True when ``target`` resolves to ``root`` or a path beneath it.

    Both paths are resolved before comparison, so ``root/../elsewhere`` is
    rejected. The comparison is case-insensitive and respects segment
    boundaries (``/data/repos-old`` is not inside ``/data/repos``).
    """

    resolved_target = _absolute(target).lower()
    resolved_root = _absolute(root).lower().rstrip("/")
    if not resolved_root:
        return resolved_target.startswith("/")
    return resolved_target == resolved_root or resolved_target.startswith(resolved_root + "/")


def is_system_path(path: str) -> bool:
    """Return True when ``path`` is, or lives under, a protected OS directory."""

    candidate = normalize(path).lower().rstrip("/")
    for system_path in (*SYSTEM_PATHS_WINDOWS, *SYSTEM_PATHS_POSIX):
        protected = system_path.lower()
        if candidate == protected or candidate.startswith(protected + "/"):
            return True
    return False


def is_valid_path(path: str) -> bool:
    """Return True when ``path`` is long enough, short enough, and free of reserved characters."""

    if not path or len(path) < 3:
        return False
    if len(path) > MAX_PATH_LENGTH:
        return False
    without_drive = _DRIVE.sub("", path, count=1)
    return not _INVALID_CHARS.search(without_drive)


def resolve_conflict(base_path: str, existing_paths: Iterable[str]) -> str:
    """Return ``base_path`` or the first free ``-N`` suffixed variant.

    Args:
        base_path: Desired target path.
        existing_paths: Paths already taken; compared case-insensitively.

    Returns:
        str: ``base_path`` when free, otherwise ``base_path-2``, ``base_path-3``...

    Raises:
        PathConflictError: If every suffix up to the limit is already taken.
    """

    taken = {normalize(path).lower() for path in existing_paths}
    if normalize(base_path).lower() not in taken:
        return base_path

    suffix = 2
    while suffix <= MAX_CONFLICT_SUFFIX:
        candidate = f"{base_path}-{suffix}"
        if normalize(candidate).lower() not in taken:
            return candidate
        suffix += 1
    raise PathConflictError(f"Too many path conflicts for {base_path}")


def join_paths(*parts: str) -> str:
    """Join path parts with single forward slashes.

    A leading ``//`` on the first part (UNC share or WSL share) survives the
    join; every other run of separators collapses to one.
    """

    if not parts:
        return ""
    cleaned: list[str] = []
    for index, part in enumerate(parts):
        text = normalize(part)
        if index < len(parts) - 1:
            text = text.rstrip("/")
        cleaned.append(text)
    joined = _SEPARATOR_RUN.sub("/", "/".join(cleaned))
    if cleaned[0].startswith("//"):
        return "/" + joined
    return joined


def strip_trailing_separator(path: str) -> str:
    """Drop trailing separators except where they denote a root (``/`` or ``C:/``)."""

    normalized = normalize(path)
    stripped = normalized.rstrip("/")
    if not stripped:
        return "/" if normalized else ""
    if _DRIVE.fullmatch(stripped):
        return stripped + "/"
    return stripped


def last_segment(path: str) -> str:
    """Return the final path segment, or ``"unknown"`` for degenerate input."""

    parts = [part for part in normalize(path).split("/") if part]
    return parts[-1] if parts else UNKNOWN_SEGMENT


def parent_of(path: str) -> str:
    """Return the parent directory, keeping drive-letter and UNC share roots intact."""

    normalized = normalize(path)
    parts = [part for part in normalized.split("/") if part]
    if normalized.startswith("//"):
        # server and share name form the root of a UNC path
        return "//" + "/".join(parts[:-1] if len(parts) > 2 else parts)
    has_drive = bool(_DRIVE.match(normalized))

    if len(parts) <= 1:
        return f"{parts[0]}/" if has_drive and parts else "/"

    parts.pop()
    result = "/".join(parts)
    if has_drive:
        return result if len(parts) > 1 else f"{parts[0]}/"
    return "/" + result


__all__ = [
    "MAX_CONFLICT_SUFFIX",
    "MAX_PATH_LENGTH",
    "PathConflictError",
    "SYSTEM_PATHS_POSIX",
    "SYSTEM_PATHS_WINDOWS",
    "UNKNOWN_SEGMENT",
    "drive_letter",
    "is_inside_root",
    "is_system_path",
    "is_valid_path",
    "is_wsl_form",
    "join_paths",
    "last_segment",
    "normalize",
    "parent_of",
    "resolve_conflict",
    "same_volume",
    "strip_trailing_separator",
    "to_windows_form",
]
