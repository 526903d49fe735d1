"""
Extension and ignore-folder predicates used by the scanner.

All functions are pure: no filesystem access, no side effects besides
logging a warning for malformed ignore entries.
"""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


def normalize_extensions(value: str | Iterable[str] | None) -> frozenset[str]:
    """
    Normalize an extension list to a set of lower-case suffixes without dots.

    Accepts a comma-separated string ("jpg, .PNG") or any iterable of strings.
    Empty entries are dropped.
    """
    if value is None:
        return frozenset()
    items = value.split(",") if isinstance(value, str) else value
    return frozenset(ext.strip().lstrip(".").lower() for ext in items if ext and ext.strip().lstrip("."))


def _normalize(path: str | Path) -> str:
    return os.path.normpath(os.path.abspath(os.fspath(path))).lower()


def resolve_ignore_paths(ignore_folders: Iterable[str | Path] | None, root_folder: str | Path) -> list[str]:
    """
    Resolve ignore entries relative to root_folder.

    Returns normalized, lower-cased absolute paths. Malformed entries
    (empty, not a path, containing NUL) are skipped with a warning.
    """
    resolved = []
    for entry in ignore_folders or ():
        if not isinstance(entry, (str, Path)) or not str(entry).strip() or "\x00" in str(entry):
            logger.warning(f"Could not resolve ignored folder path: {entry!r}")
            continue
        resolved.append(_normalize(os.path.join(os.fspath(root_folder), os.fspath(entry))))
    return resolved


def is_ignored(path: str | Path, ignore_folders: Iterable[str | Path] | None, root_folder: str | Path) -> bool:
    """
    Check if path is an ignored folder or lies inside one.

    Args:
        path: Path to test
        ignore_folders: Ignore entries, absolute or relative to root_folder
        root_folder: Folder the relative entries are resolved against

    Returns:
        True if path starts with any resolved ignore path
    """
    if not ignore_folders:
        return False
    return is_under_any(path, resolve_ignore_paths(ignore_folders, root_folder))


def is_under_any(path: str | Path, resolved_paths: Iterable[str]) -> bool:
    """Check path against paths already resolved by resolve_ignore_paths."""
    normalized = _normalize(path)
    for ignored in resolved_paths:
        if normalized == ignored or normalized.startswith(ignored.rstrip(os.sep) + os.sep):
            return True
    return False


def matches_extension(path: str | Path, extensions: frozenset[str] | set[str]) -> bool:
    """Check the lower-cased suffix (without the dot) against a normalized set."""
    suffix = os.path.splitext(os.fspath(path))[1]
    return bool(suffix) and suffix[1:].lower() in extensions
