"""
File discovery and folder analysis for cleanup scanning.

Walks a directory tree depth-first, collecting photo/video descriptors and
the folders that are (or would become) empty once pending deletions and
moves are applied.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .cancel import CancelToken, is_cancelled
from .filters import is_under_any, matches_extension, resolve_ignore_paths

logger = logging.getLogger(__name__)


def format_file_size(size: int) -> str:
    """Format a byte count for log lines."""
    if size > 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024 * 1024):.2f} GB"
    elif size > 1024 * 1024:
        return f"{size / (1024 * 1024):.2f} MB"
    elif size > 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size} bytes"


def _timestamp(mtime: float) -> datetime:
    return datetime.fromtimestamp(mtime, tz=timezone.utc)


def _format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_duration(value) -> float | None:
    """Duration from a persisted document; rejects anything that is not a number."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Invalid duration: {value!r}")
    return float(value)


def _require_mapping(data, kind: str) -> dict:
    if not isinstance(data, dict):
        raise TypeError(f"{kind} entry must be an object, got {type(data).__name__}")
    return data


def path_key(path: str | Path) -> str:
    """Comparable form of a path for membership checks within one scan."""
    return os.path.normpath(os.fspath(path))


@dataclass(frozen=True)
class FileDescriptor:
    """A single scanned file. Videos carry duration and duplicate flags."""

    path: Path
    name: str
    size: int
    last_modified: datetime | None
    duration: float | None = None
    is_duplicate: bool = False

    @classmethod
    def from_path(cls, path: Path) -> FileDescriptor:
        """Create a descriptor from a file path (stats the file)."""
        stat = path.stat()
        return cls(path=path, name=path.name, size=stat.st_size, last_modified=_timestamp(stat.st_mtime))

    @classmethod
    def from_entry(cls, entry: os.DirEntry) -> FileDescriptor:
        stat = entry.stat(follow_symlinks=False)
        return cls(
            path=Path(entry.path), name=entry.name, size=stat.st_size, last_modified=_timestamp(stat.st_mtime)
        )

    def to_dict(self, video: bool = False) -> dict:
        data = {
            "path": str(self.path),
            "name": self.name,
            "size": self.size,
            "lastModified": _format_timestamp(self.last_modified),
        }
        if video:
            data["duration"] = self.duration
        if self.is_duplicate:
            data["isDuplicate"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict) -> FileDescriptor:
        path = Path(_require_mapping(data, "File")["path"])
        return cls(
            path=path,
            name=data.get("name") or path.name,
            size=int(data.get("size") or 0),
            last_modified=_parse_timestamp(data.get("lastModified")),
            duration=_parse_duration(data.get("duration")),
            is_duplicate=bool(data.get("isDuplicate", False)),
        )


@dataclass(frozen=True)
class FolderDescriptor:
    """
    A folder proposed for removal.

    Folders whose only survivors are non-media files carry
    requires_user_decision=True and are never deleted automatically.
    """

    path: Path
    name: str
    last_modified: datetime | None
    has_non_media_files: bool = False
    non_media_files: tuple[FileDescriptor, ...] = ()
    requires_user_decision: bool = False
    size: int = 0

    def to_dict(self) -> dict:
        data = {
            "path": str(self.path),
            "name": self.name,
            "lastModified": _format_timestamp(self.last_modified),
        }
        if self.requires_user_decision or self.has_non_media_files:
            data.update(
                {
                    "hasNonMediaFiles": self.has_non_media_files,
                    "nonMediaFiles": [f.to_dict() for f in self.non_media_files],
                    "requiresUserDecision": self.requires_user_decision,
                    "size": self.size,
                }
            )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> FolderDescriptor:
        path = Path(_require_mapping(data, "Folder")["path"])
        return cls(
            path=path,
            name=data.get("name") or path.name,
            last_modified=_parse_timestamp(data.get("lastModified")),
            has_non_media_files=bool(data.get("hasNonMediaFiles", False)),
            non_media_files=tuple(FileDescriptor.from_dict(f) for f in data.get("nonMediaFiles") or ()),
            requires_user_decision=bool(data.get("requiresUserDecision", False)),
            size=int(data.get("size") or 0),
        )


@dataclass
class ScanResult:
    """Everything a scan proposes to do, grouped by category."""

    photo_files: list[FileDescriptor] = field(default_factory=list)
    short_videos: list[FileDescriptor] = field(default_factory=list)
    long_videos: list[FileDescriptor] = field(default_factory=list)
    empty_folders: list[FolderDescriptor] = field(default_factory=list)

    @property
    def deletable_folders(self) -> list[FolderDescriptor]:
        """Folders that can be removed without asking."""
        return [f for f in self.empty_folders if not f.requires_user_decision]

    @property
    def folders_requiring_decision(self) -> list[FolderDescriptor]:
        return [f for f in self.empty_folders if f.requires_user_decision]

    @property
    def pending_file_paths(self) -> set[str]:
        """Keys of every file that will be deleted or moved."""
        return {path_key(f.path) for f in self.photo_files + self.short_videos + self.long_videos}

    @property
    def counts(self) -> dict[str, int]:
        return {
            "photos": len(self.photo_files),
            "short_videos": len(self.short_videos),
            "long_videos": len(self.long_videos),
            "empty_folders": len(self.empty_folders),
        }

    def to_dict(self) -> dict:
        """Serialize as the scanResults section of a persisted scan."""
        return {
            "totalPhotos": len(self.photo_files),
            "totalShortVideos": len(self.short_videos),
            "totalLongVideos": len(self.long_videos),
            "totalEmptyFolders": len(self.empty_folders),
            "photoFiles": [f.to_dict() for f in self.photo_files],
            "shortVideos": [f.to_dict(video=True) for f in self.short_videos],
            "longVideos": [f.to_dict(video=True) for f in self.long_videos],
            "emptyFolders": [f.to_dict() for f in self.empty_folders],
        }

    @classmethod
    def from_dict(cls, data: dict) -> ScanResult:
        return cls(
            photo_files=[FileDescriptor.from_dict(f) for f in data.get("photoFiles") or ()],
            short_videos=[FileDescriptor.from_dict(f) for f in data.get("shortVideos") or ()],
            long_videos=[FileDescriptor.from_dict(f) for f in data.get("longVideos") or ()],
            empty_folders=[FolderDescriptor.from_dict(f) for f in data.get("emptyFolders") or ()],
        )


class DirectoryScanner:
    """
    Recursive scanner with cooperative cancellation.

    Read failures are logged and the affected subtree contributes nothing;
    they never stop the scan.
    """

    def __init__(self, cancel: CancelToken | None = None, on_log: Callable[[str], None] | None = None):
        self.cancel = cancel
        self.on_log = on_log

    def _log(self, message: str, level: int = logging.INFO):
        logger.log(level, message)
        if self.on_log:
            self.on_log(message)

    def _list_dir(self, directory: Path) -> list[os.DirEntry] | None:
        """List a directory sorted by name, or None if it cannot be read."""
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._log(f"Error scanning directory {directory}: {e}", logging.WARNING)
            return None

    def _walk_files(self, directory: Path, extensions: frozenset[str], ignored: list[str]) -> Iterator[os.DirEntry]:
        """Yield matching file entries depth-first, skipping ignored subtrees."""
        if is_cancelled(self.cancel):
            return

        for entry in self._list_dir(directory) or ():
            if is_cancelled(self.cancel):
                return

            path = Path(entry.path)
            if is_under_any(path, ignored):
                continue

            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file(follow_symlinks=False)
            except OSError as e:
                self._log(f"Error reading {path}: {e}", logging.WARNING)
                continue

            if is_dir:
                yield from self._walk_files(path, extensions, ignored)
            elif is_file and matches_extension(entry.name, extensions):
                yield entry

    def count_files(
        self,
        directory: Path,
        extensions: frozenset[str],
        ignore_folders: Iterable[str | Path] = (),
        root_folder: Path | None = None,
    ) -> int:
        """Count matching files without building descriptors."""
        ignored = resolve_ignore_paths(ignore_folders, root_folder or directory)
        return sum(1 for _ in self._walk_files(Path(directory), extensions, ignored))

    def scan(
        self,
        directory: Path,
        extensions: frozenset[str],
        ignore_folders: Iterable[str | Path] = (),
        root_folder: Path | None = None,
        on_file: Callable[[int, str], None] | None = None,
    ) -> list[FileDescriptor]:
        """
        Collect files matching extensions under directory.

        Args:
            directory: Folder to walk
            extensions: Normalized extension set (see filters.normalize_extensions)
            ignore_folders: Folders to skip entirely, relative to root_folder
            root_folder: Base for relative ignore entries (default: directory)
            on_file: Called with (files found so far, file name) per match

        Returns:
            FileDescriptors in depth-first, name-sorted order
        """
        ignored = resolve_ignore_paths(ignore_folders, root_folder or directory)
        files: list[FileDescriptor] = []

        for entry in self._walk_files(Path(directory), extensions, ignored):
            try:
                files.append(FileDescriptor.from_entry(entry))
            except OSError as e:
                self._log(f"Error reading file {entry.path}: {e}", logging.WARNING)
                continue
            if on_file:
                on_file(len(files), entry.name)

        return files

    def find_empty_directories(
        self,
        directory: Path,
        ignore_folders: Iterable[str | Path] = (),
        root_folder: Path | None = None,
    ) -> list[FolderDescriptor]:
        """
        Find directories that are empty or contain only empty directories.

        Evaluated bottom-up, so a parent whose children all qualify qualifies too.
        """
        ignored = resolve_ignore_paths(ignore_folders, root_folder or directory)
        results: list[FolderDescriptor] = []
        self._analyze_folders(Path(directory), ignored, frozenset(), False, results, set(), None)
        return results

    def find_future_empty_directories(
        self,
        directory: Path,
        ignore_folders: Iterable[str | Path],
        photos_to_delete: Iterable[FileDescriptor],
        short_videos: Iterable[FileDescriptor],
        long_videos: Iterable[FileDescriptor],
        root_folder: Path | None = None,
        on_folder: Callable[[int, str], None] | None = None,
    ) -> list[FolderDescriptor]:
        """
        Find directories that would be empty after pending deletions and moves.

        A folder left with files but no subfolders is returned flagged
        requires_user_decision, carrying its surviving files and their size.

        Returns:
            Folders in bottom-up order (children before parents)
        """
        ignored = resolve_ignore_paths(ignore_folders, root_folder or directory)
        pending = frozenset(path_key(f.path) for group in (photos_to_delete, short_videos, long_videos) for f in group)
        results: list[FolderDescriptor] = []
        self._analyze_folders(Path(directory), ignored, pending, True, results, set(), on_folder)
        return results

    def _analyze_folders(
        self,
        directory: Path,
        ignored: list[str],
        pending: frozenset[str],
        flag_non_media: bool,
        results: list[FolderDescriptor],
        deletable: set[str],
        on_folder: Callable[[int, str], None] | None,
    ):
        """Evaluate every subfolder of directory after its own children."""
        if is_cancelled(self.cancel):
            return

        entries = self._list_dir(directory)
        if entries is None:
            return

        for entry in entries:
            if is_cancelled(self.cancel):
                return

            subdir = Path(entry.path)
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            if is_under_any(subdir, ignored):
                continue

            self._analyze_folders(subdir, ignored, pending, flag_non_media, results, deletable, on_folder)
            if is_cancelled(self.cancel):
                return

            folder = self._evaluate_folder(subdir, pending, flag_non_media, deletable)
            if folder is None:
                continue

            results.append(folder)
            if not folder.requires_user_decision:
                deletable.add(path_key(subdir))
            else:
                self._log(
                    f"Folder contains only non-media files: {folder.name} "
                    f"({len(folder.non_media_files)} files, {format_file_size(folder.size)})"
                )

            if on_folder:
                label = f"{folder.name} (contains non-media files)" if folder.requires_user_decision else folder.name
                on_folder(len(results), label)

    def _evaluate_folder(
        self, folder: Path, pending: frozenset[str], flag_non_media: bool, deletable: set[str]
    ) -> FolderDescriptor | None:
        """Describe folder if nothing but pending files and deletable subfolders remain in it."""
        entries = self._list_dir(folder)
        if entries is None:
            return None

        remaining_files: list[FileDescriptor] = []
        remaining_dirs = 0

        for entry in entries:
            key = path_key(entry.path)
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False

            if is_dir:
                if key not in deletable:
                    remaining_dirs += 1
            elif key not in pending:
                try:
                    remaining_files.append(FileDescriptor.from_entry(entry))
                except OSError:
                    # Unreadable survivors still keep the folder
                    remaining_files.append(
                        FileDescriptor(path=Path(entry.path), name=entry.name, size=0, last_modified=None)
                    )

        if remaining_dirs > 0:
            return None

        try:
            last_modified = _timestamp(folder.stat().st_mtime)
        except OSError as e:
            self._log(f"Error analyzing directory {folder}: {e}", logging.WARNING)
            return None

        if not remaining_files:
            return FolderDescriptor(path=folder, name=folder.name, last_modified=last_modified)

        if flag_non_media:
            return FolderDescriptor(
                path=folder,
                name=folder.name,
                last_modified=last_modified,
                has_non_media_files=True,
                non_media_files=tuple(remaining_files),
                requires_user_decision=True,
                size=sum(f.size for f in remaining_files),
            )
        return None


def scan_folder(
    start_folder: Path, extensions: frozenset[str], ignore_folders: Iterable[str | Path] = ()
) -> list[FileDescriptor]:
    """
    Convenience function to scan a folder tree for matching files.

    Args:
        start_folder: Folder to walk
        extensions: Normalized extension set
        ignore_folders: Folders to skip, relative to start_folder

    Returns:
        List of FileDescriptors
    """
    return DirectoryScanner().scan(start_folder, extensions, ignore_folders, start_folder)
