"""
Verification of a loaded scan against the current filesystem.

Drops files and folders that disappeared since the scan was saved and
re-checks folder emptiness, so a stale scan can go straight to confirmation
without a full rescan.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from .cancel import CancelToken, is_cancelled
from .scanner import FileDescriptor, FolderDescriptor, ScanResult, path_key

logger = logging.getLogger(__name__)


class ScanVerifier:
    """Re-checks every path referenced by a ScanResult."""

    def __init__(self, cancel: CancelToken | None = None, on_log: Callable[[str], None] | None = None):
        self.cancel = cancel
        self.on_log = on_log

    def _log(self, message: str, level: int = logging.INFO):
        logger.log(level, message)
        if self.on_log:
            self.on_log(message)

    def _existing(self, files: list[FileDescriptor], label: str) -> list[FileDescriptor]:
        verified = []
        for file in files:
            if is_cancelled(self.cancel):
                break
            if file.path.is_file():
                verified.append(file)
            else:
                self._log(f"{label} no longer exists: {file.name}")
        return verified

    def _would_be_empty(self, folder: Path, pending: set[str], deletable: set[str]) -> bool:
        """True if only pending files and deletable subfolders remain in folder."""
        try:
            with os.scandir(folder) as it:
                entries = list(it)
        except OSError as e:
            self._log(f"Error checking directory {folder}: {e}", logging.WARNING)
            return False

        for entry in entries:
            key = path_key(entry.path)
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                return False
            if is_dir and key not in deletable:
                return False
            if not is_dir and key not in pending:
                return False
        return True

    def _verify_folder(
        self, folder: FolderDescriptor, pending: set[str], deletable: set[str]
    ) -> FolderDescriptor | None:
        if not folder.path.is_dir():
            self._log(f"Empty folder no longer exists: {folder.name}")
            return None

        if folder.requires_user_decision or folder.has_non_media_files:
            survivors = []
            for file in folder.non_media_files:
                if file.path.exists():
                    survivors.append(file)
                else:
                    self._log(f"Non-media file no longer exists: {file.name}")

            if survivors:
                return replace(folder, non_media_files=tuple(survivors), size=sum(f.size for f in survivors))

            if self._would_be_empty(folder.path, pending, deletable):
                return replace(
                    folder, has_non_media_files=False, non_media_files=(), requires_user_decision=False, size=0
                )
            self._log(f"Folder no longer empty: {folder.name}")
            return None

        if self._would_be_empty(folder.path, pending, deletable):
            return folder
        self._log(f"Folder no longer empty: {folder.name}")
        return None

    def verify(self, result: ScanResult, move_videos: bool = True) -> ScanResult:
        """
        Verify that everything in result still exists.

        Args:
            result: Scan result loaded from disk
            move_videos: Whether long videos will leave their folders

        Returns:
            New ScanResult containing only verified entries
        """
        self._log(
            f"Original counts - Photos: {len(result.photo_files)}, Short videos: {len(result.short_videos)}, "
            f"Long videos: {len(result.long_videos)}, Empty folders: {len(result.empty_folders)}"
        )

        verified = ScanResult(
            photo_files=self._existing(result.photo_files, "Photo file"),
            short_videos=self._existing(result.short_videos, "Short video"),
            long_videos=self._existing(result.long_videos, "Long video"),
        )

        pending = verified.pending_file_paths
        if not move_videos:
            pending -= {path_key(v.path) for v in verified.long_videos}
        deletable: set[str] = set()
        kept: dict[str, FolderDescriptor] = {}

        # Children before parents, whatever order the document used
        for folder in sorted(result.empty_folders, key=lambda f: len(f.path.parts), reverse=True):
            if is_cancelled(self.cancel):
                break
            checked = self._verify_folder(folder, pending, deletable)
            if checked is None:
                continue
            key = path_key(checked.path)
            kept[key] = checked
            if not checked.requires_user_decision:
                deletable.add(key)

        verified.empty_folders = [kept[path_key(f.path)] for f in result.empty_folders if path_key(f.path) in kept]

        self._log(
            f"Verified files still exist - Photos: {len(verified.photo_files)}, "
            f"Short videos: {len(verified.short_videos)}, Long videos: {len(verified.long_videos)}, "
            f"Empty folders: {len(verified.empty_folders)}"
        )
        return verified


def verify_scan(
    result: ScanResult,
    on_log: Callable[[str], None] | None = None,
    move_videos: bool = True,
    cancel: CancelToken | None = None,
) -> ScanResult:
    """
    Convenience function to verify a loaded scan.

    Args:
        result: Scan result loaded from disk
        on_log: Receives human-readable log lines
        move_videos: Whether long videos will leave their folders
        cancel: Checked before each entry

    Returns:
        ScanResult with vanished entries removed
    """
    return ScanVerifier(cancel=cancel, on_log=on_log).verify(result, move_videos=move_videos)
