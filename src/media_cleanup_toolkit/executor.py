"""
Executor module - Destructive file actions

Handles:
- Moving files and folders to the OS trash (send2trash)
- Permanent deletion when no trash is available
- Collision-safe moves: name.ext, name(1).ext, name(2).ext, ...
- Dry run: log what would happen, touch nothing

Every successful live action is appended to the run's OperationLog.
"""

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

from send2trash import send2trash
from send2trash.exceptions import TrashPermissionError

from .constants import DRY_RUN_PREFIX
from .oplog import OperationLog
from .scanner import format_file_size

logger = logging.getLogger(__name__)

LogFn = Callable[[str], None]


def _emit(on_log: LogFn | None, message: str, level: int = logging.INFO):
    logger.log(level, message)
    if on_log:
        on_log(message)


def with_counter(name: str, counter: int) -> str:
    """photo.jpg + 2 -> photo(2).jpg"""
    path = Path(name)
    return f"{path.stem}({counter}){path.suffix}"


def unique_destination(target_dir: Path, name: str) -> Path:
    """
    First free destination for name in target_dir.

    Appends (1), (2), ... before the extension until nothing exists at the path.
    """
    dest = target_dir / name
    counter = 1
    while dest.exists():
        dest = target_dir / with_counter(name, counter)
        counter += 1
    return dest


def reserve_destination(target_dir: Path, name: str) -> Path:
    """
    Claim a free destination by creating an empty placeholder exclusively.

    Closes the window between checking a name and moving onto it.
    """
    dest = target_dir / name
    counter = 1
    while True:
        try:
            with open(dest, "x"):
                return dest
        except FileExistsError:
            dest = target_dir / with_counter(name, counter)
            counter += 1


def delete_permanently(path: Path):
    """Delete a file, or a directory tree, without the trash."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def move_to_trash(path: Path, description: str = "file", on_log: LogFn | None = None) -> bool:
    """
    Move a file or folder to the trash, deleting permanently if no trash is available.

    Returns:
        True if the path is gone
    """
    try:
        send2trash(str(path))
        _emit(on_log, f"Moved {description} to trash: {path.name}")
        return True
    except TrashPermissionError as e:
        _emit(
            on_log,
            f"Warning: Trash not available ({e}), permanently deleting {description}: {path.name}",
            logging.WARNING,
        )
    except OSError as e:
        _emit(on_log, f"Failed to delete {description} {path}: {e}", logging.ERROR)
        return False

    try:
        delete_permanently(path)
    except OSError as e:
        _emit(on_log, f"Failed to delete {description} {path}: {e}", logging.ERROR)
        return False

    _emit(on_log, f"Permanently deleted {description}: {path.name}", logging.WARNING)
    return True


def remove_file(
    path: Path,
    dry_run: bool,
    operation_log: OperationLog | None = None,
    description: str = "file",
    on_log: LogFn | None = None,
) -> bool:
    """
    Remove a file or folder (trash first, permanent delete as fallback).

    Args:
        path: File or folder to remove
        dry_run: Only inspect and log; nothing is removed
        operation_log: Receives a 'trash' entry on success
        description: Noun used in log lines ("photo", "short video", ...)
        on_log: Receives human-readable log lines

    Returns:
        True on success (in dry run: unless the path cannot be stat'ed)
    """
    path = Path(path)

    if dry_run:
        try:
            size = path.stat().st_size
        except OSError as e:
            _emit(on_log, f"{DRY_RUN_PREFIX} Error getting file info for {path}: {e}", logging.WARNING)
            return False
        _emit(
            on_log,
            f"{DRY_RUN_PREFIX} Would delete {description} '{path.name}' ({format_file_size(size)}) in '{path.parent}'",
        )
        return True

    # Size must be captured before the file is gone
    size = 0
    try:
        size = path.stat().st_size
    except OSError as e:
        _emit(on_log, f"Warning: Could not get file size for {path}: {e}", logging.WARNING)

    removed = move_to_trash(path, description, on_log)
    if removed and operation_log is not None:
        operation_log.add_trash(path, size)
    return removed


def move_file(
    path: Path,
    target_dir: Path,
    dry_run: bool,
    operation_log: OperationLog | None = None,
    description: str = "file",
    duration: float | None = None,
    on_log: LogFn | None = None,
) -> Path | None:
    """
    Move a file into target_dir without ever overwriting.

    Args:
        path: File to move
        target_dir: Destination folder
        dry_run: Only compute and log the destination
        operation_log: Receives a 'move' entry on success
        description: Noun used in log lines
        duration: Optional video duration shown in dry-run lines
        on_log: Receives human-readable log lines

    Returns:
        Destination path, or None if the move failed
    """
    path = Path(path)
    target_dir = Path(target_dir)

    try:
        if path.parent.resolve() == target_dir.resolve():
            _emit(on_log, f"{description.capitalize()} already in target directory: {path.name}")
            return path
    except OSError:
        pass

    if dry_run:
        dest = unique_destination(target_dir, path.name)
        try:
            size_text = format_file_size(path.stat().st_size)
        except OSError:
            size_text = "unknown size"
        duration_text = f", {duration} seconds" if duration is not None else ""
        _emit(
            on_log,
            f"{DRY_RUN_PREFIX} Would move {description} '{path.name}' ({size_text}{duration_text}) to '{dest.name}'",
        )
        return dest

    try:
        size = path.stat().st_size
        target_dir.mkdir(parents=True, exist_ok=True)
        dest = reserve_destination(target_dir, path.name)
    except OSError as e:
        _emit(on_log, f"Failed to move {description} {path.name}: {e}", logging.ERROR)
        return None

    try:
        shutil.move(str(path), str(dest))
    except (OSError, shutil.Error) as e:
        dest.unlink(missing_ok=True)
        _emit(on_log, f"Failed to move {description} {path.name}: {e}", logging.ERROR)
        return None

    _emit(on_log, f"Moved {description}: {path.name} -> {dest.name}")
    if operation_log is not None:
        operation_log.add_move(path, dest, size)
    return dest


def ensure_directory(path: Path, dry_run: bool, on_log: LogFn | None = None) -> bool:
    """Create path (with parents) unless it exists; dry run only reports."""
    path = Path(path)
    if path.is_dir():
        return True
    if dry_run:
        _emit(on_log, f"Video target directory '{path}' does not exist yet and would be created")
        return True
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        _emit(on_log, f"Failed to create directory {path}: {e}", logging.ERROR)
        return False
    _emit(on_log, f"Created directory: {path}")
    return True
