"""Base runner types: stages, progress snapshots, callbacks and results."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import CleanupConfig
    from ..scanner import ScanResult


class Stage(str, Enum):
    """Lifecycle of one operation."""

    IDLE = "idle"
    SCANNING = "scanning"
    WAITING = "waiting"
    RUNNING = "running"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time progress of the current operation."""

    stage: Stage
    processed: int = 0
    total: int = 0
    photos_to_delete: int = 0
    videos_to_delete: int = 0
    videos_to_move: int = 0
    folders_to_delete: int = 0
    dry_run: bool = False

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 0.0
        return min(100.0, 100.0 * self.processed / self.total)


@dataclass
class RunnerCallbacks:
    """
    Callbacks for runner progress reporting.

    Allows CLI to display progress without coupling runner to Rich/UI.
    All callbacks are optional - if None, no callback is made.
    """

    on_stage: Callable[[ProgressSnapshot], None] | None = None  # every stage transition
    on_progress: Callable[[ProgressSnapshot], None] | None = None  # processed/total updates
    on_log: Callable[[str], None] | None = None  # decisions and destructive actions
    on_scan_complete: Callable[["ScanResult"], None] | None = None


@dataclass
class PendingOperation:
    """A completed (or loaded and verified) scan awaiting confirmation."""

    result: "ScanResult"
    config: "CleanupConfig"


@dataclass
class CleanupResult:
    """Result of executing (or simulating) a cleanup."""

    success: bool
    aborted: bool = False
    dry_run: bool = False
    photos_deleted: int = 0
    videos_deleted: int = 0
    videos_moved: int = 0
    folders_deleted: int = 0
    folders_skipped: int = 0
    failures: int = 0
    operation_log_path: Path | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.photos_deleted + self.videos_deleted + self.videos_moved + self.folders_deleted


@dataclass
class RevertResult:
    """Result of replaying an operation log in reverse."""

    restored: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    unrecoverable: list[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def success(self) -> bool:
        return not self.failed and not self.aborted
