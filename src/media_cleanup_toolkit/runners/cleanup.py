"""Cleanup runner - scan, confirm, execute and revert, one operation at a time."""

import logging
import os
import shutil
import threading
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from ..cancel import CancelToken
from ..classifier import classify_videos
from ..config import CleanupConfig
from ..exceptions import NoPendingOperationError, OperationInProgressError, PersistenceError
from ..executor import ensure_directory, move_file, remove_file
from ..oplog import OperationLog
from ..prober import DurationProbe, probe_duration
from ..scanner import DirectoryScanner, FileDescriptor, ScanResult
from ..store import LoadedScan, ScanStore
from ..verifier import verify_scan
from .base import CleanupResult, PendingOperation, ProgressSnapshot, RevertResult, RunnerCallbacks, Stage

logger = logging.getLogger(__name__)


def _is_empty_dir(path: Path) -> bool:
    with os.scandir(path) as it:
        return next(it, None) is None


class CleanupRunner:
    """
    Stage machine driving scan, cleanup and revert.

    idle -> scanning -> waiting -> running -> done | aborted

    Only one operation runs at a time; a second request while one is in
    flight raises OperationInProgressError. Uses callbacks for progress
    reporting without coupling to UI.
    """

    def __init__(
        self,
        store: ScanStore | None = None,
        prober: DurationProbe | None = None,
        callbacks: RunnerCallbacks | None = None,
    ):
        """
        Initialize the runner.

        Args:
            store: Persistence for scan results and operation logs (None: nothing is saved)
            prober: Video duration probe (default: ffprobe on PATH)
            callbacks: Optional callbacks for progress reporting
        """
        self.store = store
        self.prober = prober or probe_duration
        self.callbacks = callbacks or RunnerCallbacks()
        self.cancel = CancelToken()
        self.pending: PendingOperation | None = None
        self.last_operation_log: OperationLog | None = None
        self.last_scan_path: Path | None = None

        self._operation_lock = threading.Lock()
        self._state_lock = threading.RLock()
        self._snapshot = ProgressSnapshot(stage=Stage.IDLE)
        self._logs: list[str] = []

    # -- state -----------------------------------------------------------

    @property
    def stage(self) -> Stage:
        return self._snapshot.stage

    @property
    def progress(self) -> ProgressSnapshot:
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._operation_lock.locked()

    @property
    def logs(self) -> list[str]:
        """Timestamped log lines of the current operation."""
        with self._state_lock:
            return list(self._logs)

    def _begin(self):
        if not self._operation_lock.acquire(blocking=False):
            raise OperationInProgressError("Another operation is already running")
        self.cancel.reset()

    def _end(self):
        self._operation_lock.release()

    def _record(self, message: str):
        """Buffer a line and forward it; the producer has already logged it."""
        with self._state_lock:
            self._logs.append(f"[{datetime.now().strftime('%H:%M:%S')}] {message}")
        if self.callbacks.on_log:
            self.callbacks.on_log(message)

    def _log(self, message: str, level: int = logging.INFO):
        logger.log(level, message)
        self._record(message)

    def _set_stage(self, stage: Stage, **fields):
        with self._state_lock:
            self._snapshot = replace(self._snapshot, stage=stage, **fields)
            snapshot = self._snapshot
        if self.callbacks.on_stage:
            self.callbacks.on_stage(snapshot)

    def _report(self, **fields):
        with self._state_lock:
            if "processed" in fields:
                fields["processed"] = max(self._snapshot.processed, min(fields["processed"], self._snapshot.total))
            self._snapshot = replace(self._snapshot, **fields)
            snapshot = self._snapshot
        if self.callbacks.on_progress:
            self.callbacks.on_progress(snapshot)

    def _reset_snapshot(self, stage: Stage, total: int = 0, dry_run: bool = False):
        with self._state_lock:
            self._snapshot = ProgressSnapshot(stage=self._snapshot.stage, total=total, dry_run=dry_run)
        self._set_stage(stage)

    @staticmethod
    def _pending_counts(result: ScanResult, config: CleanupConfig) -> dict[str, int]:
        return {
            "photos_to_delete": len(result.photo_files),
            "videos_to_delete": len(result.short_videos),
            "videos_to_move": len(result.long_videos) if config.move_videos else 0,
            "folders_to_delete": len(result.deletable_folders) if config.delete_empty_folders else 0,
        }

    def abort(self):
        """
        Abort the current operation.

        A running scan or cleanup stops at its next checkpoint; a pending
        confirmation is discarded. Does nothing when idle.
        """
        with self._state_lock:
            if self.is_running:
                if not self.cancel.cancelled:
                    self.cancel.cancel()
                    self._log("Abort requested, stopping after the current item")
                return
            if self.stage == Stage.WAITING:
                self.pending = None
                self._log("Operation aborted, pending changes discarded")
                self._set_stage(Stage.ABORTED)

    # -- scan ------------------------------------------------------------

    def perform_scan(self, config: CleanupConfig) -> ScanResult | None:
        """
        Scan config.start_folder and wait for confirmation.

        Args:
            config: Cleanup inputs for this operation

        Returns:
            ScanResult, or None if the scan was aborted or the start folder is invalid
        """
        self._begin()
        try:
            self.pending = None
            self.last_scan_path = None
            with self._state_lock:
                self._logs.clear()
            self._reset_snapshot(Stage.SCANNING)

            if not config.start_folder.is_dir():
                self._log(f"Start folder does not exist or is not a directory: {config.start_folder}", logging.ERROR)
                self._set_stage(Stage.ABORTED)
                return None

            try:
                result = self._scan(config)
            except Exception as e:
                self._log(f"Error during scan: {e}", logging.ERROR)
                self._set_stage(Stage.ABORTED)
                raise

            if result is None:
                self._log("Scan aborted")
                self._set_stage(Stage.ABORTED)
                return None

            self.pending = PendingOperation(result=result, config=config)
            if self.store is not None:
                self.last_scan_path = self.store.save_scan(result, config)
                if self.last_scan_path is None:
                    self._log("Warning: scan results could not be saved", logging.WARNING)

            if self.callbacks.on_scan_complete:
                self.callbacks.on_scan_complete(result)
            self._set_stage(Stage.WAITING, **self._pending_counts(result, config))
            return result
        finally:
            self._end()

    def _scan(self, config: CleanupConfig) -> ScanResult | None:
        scanner = DirectoryScanner(cancel=self.cancel, on_log=self._record)
        root = config.start_folder
        ignore = config.scan_ignore_folders()

        self._log(f"Scanning {root}")
        photo_count = scanner.count_files(root, config.photo_extensions, ignore, root)
        video_count = scanner.count_files(root, config.video_extensions, ignore, root)
        if self.cancel.cancelled:
            return None

        self._report(total=photo_count + video_count, processed=0)
        self._log(f"Found {photo_count} photos and {video_count} videos to process")

        photos = scanner.scan(
            root,
            config.photo_extensions,
            ignore,
            root,
            on_file=lambda found, _name: self._report(processed=found, photos_to_delete=found),
        )
        if self.cancel.cancelled:
            return None

        videos = scanner.scan(root, config.video_extensions, ignore, root)
        if self.cancel.cancelled:
            return None

        done = len(photos)
        counts = {"short": 0, "duplicate": 0, "long": 0}

        def on_video(_video: FileDescriptor, kind: str):
            counts[kind] += 1
            self._report(
                processed=done + sum(counts.values()),
                videos_to_delete=counts["short"] + counts["duplicate"],
                videos_to_move=counts["long"],
            )

        classification = classify_videos(
            videos,
            config.min_video_length_sec,
            config.video_move_target,
            probe=self.prober,
            cancel=self.cancel,
            on_log=self._record,
            on_video=on_video,
        )
        if self.cancel.cancelled:
            return None

        result = ScanResult(
            photo_files=photos,
            short_videos=classification.short_videos,
            long_videos=classification.long_videos,
        )

        if config.delete_empty_folders:
            # Long videos only leave their folders when they are moved
            moving = result.long_videos if config.move_videos else []
            result.empty_folders = scanner.find_future_empty_directories(
                root,
                ignore,
                result.photo_files,
                result.short_videos,
                moving,
                root_folder=root,
                on_folder=lambda found, _label: self._report(folders_to_delete=found),
            )
            if self.cancel.cancelled:
                return None

        undecided = len(result.folders_requiring_decision)
        self._log(
            f"Scan complete: {len(result.photo_files)} photos, {len(result.short_videos)} short videos "
            f"({len(classification.duplicates)} duplicates), {len(result.long_videos)} long videos, "
            f"{len(result.empty_folders)} empty folders ({undecided} need a decision)"
        )
        return result

    # -- load ------------------------------------------------------------

    def load_scan_results(self, path: Path) -> LoadedScan | None:
        """Load a persisted scan without verifying it."""
        return ScanStore.load_scan(path)

    def verify_loaded_files(self, result: ScanResult, move_videos: bool = True) -> ScanResult:
        """Drop entries of a loaded scan that no longer exist on disk."""
        return verify_scan(result, on_log=self._record, move_videos=move_videos, cancel=self.cancel)

    def resume_from_scan(self, path: Path) -> ScanResult | None:
        """
        Load and verify a persisted scan, then wait for confirmation.

        Returns:
            Verified ScanResult, or None if verification was aborted

        Raises:
            PersistenceError: If the scan file cannot be loaded
        """
        loaded = self.load_scan_results(path)
        if loaded is None:
            raise PersistenceError(f"Could not load scan results from {path}")

        self._begin()
        try:
            self.pending = None
            with self._state_lock:
                self._logs.clear()
            self._reset_snapshot(Stage.SCANNING)
            self._log(f"Loaded scan results from {Path(path).name} ({loaded.timestamp})")

            result = self.verify_loaded_files(loaded.result, move_videos=loaded.config.move_videos)
            if self.cancel.cancelled:
                self._log("Verification aborted")
                self._set_stage(Stage.ABORTED)
                return None

            self.pending = PendingOperation(result=result, config=loaded.config)
            if self.callbacks.on_scan_complete:
                self.callbacks.on_scan_complete(result)
            self._set_stage(Stage.WAITING, **self._pending_counts(result, loaded.config))
            return result
        finally:
            self._end()

    # -- execute ---------------------------------------------------------

    def confirm(self, dry_run: bool = False) -> CleanupResult:
        """
        Execute the pending scan.

        Raises:
            NoPendingOperationError: If no scan is waiting for confirmation
        """
        pending = self.pending
        if pending is None:
            raise NoPendingOperationError("No pending operation to confirm")
        return self.execute_cleanup(pending.result, pending.config, dry_run=dry_run)

    def execute_cleanup(self, scan_result: ScanResult, config: CleanupConfig, dry_run: bool = False) -> CleanupResult:
        """
        Delete photos and short videos, move long videos, remove empty folders.

        Args:
            scan_result: What to act on
            config: Cleanup inputs (move target and enabled categories)
            dry_run: Log every action without touching the filesystem

        Returns:
            CleanupResult with execution summary
        """
        self._begin()
        try:
            self.pending = None
            counts = self._pending_counts(scan_result, config)
            self._reset_snapshot(Stage.RUNNING, total=sum(counts.values()), dry_run=dry_run)
            self._report(**counts)
            return self._execute(scan_result, config, dry_run)
        finally:
            self._end()

    def _execute(self, scan_result: ScanResult, config: CleanupConfig, dry_run: bool) -> CleanupResult:
        result = CleanupResult(success=True, dry_run=dry_run)
        operation_log = OperationLog()
        processed = 0

        self._log(f"Starting cleanup{' (dry run)' if dry_run else ''}")

        def step() -> bool:
            if self.cancel.cancelled:
                result.aborted = True
                return False
            return True

        def tick():
            nonlocal processed
            processed += 1
            self._report(processed=processed)

        def failed(message: str):
            result.failures += 1
            result.errors.append(message)

        moving = config.move_videos and scan_result.long_videos
        if moving and not ensure_directory(config.video_move_target, dry_run, self._record):
            failed(f"Could not create video target directory {config.video_move_target}")

        for photo in scan_result.photo_files:
            if not step():
                break
            if remove_file(photo.path, dry_run, operation_log, "photo", self._record):
                result.photos_deleted += 1
            else:
                failed(f"Could not delete photo {photo.path}")
            tick()

        for video in scan_result.short_videos:
            if not step():
                break
            description = "duplicate video" if video.is_duplicate else "short video"
            if remove_file(video.path, dry_run, operation_log, description, self._record):
                result.videos_deleted += 1
            else:
                failed(f"Could not delete video {video.path}")
            tick()

        for video in scan_result.long_videos if moving else ():
            if not step():
                break
            dest = move_file(
                video.path,
                config.video_move_target,
                dry_run,
                operation_log,
                description="video",
                duration=video.duration,
                on_log=self._record,
            )
            if dest is not None:
                result.videos_moved += 1
            else:
                failed(f"Could not move video {video.path}")
            tick()

        folders = scan_result.empty_folders if config.delete_empty_folders and not result.aborted else ()
        for folder in folders:
            if folder.requires_user_decision:
                self._log(
                    f"Skipping folder '{folder.name}': contains {len(folder.non_media_files)} non-media files "
                    f"and requires a decision"
                )
                result.folders_skipped += 1
                continue
            if not step():
                break
            if not dry_run:
                try:
                    still_empty = _is_empty_dir(folder.path)
                except OSError as e:
                    self._log(f"Skipping folder '{folder.name}': {e}", logging.WARNING)
                    result.folders_skipped += 1
                    tick()
                    continue
                if not still_empty:
                    self._log(f"Skipping folder '{folder.name}': no longer empty", logging.WARNING)
                    result.folders_skipped += 1
                    tick()
                    continue
            if remove_file(folder.path, dry_run, operation_log, "empty folder", self._record):
                result.folders_deleted += 1
            else:
                failed(f"Could not delete folder {folder.path}")
            tick()

        self.last_operation_log = operation_log
        if not dry_run and len(operation_log) > 0 and self.store is not None:
            result.operation_log_path = self.store.save_operation_log(operation_log)
            if result.operation_log_path is None:
                self._log("Warning: operation log could not be saved, this cleanup cannot be reverted", logging.WARNING)

        result.success = not result.aborted and result.failures == 0
        summary = (
            f"{result.photos_deleted} photos deleted, {result.videos_deleted} videos deleted, "
            f"{result.videos_moved} videos moved, {result.folders_deleted} folders deleted"
        )
        if result.aborted:
            self._log(f"Cleanup aborted after {processed} items: {summary}")
            self._set_stage(Stage.ABORTED)
        else:
            self._log(f"{'Dry run' if dry_run else 'Cleanup'} completed: {summary}")
            self._set_stage(Stage.DONE)
        return result

    # -- revert ----------------------------------------------------------

    def revert_operation(self, operation_log: OperationLog | Path | str) -> RevertResult:
        """
        Undo the moves of an operation log, newest first.

        Trashed items cannot be restored automatically and are reported
        with their original location.

        Raises:
            PersistenceError: If a log path is given and cannot be read
        """
        if not isinstance(operation_log, OperationLog):
            operation_log = ScanStore.load_operation_log(Path(operation_log))

        self._begin()
        try:
            self.pending = None
            self._reset_snapshot(Stage.RUNNING, total=len(operation_log))
            result = RevertResult()
            self._log(f"Reverting {len(operation_log)} operations from {operation_log.timestamp}")

            for processed, entry in enumerate(reversed(operation_log.operations), start=1):
                if self.cancel.cancelled:
                    result.aborted = True
                    break

                if entry.type == "move" and entry.destination:
                    source = Path(entry.source)
                    destination = Path(entry.destination)
                    if not destination.exists():
                        self._log(f"Cannot revert move, file no longer exists: {destination}", logging.WARNING)
                        result.failed.append(entry.source)
                    elif source.exists():
                        self._log(f"Cannot revert move, original location is occupied: {source}", logging.WARNING)
                        result.failed.append(entry.source)
                    else:
                        try:
                            source.parent.mkdir(parents=True, exist_ok=True)
                            shutil.move(str(destination), str(source))
                        except (OSError, shutil.Error) as e:
                            self._log(f"Failed to revert move of {destination}: {e}", logging.ERROR)
                            result.failed.append(entry.source)
                        else:
                            self._log(f"Restored: {destination.name} -> {source}")
                            result.restored.append(entry.source)
                elif entry.type == "trash":
                    self._log(f"Cannot restore automatically, restore from the system trash: {entry.source}")
                    result.unrecoverable.append(entry.source)
                else:
                    self._log(f"Unknown operation type '{entry.type}' for {entry.source}", logging.WARNING)
                    result.failed.append(entry.source)

                self._report(processed=processed)

            self._log(
                f"Revert {'aborted' if result.aborted else 'completed'}: {len(result.restored)} restored, "
                f"{len(result.failed)} failed, {len(result.unrecoverable)} in trash"
            )
            self._set_stage(Stage.ABORTED if result.aborted else Stage.DONE)
            return result
        finally:
            self._end()
