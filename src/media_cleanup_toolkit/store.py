"""
Persistence of scan results and operation logs as timestamped JSON documents.

Layout inside the data directory:
- scan_results/scan_results_<timestamp>.json
- operation_logs/operation_log_<timestamp>.json

Write failures are logged and reported as None; the operation that produced
the data is never rolled back.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .config import CleanupConfig
from .constants import OPERATION_LOG_PREFIX, OPERATION_LOGS_DIR, SCAN_RESULTS_DIR, SCAN_RESULTS_PREFIX
from .exceptions import InvalidConfigurationError, PersistenceError
from .oplog import OperationLog, utc_now
from .scanner import ScanResult

logger = logging.getLogger(__name__)


def _file_timestamp() -> str:
    """Filesystem-safe timestamp: 2025-01-31T12-30-00-123456Z"""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


@dataclass
class LoadedScan:
    """A persisted scan read back from disk."""

    path: Path
    timestamp: str
    config: CleanupConfig
    result: ScanResult
    totals: dict[str, int] = field(default_factory=dict)


@dataclass
class ScanSummary:
    """Listing entry for a saved scan."""

    path: Path
    timestamp: str
    start_folder: str
    modified: datetime
    totals: dict[str, int]
    valid: bool = True

    @property
    def total_items(self) -> int:
        return sum(self.totals.values())


class ScanStore:
    """
    Reads and writes scan results and operation logs.

    Stored in: <data_dir>/scan_results and <data_dir>/operation_logs
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.scan_results_dir = self.data_dir / SCAN_RESULTS_DIR
        self.operation_logs_dir = self.data_dir / OPERATION_LOGS_DIR

    def ensure_dirs(self):
        """Create the storage directories if they don't exist."""
        self.scan_results_dir.mkdir(parents=True, exist_ok=True)
        self.operation_logs_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def scan_document(result: ScanResult, config: CleanupConfig) -> dict:
        return {
            "timestamp": utc_now(),
            "startFolder": str(config.start_folder),
            "videoMoveTarget": str(config.video_move_target),
            "configuration": config.to_dict(),
            "scanResults": result.to_dict(),
        }

    def _write_json(self, path: Path, data: dict) -> Path | None:
        try:
            self.ensure_dirs()
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write {path}: {e}")
            return None
        return path

    def save_scan(self, result: ScanResult, config: CleanupConfig) -> Path | None:
        """
        Persist a completed scan alongside the configuration that produced it.

        Returns:
            Path of the written document, or None if writing failed
        """
        path = self.scan_results_dir / f"{SCAN_RESULTS_PREFIX}{_file_timestamp()}.json"
        saved = self._write_json(path, self.scan_document(result, config))
        if saved:
            counts = result.counts
            logger.info(
                f"Scan results saved to: {path.name} (Photos: {counts['photos']}, Short videos: "
                f"{counts['short_videos']}, Long videos: {counts['long_videos']}, "
                f"Empty folders: {counts['empty_folders']})"
            )
        return saved

    @staticmethod
    def load_scan(path: Path) -> LoadedScan | None:
        """
        Load a persisted scan.

        Returns:
            LoadedScan, or None if the file is unreadable or malformed
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load scan results from {path}: {e}")
            return None

        if not isinstance(document, dict) or not isinstance(document.get("scanResults"), dict):
            logger.error(f"Invalid scan results file {path.name}: missing scanResults section")
            return None

        try:
            config = CleanupConfig.from_document(document)
            result = ScanResult.from_dict(document["scanResults"])
        except (InvalidConfigurationError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Invalid scan results file {path.name}: {e}")
            return None

        section = document["scanResults"]
        totals = {
            "photos": section.get("totalPhotos", 0),
            "short_videos": section.get("totalShortVideos", 0),
            "long_videos": section.get("totalLongVideos", 0),
            "empty_folders": section.get("totalEmptyFolders", 0),
        }
        return LoadedScan(
            path=path, timestamp=document.get("timestamp", ""), config=config, result=result, totals=totals
        )

    def list_scans(self) -> list[ScanSummary]:
        """Saved scans, newest first. Unparseable files are listed as invalid."""
        if not self.scan_results_dir.exists():
            return []

        summaries = []
        for path in self.scan_results_dir.glob(f"{SCAN_RESULTS_PREFIX}*.json"):
            try:
                stat = path.stat()
            except OSError:
                continue
            modified = datetime.fromtimestamp(stat.st_mtime)
            try:
                document = json.loads(path.read_text(encoding="utf-8"))
                section = document.get("scanResults") or {}
                summaries.append(
                    ScanSummary(
                        path=path,
                        timestamp=document.get("timestamp", ""),
                        start_folder=document.get("startFolder", "Unknown"),
                        modified=modified,
                        totals={
                            "photos": section.get("totalPhotos", 0),
                            "short_videos": section.get("totalShortVideos", 0),
                            "long_videos": section.get("totalLongVideos", 0),
                            "empty_folders": section.get("totalEmptyFolders", 0),
                        },
                    )
                )
            except (OSError, json.JSONDecodeError, AttributeError) as e:
                logger.warning(f"Error parsing scan result file {path.name}: {e}")
                summaries.append(
                    ScanSummary(
                        path=path,
                        timestamp=modified.isoformat(),
                        start_folder="Unknown",
                        modified=modified,
                        totals={},
                        valid=False,
                    )
                )

        return sorted(summaries, key=lambda s: s.modified, reverse=True)

    def delete_scan(self, path: Path) -> bool:
        """Delete a saved scan; only files inside the scan results directory are accepted."""
        candidate = self.scan_results_dir / Path(path).name
        if not candidate.is_file() or not candidate.name.startswith(SCAN_RESULTS_PREFIX):
            logger.warning(f"Scan result not found or invalid path: {path}")
            return False
        try:
            candidate.unlink()
        except OSError as e:
            logger.error(f"Error deleting scan result {candidate.name}: {e}")
            return False
        return True

    def save_operation_log(self, operation_log: OperationLog) -> Path | None:
        """Persist an operation log for later revert."""
        path = self.operation_logs_dir / f"{OPERATION_LOG_PREFIX}{_file_timestamp()}.json"
        saved = self._write_json(path, operation_log.to_dict())
        if saved:
            logger.info(f"Operation log saved to: {path.name} ({len(operation_log)} operations)")
        return saved

    @staticmethod
    def load_operation_log(path: Path) -> OperationLog:
        """
        Load an operation log.

        Raises:
            PersistenceError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                return OperationLog.from_dict(json.load(f))
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            raise PersistenceError(f"Could not read operation log {path.name}: {e}") from e

    def list_operation_logs(self) -> list[Path]:
        """Operation log files, newest first."""
        if not self.operation_logs_dir.exists():
            return []
        logs = self.operation_logs_dir.glob(f"{OPERATION_LOG_PREFIX}*.json")
        return sorted(logs, key=lambda p: p.stat().st_mtime, reverse=True)
