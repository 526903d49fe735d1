"""Tests for scan result and operation log persistence."""

import json
import os
from pathlib import Path

import pytest

from media_cleanup_toolkit.exceptions import PersistenceError
from media_cleanup_toolkit.oplog import OperationLog, OperationLogEntry
from media_cleanup_toolkit.scanner import FileDescriptor, FolderDescriptor, ScanResult
from media_cleanup_toolkit.store import ScanStore


@pytest.fixture
def scan_result(media_tree):
    return ScanResult(
        photo_files=[FileDescriptor.from_path(media_tree / "a.jpg")],
        short_videos=[FileDescriptor.from_path(media_tree / "b.mp4")],
        long_videos=[FileDescriptor.from_path(media_tree / "c.mp4")],
        empty_folders=[FolderDescriptor(media_tree / "empty", "empty", None)],
    )


class TestOperationLog:
    """Tests for OperationLog entries and documents."""

    def test_entries_in_order(self, tmp_path):
        log = OperationLog()
        log.add_trash(tmp_path / "a.jpg", 10)
        log.add_move(tmp_path / "c.mp4", tmp_path / "Sorted" / "c.mp4", 20)
        assert len(log) == 2
        assert [op.type for op in log.operations] == ["trash", "move"]
        assert log.operations[1].destination == str(tmp_path / "Sorted" / "c.mp4")
        assert log.timestamp.endswith("Z")

    def test_document_round_trip(self, tmp_path):
        log = OperationLog()
        log.add_move(tmp_path / "c.mp4", tmp_path / "Sorted" / "c.mp4", 20)
        data = log.to_dict()
        assert set(data) == {"timestamp", "operations"}
        assert set(data["operations"][0]) == {"type", "source", "destination", "size", "timestamp"}
        assert OperationLog.from_dict(data) == log

    def test_entry_defaults(self):
        entry = OperationLogEntry.from_dict({"type": "trash", "source": "/x/a.jpg"})
        assert entry.destination is None
        assert entry.size == 0


class TestScanStore:
    """Tests for ScanStore."""

    def test_save_scan_document(self, store, scan_result, cleanup_config):
        path = store.save_scan(scan_result, cleanup_config)
        assert path.parent == store.scan_results_dir
        assert path.name.startswith("scan_results_")
        document = json.loads(path.read_text())
        assert set(document) == {"timestamp", "startFolder", "videoMoveTarget", "configuration", "scanResults"}
        assert document["startFolder"] == str(cleanup_config.start_folder)
        assert document["configuration"]["minVideoLengthSec"] == 30
        assert document["configuration"]["photoExtensions"] == ["bmp", "gif", "jpeg", "jpg", "png", "tiff"]
        assert document["scanResults"]["totalPhotos"] == 1
        assert document["scanResults"]["shortVideos"][0]["name"] == "b.mp4"

    def test_load_scan(self, store, scan_result, cleanup_config):
        path = store.save_scan(scan_result, cleanup_config)
        loaded = store.load_scan(path)
        assert loaded.config == cleanup_config
        assert loaded.result.counts == scan_result.counts
        assert loaded.totals == {"photos": 1, "short_videos": 1, "long_videos": 1, "empty_folders": 1}
        assert loaded.result.photo_files[0].path == scan_result.photo_files[0].path

    def test_load_scan_invalid_json(self, tmp_path, store):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        assert store.load_scan(bad) is None

    def test_load_scan_missing_section(self, tmp_path, store):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"timestamp": "x", "startFolder": str(tmp_path)}))
        assert store.load_scan(bad) is None

    @pytest.mark.parametrize(
        "document",
        [
            {"configuration": "fast", "scanResults": {}},
            {"scanResults": {"photoFiles": ["a.jpg"]}},
            {"scanResults": {"emptyFolders": [42]}},
            {"scanResults": {"longVideos": [{"path": "/p/c.mp4", "duration": "long"}]}},
            {"scanResults": {"shortVideos": [{"path": "/p/b.mp4", "duration": [10]}]}},
        ],
    )
    def test_load_scan_malformed_entries(self, tmp_path, store, document):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"timestamp": "x", "startFolder": str(tmp_path), **document}))
        assert store.load_scan(bad) is None

    def test_load_scan_integer_duration(self, tmp_path, store):
        path = tmp_path / "scan.json"
        section = {"longVideos": [{"path": str(tmp_path / "c.mp4"), "duration": 120}]}
        path.write_text(json.dumps({"timestamp": "x", "startFolder": str(tmp_path), "scanResults": section}))
        assert store.load_scan(path).result.long_videos[0].duration == 120.0

    def test_save_failure_returns_none(self, tmp_path, scan_result, cleanup_config):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        assert ScanStore(blocker).save_scan(scan_result, cleanup_config) is None

    def test_list_scans_newest_first(self, store, scan_result, cleanup_config):
        older = store.save_scan(scan_result, cleanup_config)
        newer = store.save_scan(ScanResult(), cleanup_config)
        os.utime(older, (1_000_000, 1_000_000))
        (store.scan_results_dir / "scan_results_broken.json").write_text("{")

        scans = store.list_scans()
        assert [s.path for s in scans][-1] == older
        assert newer in [s.path for s in scans]
        broken = [s for s in scans if not s.valid]
        assert len(broken) == 1
        valid_older = [s for s in scans if s.path == older][0]
        assert valid_older.total_items == 4

    def test_list_scans_empty(self, store):
        assert store.list_scans() == []

    def test_delete_scan(self, store, scan_result, cleanup_config):
        path = store.save_scan(scan_result, cleanup_config)
        assert store.delete_scan(path)
        assert not path.exists()

    def test_delete_scan_rejects_foreign_files(self, tmp_path, store):
        store.ensure_dirs()
        outside = tmp_path / "scan_results_keep.json"
        outside.write_text("{}")
        assert not store.delete_scan(outside)
        assert outside.exists()
        assert not store.delete_scan(Path("../../etc/passwd"))

    def test_operation_log_round_trip(self, tmp_path, store):
        log = OperationLog()
        log.add_trash(tmp_path / "a.jpg", 3)
        path = store.save_operation_log(log)
        assert path.name.startswith("operation_log_")
        assert store.load_operation_log(path) == log
        assert store.list_operation_logs() == [path]

    def test_load_operation_log_errors(self, tmp_path, store):
        bad = tmp_path / "log.json"
        bad.write_text(json.dumps({"operations": [{"source": "/x"}]}))
        with pytest.raises(PersistenceError):
            store.load_operation_log(bad)
        with pytest.raises(PersistenceError):
            store.load_operation_log(tmp_path / "missing.json")
