"""Shared pytest fixtures for media-cleanup-toolkit tests."""

import shutil
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from media_cleanup_toolkit.config import CleanupConfig
from media_cleanup_toolkit.store import ScanStore


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def media_tree(tmp_path):
    """
    Create the basic cleanup scenario.

    start/
        a.jpg        photo (deleted)
        b.mp4        10s video (deleted)
        c.mp4        120s video (moved)
        empty/       empty folder (deleted)
    """
    start = tmp_path / "start"
    start.mkdir()
    (start / "a.jpg").write_bytes(b"fake jpeg data")
    (start / "b.mp4").write_bytes(b"short video data")
    (start / "c.mp4").write_bytes(b"long video data")
    (start / "empty").mkdir()
    return start


@pytest.fixture
def durations():
    """Durations (seconds) returned by the fake prober, keyed by file name."""
    return {"b.mp4": 10.0, "c.mp4": 120.0}


class FakeProber:
    """Duration probe that looks up file names instead of running ffprobe."""

    def __init__(self, durations: dict[str, float | None]):
        self.durations = durations
        self.calls: list[Path] = []

    def __call__(self, path: Path) -> float | None:
        self.calls.append(path)
        return self.durations.get(path.name)


@pytest.fixture
def fake_prober(durations):
    return FakeProber(durations)


@pytest.fixture
def store(tmp_path):
    """Scan store inside the test's temp dir (outside the media tree)."""
    return ScanStore(tmp_path / "data")


@pytest.fixture
def cleanup_config(media_tree):
    return CleanupConfig.build(media_tree)


@pytest.fixture
def fake_trash(tmp_path_factory):
    """
    Replace send2trash with a move into a private trash folder.

    Yields the mock; trashed items land in mock.trash_dir.
    """
    trash_dir = tmp_path_factory.mktemp("trash")

    def trash(path):
        source = Path(path)
        dest = trash_dir / source.name
        counter = 1
        while dest.exists():
            dest = trash_dir / f"{source.name}.{counter}"
            counter += 1
        shutil.move(str(source), str(dest))

    with patch("media_cleanup_toolkit.executor.send2trash", side_effect=trash) as mock:
        mock.trash_dir = trash_dir
        yield mock


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for tests that call external tools."""
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        yield mock_run


@pytest.fixture(name="_mock_shutil_which")
def mock_shutil_which():
    """Mock shutil.which to simulate available tools."""

    def which_side_effect(tool):
        available = {"ffprobe"}
        return f"/usr/bin/{tool}" if tool in available else None

    with patch("shutil.which", side_effect=which_side_effect) as mock:
        yield mock
