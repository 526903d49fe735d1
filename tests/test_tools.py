"""Tests for external tool discovery."""

from pathlib import Path
from unittest.mock import patch

from media_cleanup_toolkit.config import AppConfig, ProbeConfig
from media_cleanup_toolkit.tools import (
    check_tools_status,
    get_send2trash_version,
    get_tool_path,
    get_trash_location,
)


class TestGetToolPath:
    """Tests for tool path resolution."""

    def test_tool_in_user_bin(self, tmp_path):
        """Test tool found in user local bin."""
        tool_path = tmp_path / "ffprobe"
        tool_path.touch()

        with patch("media_cleanup_toolkit.tools.USER_BIN_DIR", tmp_path):
            assert get_tool_path("ffprobe") == tool_path

    def test_tool_in_system_path(self, tmp_path):
        """Test tool found in system PATH."""
        with (
            patch("media_cleanup_toolkit.tools.USER_BIN_DIR", tmp_path),
            patch("shutil.which", return_value="/usr/bin/ffprobe"),
        ):
            assert get_tool_path("ffprobe") == Path("/usr/bin/ffprobe")

    def test_tool_not_found(self, tmp_path):
        """Test tool not found anywhere."""
        with (
            patch("media_cleanup_toolkit.tools.USER_BIN_DIR", tmp_path),
            patch("shutil.which", return_value=None),
        ):
            assert get_tool_path("nonexistent") is None

    def test_override_file(self, tmp_path):
        """Test an explicit executable path wins."""
        custom = tmp_path / "my-ffprobe"
        custom.touch()
        with patch("shutil.which", return_value="/usr/bin/ffprobe"):
            assert get_tool_path("ffprobe", str(custom)) == custom

    def test_override_missing(self, tmp_path):
        with patch("shutil.which", return_value=None):
            assert get_tool_path("ffprobe", str(tmp_path / "missing")) is None


class TestCheckToolsStatus:
    """Tests for checking all tools status."""

    def test_uses_configured_ffprobe(self, tmp_path):
        custom = tmp_path / "ffprobe-7"
        custom.touch()
        config = AppConfig(probe=ProbeConfig(ffprobe=str(custom)))
        assert check_tools_status(config) == {"ffprobe": custom}

    def test_missing(self, tmp_path):
        with (
            patch("media_cleanup_toolkit.tools.USER_BIN_DIR", tmp_path),
            patch("shutil.which", return_value=None),
        ):
            assert check_tools_status(AppConfig(probe=ProbeConfig(ffprobe="ffprobe"))) == {"ffprobe": None}

    def test_send2trash_installed(self):
        assert get_send2trash_version()


class TestGetTrashLocation:
    def test_xdg_data_home(self, monkeypatch, tmp_path):
        monkeypatch.setattr("sys.platform", "linux")
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert get_trash_location() == tmp_path / "Trash"

    def test_platform_without_home_trash(self, monkeypatch):
        monkeypatch.setattr("sys.platform", "darwin")
        assert get_trash_location() is None
