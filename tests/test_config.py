"""Tests for configuration loading and validation."""

import logging
from pathlib import Path

import pytest

from media_cleanup_toolkit.config import (
    AppConfig,
    CleanupConfig,
    CleanupDefaults,
    load_config,
)
from media_cleanup_toolkit.exceptions import InvalidConfigurationError


class TestAppConfig:
    """Tests for AppConfig dataclass."""

    def test_default_config(self):
        """Test default configuration values."""
        config = AppConfig()

        assert config.cleanup.min_video_length_sec == 30
        assert config.cleanup.delete_empty_folders is True
        assert config.cleanup.move_videos is True
        assert config.cleanup.video_target_name == "SortedVideos"
        assert "jpg" in config.cleanup.photo_extensions
        assert "mkv" in config.cleanup.video_extensions
        assert config.probe.timeout == 30.0
        assert config.logging.file_logging is False

    def test_from_yaml_missing_file(self, tmp_path):
        """Test loading from non-existent file returns defaults."""
        config = AppConfig.from_yaml(tmp_path / "nonexistent.yaml")

        assert config.cleanup.min_video_length_sec == 30

    def test_from_yaml_valid_file(self, tmp_path):
        """Test loading from valid YAML file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
paths:
  data_dir: /custom/data

cleanup:
  min_video_length_sec: 45
  ignore_folders: [Archive, Keep]
  move_videos: false

probe:
  ffprobe: /opt/ffmpeg/bin/ffprobe
  timeout: 10

logging:
  level: DEBUG
  file_logging: true
""")
        config = AppConfig.from_yaml(config_file)

        assert config.paths.data_dir == Path("/custom/data")
        assert config.cleanup.min_video_length_sec == 45
        assert config.cleanup.ignore_folders == ["Archive", "Keep"]
        assert config.cleanup.move_videos is False
        assert config.probe.ffprobe == "/opt/ffmpeg/bin/ffprobe"
        assert config.probe.timeout == 10
        assert config.logging.level == "DEBUG"
        assert config.logging.file_logging is True

    def test_from_yaml_partial_config(self, tmp_path):
        """Test loading partial config preserves defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
cleanup:
  min_video_length_sec: 10
unknown_section:
  foo: bar
""")
        config = AppConfig.from_yaml(config_file)

        assert config.cleanup.min_video_length_sec == 10
        assert config.cleanup.delete_empty_folders is True
        assert config.probe.ffprobe

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        assert AppConfig.from_yaml(config_file).cleanup.move_videos is True

    def test_to_dict(self):
        data = AppConfig()._to_dict()
        assert set(data) == {"paths", "cleanup", "probe", "logging"}
        assert isinstance(data["paths"]["data_dir"], str)

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MCT_DATA_DIR", str(tmp_path / "data"))
        monkeypatch.setenv("MCT_FFPROBE", "/custom/ffprobe")
        config = AppConfig()
        assert config.paths.data_dir == tmp_path / "data"
        assert config.probe.ffprobe == "/custom/ffprobe"

    def test_xdg_data_home(self, monkeypatch, tmp_path):
        monkeypatch.delenv("MCT_DATA_DIR", raising=False)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert AppConfig().paths.data_dir == tmp_path / "media-cleanup-toolkit"


class TestLoadConfig:
    """Tests for config file discovery."""

    def test_explicit_path(self, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("cleanup:\n  min_video_length_sec: 5\n")
        assert load_config(config_file).cleanup.min_video_length_sec == 5

    def test_config_dir(self, tmp_path):
        (tmp_path / "config.yaml").write_text("cleanup:\n  video_target_name: Movies\n")
        assert load_config(config_dir=tmp_path).cleanup.video_target_name == "Movies"

    def test_env_config_dir(self, monkeypatch, tmp_path):
        (tmp_path / "config.yaml").write_text("cleanup:\n  move_videos: false\n")
        monkeypatch.setenv("MCT_CONFIG_DIR", str(tmp_path))
        assert load_config().cleanup.move_videos is False

    def test_cwd_fallback(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MCT_CONFIG_DIR", str(tmp_path / "nowhere"))
        monkeypatch.chdir(tmp_path)
        (tmp_path / "mct.yaml").write_text("cleanup:\n  min_video_length_sec: 12\n")
        assert load_config().cleanup.min_video_length_sec == 12

    def test_no_file_gives_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MCT_CONFIG_DIR", str(tmp_path / "nowhere"))
        monkeypatch.chdir(tmp_path)
        assert load_config().cleanup.min_video_length_sec == 30


class TestCleanupConfig:
    """Tests for CleanupConfig.build."""

    def test_defaults(self, tmp_path):
        config = CleanupConfig.build(tmp_path)
        assert config.start_folder == tmp_path
        assert config.video_move_target == tmp_path / "SortedVideos"
        assert config.min_video_length_sec == 30.0
        assert config.photo_extensions == frozenset({"jpg", "jpeg", "png", "gif", "bmp", "tiff"})
        assert config.video_extensions == frozenset({"mp4", "avi", "mov", "wmv", "flv", "mkv", "webm"})
        assert config.delete_empty_folders is True
        assert config.move_videos is True
        assert config.ignore_folders == ()

    def test_string_inputs(self, tmp_path):
        config = CleanupConfig.build(
            str(tmp_path),
            video_move_target=str(tmp_path / "out"),
            min_video_length_sec="12.5",
            photo_extensions=".JPG, png",
            video_extensions="MOV",
            ignore_folders="Archive, Keep ,",
        )
        assert config.video_move_target == tmp_path / "out"
        assert config.min_video_length_sec == 12.5
        assert config.photo_extensions == frozenset({"jpg", "png"})
        assert config.video_extensions == frozenset({"mov"})
        assert config.ignore_folders == ("Archive", "Keep")

    def test_defaults_object(self, tmp_path):
        defaults = CleanupDefaults(min_video_length_sec=60, move_videos=False, video_target_name="Long")
        config = CleanupConfig.build(tmp_path, defaults=defaults)
        assert config.min_video_length_sec == 60
        assert config.move_videos is False
        assert config.video_move_target == tmp_path / "Long"

    def test_explicit_false_overrides_default(self, tmp_path):
        config = CleanupConfig.build(tmp_path, delete_empty_folders=False)
        assert config.delete_empty_folders is False

    def test_missing_start_folder(self):
        with pytest.raises(InvalidConfigurationError):
            CleanupConfig.build("")

    def test_invalid_min_length(self, tmp_path):
        with pytest.raises(InvalidConfigurationError):
            CleanupConfig.build(tmp_path, min_video_length_sec="abc")
        with pytest.raises(InvalidConfigurationError):
            CleanupConfig.build(tmp_path, min_video_length_sec=-1)

    def test_scan_ignore_folders_adds_target(self, tmp_path):
        config = CleanupConfig.build(tmp_path, ignore_folders=["Archive"])
        assert config.scan_ignore_folders() == ("Archive", str(tmp_path / "SortedVideos"))

    def test_scan_ignore_folders_target_is_start(self, tmp_path):
        config = CleanupConfig.build(tmp_path, video_move_target=tmp_path)
        assert config.scan_ignore_folders() == ()

    def test_document_round_trip(self, tmp_path):
        config = CleanupConfig.build(tmp_path, ignore_folders=["Archive"], move_videos=False)
        document = {
            "startFolder": str(config.start_folder),
            "videoMoveTarget": str(config.video_move_target),
            "configuration": config.to_dict(),
        }
        assert CleanupConfig.from_document(document) == config

    def test_relative_paths_made_absolute(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        config = CleanupConfig.build("photos", video_move_target="out")
        assert config.start_folder == tmp_path / "photos"
        assert config.video_move_target == tmp_path / "out"
        assert CleanupConfig.build("photos").video_move_target == tmp_path / "photos" / "SortedVideos"

    def test_scan_ignore_folders_same_folder_spelled_differently(self, monkeypatch, tmp_path, caplog):
        monkeypatch.chdir(tmp_path)
        config = CleanupConfig.build("photos", video_move_target=str(tmp_path / "photos"))
        with caplog.at_level(logging.INFO, logger="media_cleanup_toolkit.config"):
            assert config.scan_ignore_folders() == ()
        assert "not excluding it from the scan" in caplog.text

    def test_scan_ignore_folders_target_contains_start(self, tmp_path):
        config = CleanupConfig.build(tmp_path / "Videos" / "Inbox", video_move_target=tmp_path / "Videos")
        assert config.scan_ignore_folders() == ()

    def test_scan_ignore_folders_sibling_target(self, tmp_path):
        config = CleanupConfig.build(tmp_path / "Inbox", video_move_target=tmp_path / "Sorted")
        assert config.scan_ignore_folders() == (str(tmp_path / "Sorted"),)

    def test_document_configuration_must_be_object(self, tmp_path):
        with pytest.raises(InvalidConfigurationError):
            CleanupConfig.from_document({"startFolder": str(tmp_path), "configuration": "fast"})
