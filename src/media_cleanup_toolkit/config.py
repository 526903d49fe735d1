"""
Configuration management with YAML loading and environment variable support.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import (
    DEFAULT_FFPROBE,
    DEFAULT_MIN_VIDEO_LENGTH_SEC,
    DEFAULT_PHOTO_EXTENSIONS,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_VIDEO_EXTENSIONS,
    DEFAULT_VIDEO_TARGET_NAME,
)
from .exceptions import InvalidConfigurationError
from .filters import normalize_extensions

logger = logging.getLogger(__name__)


def _get_default_data_dir() -> Path:
    """Get default data directory based on XDG spec or platform."""
    if xdg_data := os.environ.get("XDG_DATA_HOME"):
        return Path(xdg_data) / "media-cleanup-toolkit"
    return Path.home() / ".local" / "share" / "media-cleanup-toolkit"


def _env_path(env_var: str, default: Path | None = None) -> Path | None:
    """Get path from environment variable or return default."""
    if value := os.environ.get(env_var):
        return Path(value)
    return default


@dataclass
class PathsConfig:
    """Paths configuration - can be overridden via environment variables."""

    # Scan results and operation logs are stored here
    data_dir: Path = field(default_factory=lambda: _env_path("MCT_DATA_DIR", _get_default_data_dir()))


@dataclass
class CleanupDefaults:
    """Defaults applied to every cleanup request that does not override them."""

    min_video_length_sec: float = DEFAULT_MIN_VIDEO_LENGTH_SEC
    photo_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_PHOTO_EXTENSIONS))
    video_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_VIDEO_EXTENSIONS))
    delete_empty_folders: bool = True
    move_videos: bool = True
    ignore_folders: list[str] = field(default_factory=list)
    video_target_name: str = DEFAULT_VIDEO_TARGET_NAME


@dataclass
class ProbeConfig:
    ffprobe: str = field(default_factory=lambda: os.environ.get("MCT_FFPROBE", DEFAULT_FFPROBE))
    timeout: float = DEFAULT_PROBE_TIMEOUT


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file_logging: bool = False
    console_logging: bool = True


@dataclass
class AppConfig:
    paths: PathsConfig = field(default_factory=PathsConfig)
    cleanup: CleanupDefaults = field(default_factory=CleanupDefaults)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    SECTIONS = ("paths", "cleanup", "probe", "logging")

    @classmethod
    def from_yaml(cls, path: Path) -> AppConfig:
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> AppConfig:
        """Create config from dictionary, ignoring unknown keys."""
        config = cls()

        for section_name in cls.SECTIONS:
            values = data.get(section_name) or {}
            section = getattr(config, section_name)
            for key, value in values.items():
                if hasattr(section, key):
                    if section_name == "paths" and isinstance(value, str):
                        value = Path(value).expanduser()
                    setattr(section, key, value)

        return config

    def _to_dict(self) -> dict:
        """Convert config to dictionary."""
        result = {}
        for attr in self.SECTIONS:
            section = getattr(self, attr)
            result[attr] = {
                key: str(value) if isinstance(value, Path) else value for key, value in vars(section).items()
            }
        return result


def _get_default_config_dir() -> Path:
    """Get default config directory."""
    if config_dir := os.environ.get("MCT_CONFIG_DIR"):
        return Path(config_dir)

    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "media-cleanup-toolkit"

    return Path.home() / ".config" / "media-cleanup-toolkit"


def load_config(config_path: Path | None = None, config_dir: Path | None = None) -> AppConfig:
    """
    Load configuration from the first config file found.

    Args:
        config_path: Explicit config file (default: searches standard locations)
        config_dir: Config directory to search

    Returns:
        AppConfig (defaults if no file exists)
    """
    if config_path is None:
        config_dir = config_dir or _get_default_config_dir()
        search_paths = [
            config_dir / "config.yaml",
            Path.cwd() / "mct.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    return AppConfig.from_yaml(config_path) if config_path else AppConfig()


@dataclass(frozen=True)
class CleanupConfig:
    """
    Inputs of one scan/cleanup operation.

    Frozen: the core reads it, never changes it.
    """

    start_folder: Path
    video_move_target: Path
    min_video_length_sec: float = DEFAULT_MIN_VIDEO_LENGTH_SEC
    photo_extensions: frozenset[str] = frozenset(DEFAULT_PHOTO_EXTENSIONS)
    video_extensions: frozenset[str] = frozenset(DEFAULT_VIDEO_EXTENSIONS)
    delete_empty_folders: bool = True
    move_videos: bool = True
    ignore_folders: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        start_folder: str | Path,
        video_move_target: str | Path | None = None,
        min_video_length_sec: float | str | None = None,
        photo_extensions: str | Iterable[str] | None = None,
        video_extensions: str | Iterable[str] | None = None,
        delete_empty_folders: bool | None = None,
        move_videos: bool | None = None,
        ignore_folders: str | Iterable[str] | None = None,
        defaults: CleanupDefaults | None = None,
    ) -> CleanupConfig:
        """
        Build a config from caller inputs, filling gaps from defaults.

        Extension and ignore lists accept comma-separated strings.
        The move target defaults to <start_folder>/<video_target_name>.
        Both folders are made absolute so persisted paths survive a change of
        working directory.
        """
        defaults = defaults or CleanupDefaults()

        if not start_folder:
            raise InvalidConfigurationError("Start folder is required")
        start = Path(start_folder).expanduser().resolve()

        if video_move_target:
            target = Path(video_move_target).expanduser().resolve()
        else:
            target = start / defaults.video_target_name

        if min_video_length_sec in (None, ""):
            min_video_length_sec = defaults.min_video_length_sec
        try:
            min_length = float(min_video_length_sec)
        except (TypeError, ValueError) as err:
            raise InvalidConfigurationError(f"Invalid minimum video length: {min_video_length_sec!r}") from err
        if min_length < 0:
            raise InvalidConfigurationError(f"Minimum video length must not be negative: {min_length}")

        photos = normalize_extensions(photo_extensions if photo_extensions else defaults.photo_extensions)
        videos = normalize_extensions(video_extensions if video_extensions else defaults.video_extensions)

        if ignore_folders is None:
            ignore_folders = defaults.ignore_folders
        if isinstance(ignore_folders, str):
            ignore_folders = ignore_folders.split(",")
        ignores = tuple(str(entry).strip() for entry in ignore_folders if str(entry).strip())

        return cls(
            start_folder=start,
            video_move_target=target,
            min_video_length_sec=min_length,
            photo_extensions=photos,
            video_extensions=videos,
            delete_empty_folders=(
                defaults.delete_empty_folders if delete_empty_folders is None else delete_empty_folders
            ),
            move_videos=defaults.move_videos if move_videos is None else move_videos,
            ignore_folders=ignores,
        )

    def scan_ignore_folders(self) -> tuple[str, ...]:
        """
        Ignore list for scan walks: the move target never scans itself.

        A target that is the start folder, or contains it, is not excluded;
        otherwise nothing under the start folder would be scanned.
        """
        target = self.video_move_target
        if not target:
            return self.ignore_folders
        if target == self.start_folder or self.start_folder.is_relative_to(target):
            logger.info(f"Move target {target} contains the start folder, not excluding it from the scan")
            return self.ignore_folders
        return (*self.ignore_folders, str(target))

    def to_dict(self) -> dict:
        """Serialize as the configuration section of a persisted scan."""
        return {
            "minVideoLengthSec": self.min_video_length_sec,
            "photoExtensions": sorted(self.photo_extensions),
            "videoExtensions": sorted(self.video_extensions),
            "deleteEmptyFolders": self.delete_empty_folders,
            "moveVideos": self.move_videos,
            "ignoreFolders": list(self.ignore_folders),
        }

    @classmethod
    def from_document(cls, document: dict) -> CleanupConfig:
        """Rebuild from a persisted scan document (top-level paths + configuration)."""
        configuration = document.get("configuration") or {}
        if not isinstance(configuration, dict):
            raise InvalidConfigurationError(f"configuration must be an object, got {type(configuration).__name__}")
        return cls.build(
            start_folder=document.get("startFolder"),
            video_move_target=document.get("videoMoveTarget"),
            min_video_length_sec=configuration.get("minVideoLengthSec"),
            photo_extensions=configuration.get("photoExtensions"),
            video_extensions=configuration.get("videoExtensions"),
            delete_empty_folders=configuration.get("deleteEmptyFolders"),
            move_videos=configuration.get("moveVideos"),
            ignore_folders=configuration.get("ignoreFolders"),
        )
