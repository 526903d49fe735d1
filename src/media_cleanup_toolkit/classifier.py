"""
Classifier module - Short, duplicate and long video detection

Partitions scanned videos by probed duration and by name collisions at the
video move target. Unknown durations always end up in the "move" group.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path

from .cancel import CancelToken, is_cancelled
from .prober import DurationProbe, probe_duration
from .scanner import FileDescriptor, format_file_size

logger = logging.getLogger(__name__)


@dataclass
class VideoClassification:
    """Videos split into delete candidates and move candidates."""

    short_videos: list[FileDescriptor] = field(default_factory=list)
    long_videos: list[FileDescriptor] = field(default_factory=list)

    @property
    def duplicates(self) -> list[FileDescriptor]:
        return [v for v in self.short_videos if v.is_duplicate]


def find_duplicate_target(video: FileDescriptor, video_move_target: Path) -> Path | None:
    """
    Return the existing file at the move target that shares the video's name.

    The video itself is never its own duplicate (start folder == move target).
    """
    candidate = Path(video_move_target) / video.path.name
    if not candidate.exists():
        return None
    try:
        if candidate.samefile(video.path):
            return None
    except OSError:
        pass
    return candidate


def classify_video(
    video: FileDescriptor,
    min_video_length_sec: float,
    video_move_target: Path,
    probe: DurationProbe = probe_duration,
) -> tuple[str, FileDescriptor]:
    """
    Classify a single video.

    Returns:
        Tuple of (kind, descriptor) where kind is 'short', 'duplicate' or 'long'
        and descriptor carries the probed duration
    """
    try:
        duration = probe(video.path)
    except Exception as e:
        logger.warning(f"Error analyzing video {video.name}: {e}")
        return "long", replace(video, duration=None)

    if duration is not None and duration < min_video_length_sec:
        return "short", replace(video, duration=duration)

    if find_duplicate_target(video, video_move_target) is not None:
        return "duplicate", replace(video, duration=duration, is_duplicate=True)

    return "long", replace(video, duration=duration)


def classify_videos(
    videos: Iterable[FileDescriptor],
    min_video_length_sec: float,
    video_move_target: Path,
    probe: DurationProbe = probe_duration,
    cancel: CancelToken | None = None,
    on_log: Callable[[str], None] | None = None,
    on_video: Callable[[FileDescriptor, str], None] | None = None,
) -> VideoClassification:
    """
    Classify videos into short (delete) and long (move) groups.

    Args:
        videos: Scanned video descriptors
        min_video_length_sec: Videos shorter than this are deleted
        video_move_target: Folder long videos are moved to (duplicate check)
        probe: Duration probe, returns seconds or None
        cancel: Checked before each video; classification stops when set
        on_log: Receives one line per classification decision
        on_video: Called with (descriptor, kind) after each video

    Returns:
        VideoClassification (partial if cancelled)
    """
    result = VideoClassification()

    def log(message: str, level: int = logging.INFO):
        logger.log(level, message)
        if on_log:
            on_log(message)

    for video in videos:
        if is_cancelled(cancel):
            break

        kind, classified = classify_video(video, min_video_length_sec, video_move_target, probe)
        size = format_file_size(video.size)

        if kind == "short":
            result.short_videos.append(classified)
            log(f"Found short video '{video.name}' ({size}, {classified.duration}s) - will be deleted")
        elif kind == "duplicate":
            result.short_videos.append(classified)
            log(f"Found duplicate video '{video.name}' - already exists in target directory, will be deleted")
        else:
            result.long_videos.append(classified)
            if classified.duration is not None:
                log(f"Found normal video '{video.name}' ({size}, {classified.duration}s) - will be moved")
            else:
                log(
                    f"WARNING: Could not determine duration for '{video.name}' ({size}) - will be moved (safe default)",
                    logging.WARNING,
                )

        if on_video:
            on_video(classified, kind)

    return result
