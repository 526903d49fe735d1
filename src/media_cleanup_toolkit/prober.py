"""
Video duration probing via ffprobe.

Every failure (tool missing, timeout, bad output) degrades to None so the
classifier can fall back to the safe "move" outcome.
"""

import logging
import math
import subprocess
from collections.abc import Callable
from functools import partial
from pathlib import Path

from .constants import DEFAULT_FFPROBE, DEFAULT_PROBE_TIMEOUT

logger = logging.getLogger(__name__)

DurationProbe = Callable[[Path], float | None]


def build_probe_command(video_path: Path, ffprobe: str = DEFAULT_FFPROBE) -> list[str]:
    """Build the ffprobe command that prints the container duration in seconds."""
    return [
        ffprobe,
        "-v",
        "quiet",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(video_path),
    ]


def parse_duration(output: str) -> float | None:
    """Parse ffprobe output; None unless it is a finite, non-negative number."""
    try:
        duration = float(output.strip())
    except ValueError:
        return None
    if not math.isfinite(duration) or duration < 0:
        return None
    return duration


def probe_duration(
    video_path: Path, ffprobe: str = DEFAULT_FFPROBE, timeout: float = DEFAULT_PROBE_TIMEOUT
) -> float | None:
    """
    Get video duration in seconds.

    Args:
        video_path: Path to the video file
        ffprobe: ffprobe executable name or path
        timeout: Seconds before the probe is abandoned

    Returns:
        Duration in seconds, or None if it could not be determined
    """
    cmd = build_probe_command(video_path, ffprobe)
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        logger.warning(f"Could not determine duration for {video_path.name}: {ffprobe} not found")
        return None
    except subprocess.TimeoutExpired:
        logger.warning(f"Could not determine duration for {video_path.name}: ffprobe timed out after {timeout}s")
        return None
    except OSError as e:
        logger.warning(f"Could not determine duration for {video_path.name}: {e}")
        return None

    if result.returncode != 0:
        logger.warning(f"Could not determine duration for {video_path.name}: ffprobe exited with {result.returncode}")
        return None

    duration = parse_duration(result.stdout)
    if duration is None:
        logger.warning(f"Could not determine duration for {video_path.name}: unparseable output {result.stdout!r}")
    return duration


def make_prober(ffprobe: str = DEFAULT_FFPROBE, timeout: float = DEFAULT_PROBE_TIMEOUT) -> DurationProbe:
    """Bind an ffprobe executable and timeout into a single-argument probe."""
    return partial(probe_duration, ffprobe=ffprobe, timeout=timeout)
