"""
Centralized constants for Media Cleanup Toolkit.

Default extension lists and persisted file naming live here
to avoid duplication across modules.
"""

# Default photo extensions (lower case, no dot)
DEFAULT_PHOTO_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "bmp", "tiff")

# Default video extensions (lower case, no dot)
DEFAULT_VIDEO_EXTENSIONS = ("mp4", "avi", "mov", "wmv", "flv", "mkv", "webm")

# Videos shorter than this (seconds) are scheduled for deletion
DEFAULT_MIN_VIDEO_LENGTH_SEC = 30

# Folder created under the start folder when no move target is given
DEFAULT_VIDEO_TARGET_NAME = "SortedVideos"

# ffprobe defaults
DEFAULT_FFPROBE = "ffprobe"
DEFAULT_PROBE_TIMEOUT = 30.0

# Persistence layout inside the data directory
SCAN_RESULTS_DIR = "scan_results"
OPERATION_LOGS_DIR = "operation_logs"
LOGS_DIR = "logs"
SCAN_RESULTS_PREFIX = "scan_results_"
OPERATION_LOG_PREFIX = "operation_log_"

# Prefix for every simulated action
DRY_RUN_PREFIX = "[DRY RUN]"
