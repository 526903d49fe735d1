"""
Media Cleanup Toolkit (mct) - Scan, classify and clean up photo/video folders

Cleans up a directory tree with:
- Recursive photo/video discovery with ignore lists
- Video duration probing via ffprobe (short videos deleted, long videos moved)
- Duplicate detection against the video move target
- Future-empty folder analysis
- Confirm-before-execute pipeline with dry run and a revertable operation log
"""

__version__ = "0.1.0"
__package_name__ = "media-cleanup-toolkit"
__short_name__ = "mct"
