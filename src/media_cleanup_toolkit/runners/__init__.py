"""
Runners layer - Execution engine for scan, cleanup and revert.

The runner owns the stage machine and reports progress through callbacks,
so any front end can drive it.
"""

from .base import CleanupResult, PendingOperation, ProgressSnapshot, RevertResult, RunnerCallbacks, Stage
from .cleanup import CleanupRunner

__all__ = [
    "CleanupResult",
    "CleanupRunner",
    "PendingOperation",
    "ProgressSnapshot",
    "RevertResult",
    "RunnerCallbacks",
    "Stage",
]
