"""
Exception hierarchy for Media Cleanup Toolkit.

Protocol errors are raised to the caller; I/O problems on single files are
logged and skipped instead (see scanner and executor).
"""


class MediaCleanupError(Exception):
    """Base exception for all media cleanup errors."""


class OperationInProgressError(MediaCleanupError):
    """Raised when an operation is requested while another one is running."""


class NoPendingOperationError(MediaCleanupError):
    """Raised when confirming without a pending scan result."""


class InvalidConfigurationError(MediaCleanupError):
    """Raised when a cleanup configuration cannot be built."""


class PersistenceError(MediaCleanupError):
    """Raised when a scan result or operation log cannot be read."""
