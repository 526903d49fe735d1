"""Cooperative cancellation shared by the scan and execute loops."""

import threading


class CancelToken:
    """
    Abort flag polled at well-defined checkpoints.

    There is no preemption: a probe or file operation in flight finishes
    before the next check sees the flag.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        """Request cancellation. Safe to call from any thread, idempotent."""
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def is_cancelled(token: CancelToken | None) -> bool:
    """True if a token was given and has been cancelled."""
    return token is not None and token.cancelled
