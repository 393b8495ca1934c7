"""Cooperative cancellation for generation requests."""

from __future__ import annotations

import threading


class CancellationToken:
    """A one-way flag shared between a caller and a running generation.

    The generation checks the token between phases and while waiting for
    the model process; cancelling a token cannot be undone.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; return True once cancelled."""
        return self._event.wait(timeout)
