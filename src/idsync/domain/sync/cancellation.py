"""Cooperative cancellation for sync runs."""

from __future__ import annotations

import threading


class CancellationSignal:
    """Flag checked by the orchestrators between objects and pages.

    Setting it never interrupts an object mid-processing; the run stops at the
    next boundary and leaves already committed work in place.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationSignal(cancelled={self.is_cancelled})"
