"""Cooperative cancellation handle threaded through every unit of work."""

from __future__ import annotations

import threading

from bookimport.ingestion.errors import CancellationError


class CancellationToken:
    """Caller-owned abort signal, safe to raise from another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationError()
