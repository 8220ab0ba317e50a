"""Cooperative cancellation for long-running scans."""

import threading

from promptpack.errors import IndexCancelled


class CancellationToken:
    """Thread-safe flag checked by the indexer between entries and windows."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise IndexCancelled("scan cancelled")
