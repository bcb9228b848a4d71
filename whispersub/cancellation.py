"""Cooperative cancellation shared by one batch run."""

import threading

from .exceptions import OperationCancelledError


class CancellationToken:
    """
    A thread-safe cancellation flag passed explicitly to long-running calls.

    One token is created per batch run. Engines and downloaders poll it
    between units of work; setting it never interrupts a write in progress.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, message: str = "Operation cancelled") -> None:
        if self._event.is_set():
            raise OperationCancelledError(message)
