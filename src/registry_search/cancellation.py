"""
Advisory cancellation for registry searches.

``requests`` calls cannot be interrupted, so a cancelled search still runs to
completion on the wire; the token makes sure its result is discarded.
"""

import threading


class SearchCancelled(Exception):
    """
    Raised when a search is abandoned because its token was cancelled.

    Callers treat this as a silent no-op, never as a user-facing error.
    """


class CancellationToken:
    """One token per search; cancelling it is permanent."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """
        :raises SearchCancelled: If :meth:`cancel` has been called.
        """
        if self._event.is_set():
            raise SearchCancelled("Registry search was cancelled")
