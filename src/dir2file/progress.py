from __future__ import annotations

import threading
from typing import Protocol

from dir2file.exceptions import ExportCancelledError


class ProgressReporter(Protocol):
    """Receives incremental progress of a long-running export."""

    def report(self, done: int, total: int, message: str) -> None: ...


class NullProgress:
    """Progress reporter that discards every report."""

    def report(self, done: int, total: int, message: str) -> None:
        pass


class CancellationToken:
    """Cooperative cancellation signal shared between a caller and one export.

    The export checks the token at every directory descent and before each
    file; :meth:`cancel` may be called from another thread (e.g. a signal handler).
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise when cancellation was requested.

        Raises:
            ExportCancelledError: if :meth:`cancel` has been called
        """
        if self._event.is_set():
            raise ExportCancelledError
