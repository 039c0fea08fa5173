from __future__ import annotations

import threading

from PySide6.QtCore import QObject, Signal


class BusyGuard:
    """Held while one logical operation is in flight. Release is idempotent."""

    def __init__(self, state: "BusyState"):
        self._state = state
        self._released = False
        self._lock = threading.Lock()

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self._state._end()

    def __enter__(self) -> "BusyGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class BusyState(QObject):
    busy_changed = Signal(bool)  # emitted on idle -> busy and busy -> idle only

    def __init__(self, parent=None):
        super().__init__(parent)
        self._count = 0
        self._lock = threading.Lock()

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._count > 0

    def begin(self) -> BusyGuard:
        with self._lock:
            self._count += 1
            became_busy = self._count == 1
        if became_busy:
            self.busy_changed.emit(True)
        return BusyGuard(self)

    def _end(self) -> None:
        with self._lock:
            if self._count == 0:
                return
            self._count -= 1
            became_idle = self._count == 0
        if became_idle:
            self.busy_changed.emit(False)
