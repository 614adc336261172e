from abc import ABC, abstractmethod
from typing import Callable

from PySide6 import QtCore


class ScheduledTask:
    """One-shot callback owned by whoever scheduled it. Cancel is idempotent."""

    def __init__(self, name: str, callback: Callable[[], None]):
        self.name = name
        self._callback = callback
        self._on_cancel: Callable[[], None] | None = None
        self.active = True

    def cancel(self):
        if not self.active:
            return
        self.active = False
        if self._on_cancel is not None:
            self._on_cancel()

    def fire(self):
        if not self.active:
            return
        self.active = False
        self._callback()

    def __repr__(self):
        state = "active" if self.active else "done"
        return f"<ScheduledTask {self.name} {state}>"


class TaskScheduler(ABC):
    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None], name: str = "task") -> ScheduledTask:
        ...


class QtTaskScheduler(TaskScheduler):
    def __init__(self, parent: QtCore.QObject | None = None):
        self._parent = parent
        # unparented QTimers are only kept alive by this set
        self._timers: set[QtCore.QTimer] = set()

    def call_later(self, delay_ms: int, callback: Callable[[], None], name: str = "task") -> ScheduledTask:
        task = ScheduledTask(name, callback)
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setTimerType(QtCore.Qt.PreciseTimer)

        def _dispose():
            timer.stop()
            self._timers.discard(timer)
            timer.deleteLater()

        def _timeout():
            _dispose()
            task.fire()

        task._on_cancel = _dispose
        timer.timeout.connect(_timeout)
        self._timers.add(timer)
        timer.start(max(0, int(delay_ms)))
        return task
