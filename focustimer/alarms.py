from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import QObject, QTimer

from .clock import SystemClock


class AlarmScheduler(QObject):
    """One-shot completion alarm at an absolute time.

    The handler receives the end time the alarm was scheduled for; it must
    re-validate timer state since a fire can arrive after the state changed.
    """

    def __init__(self, clock=None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._clock = clock or SystemClock()
        self._handler: Callable[[int], None] | None = None
        self._scheduled_ms = 0
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)

    def bind(self, handler: Callable[[int], None]) -> None:
        self._handler = handler

    @property
    def scheduled_ms(self) -> int:
        return self._scheduled_ms

    def is_scheduled(self) -> bool:
        return self._timer.isActive()

    def schedule_completion_at(self, end_time_ms: int) -> None:
        self._timer.stop()
        self._scheduled_ms = int(end_time_ms)
        delay = max(0, self._scheduled_ms - self._clock.now_ms())
        self._timer.start(delay)
        logging.debug("alarm scheduled at %s (in %s ms)", self._scheduled_ms, delay)

    def cancel(self) -> None:
        self._timer.stop()
        self._scheduled_ms = 0

    def _fire(self) -> None:
        end_time_ms = self._scheduled_ms
        self._scheduled_ms = 0
        if self._handler is None or end_time_ms <= 0:
            return
        logging.info("alarm fired for end time %s", end_time_ms)
        self._handler(end_time_ms)
