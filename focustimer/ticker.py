from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import QObject, QTimer

from .clock import SystemClock

TICK_INTERVAL_MS = 1000


class TickLoop(QObject):
    """Periodic one-second callback loop driven by a QTimer.

    The loop never counts down on its own: each tick re-derives the remaining
    time from the absolute end timestamp, so late or missed ticks self-correct.
    """

    def __init__(self, clock=None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._clock = clock or SystemClock()
        self._end_time_ms = 0
        self._on_tick: Callable[[int], None] | None = None
        self._on_complete: Callable[[], None] | None = None
        self._timer = QTimer(self)
        self._timer.setInterval(TICK_INTERVAL_MS)
        self._timer.timeout.connect(self._run)

    def remaining_ms(self, end_time_ms: int) -> int:
        return max(0, int(end_time_ms) - self._clock.now_ms())

    def start(
        self,
        end_time_ms: int,
        on_tick: Callable[[int], None],
        on_complete: Callable[[], None],
    ) -> None:
        self.stop()
        self._end_time_ms = int(end_time_ms)
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._timer.start()
        self._run()

    def stop(self) -> None:
        self._timer.stop()
        self._on_tick = None
        self._on_complete = None

    def is_ticking(self) -> bool:
        return self._on_tick is not None

    def _run(self) -> None:
        if self._on_tick is None:
            return
        remaining = self.remaining_ms(self._end_time_ms)
        if remaining <= 0:
            on_complete = self._on_complete
            self.stop()
            logging.debug("tick loop reached end time %s", self._end_time_ms)
            if on_complete is not None:
                on_complete()
            return
        self._on_tick(remaining)
