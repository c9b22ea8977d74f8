from __future__ import annotations

import logging

from PySide6.QtCore import QObject, Signal, Slot

from .clock import SystemClock, date_key
from .phases import TimerPhase
from .recommendation import recommend_from_storage
from .stats import build_summary
from .storage import TimerStorage
from .timer import TimerEngine, format_remaining


class BackendBridge(QObject):
    timerUpdated = Signal(dict)
    settingsUpdated = Signal(dict)
    statsUpdated = Signal(dict)
    recommendationUpdated = Signal(dict)

    def __init__(self, storage: TimerStorage, timer: TimerEngine, clock=None) -> None:
        super().__init__()
        self._storage = storage
        self._timer = timer
        self._clock = clock or SystemClock()
        self._last_state: dict = timer.state.to_dict()
        self._last_phase = timer.phase
        timer.subscribe(self._on_timer_state)

    def _on_timer_state(self, payload: dict) -> None:
        payload = dict(payload)
        payload["remaining_text"] = format_remaining(payload.get("remaining_sec", 0))
        self._last_state = payload
        self.timerUpdated.emit(payload)
        phase = TimerPhase.from_key(payload.get("phase"))
        if phase is not self._last_phase:
            logging.info("timer switch: %s -> %s", self._last_phase.key, phase.key)
            self._last_phase = phase
            self.statsUpdated.emit(self.getStats())

    @Slot(result=dict)
    def getInitialState(self) -> dict:
        return self._last_state

    @Slot()
    def startFocus(self) -> None:
        self._timer.start_phase(TimerPhase.FOCUS)

    @Slot(str)
    def startPhase(self, key: str) -> None:
        phase = TimerPhase.from_key(key)
        if phase is TimerPhase.IDLE:
            logging.warning("start ignored for phase key: %s", key)
            return
        self._timer.start_phase(phase)

    @Slot()
    def pauseTimer(self) -> None:
        self._timer.pause()

    @Slot()
    def resumeTimer(self) -> None:
        self._timer.resume()

    @Slot()
    def resetTimer(self) -> None:
        self._timer.reset()

    @Slot(result=dict)
    def getSettings(self) -> dict:
        return self._storage.get_settings()

    @Slot(dict)
    def setSettings(self, values: dict) -> None:
        self._storage.set_settings(values)
        current = self._storage.get_settings()
        logging.info("settings updated: %s", current)
        self.settingsUpdated.emit(current)

    @Slot(result=dict)
    def getStats(self) -> dict:
        return build_summary(self._storage, date_key(self._clock.now_ms()))

    @Slot(result=dict)
    def getRecommendation(self) -> dict:
        return recommend_from_storage(self._storage).to_dict()

    @Slot()
    def applyRecommendation(self) -> None:
        rec = recommend_from_storage(self._storage)
        values = {"focus_minutes": rec.recommended_focus_minutes}
        if rec.recommended_short_break_minutes is not None:
            values["short_break_minutes"] = rec.recommended_short_break_minutes
        logging.info("recommendation applied: %s", values)
        self.setSettings(values)
        self.recommendationUpdated.emit(recommend_from_storage(self._storage).to_dict())
