from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict

from PySide6.QtCore import QObject, Signal

from .alarms import AlarmScheduler
from .clock import SystemClock, date_key
from .notifications import DndController, NullFeedback, NullNotifier
from .phases import TimerPhase
from .storage import MAX_SESSIONS_PER_ROUND, SessionRecord, TimerStorage
from .ticker import TickLoop

MINUTE_MS = 60_000
RESUME_LATE_THRESHOLD_MS = 60_000
RESUME_LATE_WINDOW_MS = 24 * 60 * 60 * 1000
MAX_RESET_MINUTES = 60


@dataclass(frozen=True)
class TimerState:
    phase: TimerPhase
    remaining_sec: int
    running: bool
    sessions_this_round: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.key,
            "remaining_sec": self.remaining_sec,
            "running": self.running,
            "sessions_this_round": self.sessions_this_round,
        }


def format_remaining(seconds: int) -> str:
    minutes, sec = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{sec:02d}"


class TimerEngine(QObject):
    """Focus / short break / long break state machine.

    Remaining time is always derived from the persisted absolute end time, so
    pauses, throttled ticks and process restarts never introduce drift. The
    persisted snapshot is the single source of truth shared by the tick loop
    and the completion alarm.
    """

    stateChanged = Signal(dict)

    def __init__(
        self,
        storage: TimerStorage,
        clock=None,
        ticker=None,
        alarms=None,
        notifier=None,
        dnd=None,
        feedback=None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._storage = storage
        self._clock = clock or SystemClock()
        self._ticker = ticker if ticker is not None else TickLoop(self._clock, self)
        self._alarms = alarms if alarms is not None else AlarmScheduler(self._clock, self)
        self._notifier = notifier or NullNotifier()
        self._dnd = dnd or DndController()
        self._feedback = feedback or NullFeedback()
        self._alarms.bind(self.handle_alarm)

        self._phase = TimerPhase.IDLE
        self._remaining_sec = 0
        self._running = False
        self._sessions_this_round = storage.get_sessions_this_round()
        self.restore(trigger_completion_if_expired=False)

    # Observable state

    @property
    def state(self) -> TimerState:
        return TimerState(
            phase=self._phase,
            remaining_sec=self._remaining_sec,
            running=self._running,
            sessions_this_round=self._sessions_this_round,
        )

    @property
    def phase(self) -> TimerPhase:
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, callback: Callable[[dict], None]) -> None:
        self.stateChanged.connect(callback)

    def _publish(self) -> None:
        self.stateChanged.emit(self.state.to_dict())

    def phase_duration_ms(self, phase: TimerPhase) -> int:
        return self._storage.phase_minutes(phase) * MINUTE_MS

    # Commands

    def start_phase(self, target: TimerPhase) -> None:
        if target is TimerPhase.IDLE:
            return
        self._ticker.stop()
        self._alarms.cancel()
        now = self._clock.now_ms()
        if target.is_focus:
            self._record_resume_late(now)
            self._dnd.enable_on_focus_start()
        duration_ms = self.phase_duration_ms(target)
        end_time_ms = now + duration_ms
        self._storage.persist_timer_state(target, end_time_ms, True)
        self._alarms.schedule_completion_at(end_time_ms)
        self._phase = target
        self._remaining_sec = duration_ms // 1000
        self._running = True
        self._sessions_this_round = self._storage.get_sessions_this_round()
        logging.info("phase started: %s until %s", target.key, end_time_ms)
        self._publish()
        self._start_ticking(target, end_time_ms)

    def pause(self) -> None:
        phase = self._phase
        end_time_ms = self._storage.load_timer_state().end_time_ms
        if phase is TimerPhase.IDLE or end_time_ms <= 0:
            return
        self._ticker.stop()
        self._alarms.cancel()
        if phase.is_focus:
            self._dnd.restore_on_focus_end()
        self._storage.persist_timer_state(phase, end_time_ms, False)
        self._running = False
        self._remaining_sec = self._remaining_ms(end_time_ms) // 1000
        logging.info("phase paused: %s remaining=%ss", phase.key, self._remaining_sec)
        self._publish()

    def resume(self) -> None:
        phase = self._phase
        end_time_ms = self._storage.load_timer_state().end_time_ms
        if phase is TimerPhase.IDLE or end_time_ms <= 0:
            return
        if self._running and self._ticker.is_ticking():
            return
        if self._remaining_ms(end_time_ms) <= 0:
            logging.info("resume after end time, completing %s", phase.key)
            self._complete(phase, end_time_ms)
            return
        if phase.is_focus:
            self._dnd.enable_on_focus_start()
        self._storage.set_timer_was_running(True)
        self._running = True
        self._alarms.schedule_completion_at(end_time_ms)
        logging.info("phase resumed: %s", phase.key)
        self._publish()
        self._start_ticking(phase, end_time_ms)

    def reset(self) -> None:
        phase = self._phase
        end_time_ms = self._storage.load_timer_state().end_time_ms
        self._ticker.stop()
        self._alarms.cancel()
        now = self._clock.now_ms()
        if phase.is_focus:
            self._dnd.restore_on_focus_end()
            start_ms = end_time_ms - self.phase_duration_ms(TimerPhase.FOCUS)
            elapsed_minutes = max(0, min(MAX_RESET_MINUTES, (now - start_ms) // MINUTE_MS))
            self._storage.add_focus_session_record(
                SessionRecord(timestamp_ms=now, duration_minutes=int(elapsed_minutes), completed=False)
            )
        elif phase.is_break:
            self._storage.add_break_outcome(True)
        self._storage.clear_timer_state()
        self._phase = TimerPhase.IDLE
        self._remaining_sec = 0
        self._running = False
        self._sessions_this_round = self._storage.get_sessions_this_round()
        logging.info("timer reset from %s", phase.key)
        self._publish()

    # Recovery

    def restore(self, trigger_completion_if_expired: bool) -> None:
        snapshot = self._storage.load_timer_state()
        self._sessions_this_round = self._storage.get_sessions_this_round()
        if snapshot.is_idle:
            self._ticker.stop()
            self._phase = TimerPhase.IDLE
            self._remaining_sec = 0
            self._running = False
            self._publish()
            return

        remaining_ms = self._remaining_ms(snapshot.end_time_ms)
        if remaining_ms <= 0 and trigger_completion_if_expired:
            logging.info("catch-up completion for %s", snapshot.phase.key)
            self._phase = snapshot.phase
            self._complete(snapshot.phase, snapshot.end_time_ms)
            return

        self._ticker.stop()
        self._phase = snapshot.phase
        self._remaining_sec = remaining_ms // 1000
        self._running = False
        if snapshot.was_running:
            self._alarms.schedule_completion_at(snapshot.end_time_ms)
        logging.info(
            "timer restored: %s remaining=%ss was_running=%s",
            snapshot.phase.key,
            self._remaining_sec,
            snapshot.was_running,
        )
        self._publish()

    def on_app_pause(self) -> None:
        if self._running:
            self._ticker.stop()
            self._storage.set_timer_was_running(True)

    def on_app_resume(self) -> None:
        self.restore(trigger_completion_if_expired=True)

    def handle_alarm(self, end_time_ms: int) -> None:
        snapshot = self._storage.load_timer_state()
        if snapshot.is_idle or snapshot.end_time_ms != end_time_ms or not snapshot.was_running:
            logging.debug("stale alarm ignored: %s", end_time_ms)
            return
        if self._clock.now_ms() < end_time_ms:
            logging.debug("early alarm ignored: %s", end_time_ms)
            return
        self._phase = snapshot.phase
        self._complete(snapshot.phase, end_time_ms)

    # Internals

    def _remaining_ms(self, end_time_ms: int) -> int:
        return max(0, int(end_time_ms) - self._clock.now_ms())

    def _start_ticking(self, phase: TimerPhase, end_time_ms: int) -> None:
        def on_tick(remaining_ms: int) -> None:
            self._remaining_sec = max(0, remaining_ms // 1000)
            self._storage.set_timer_end_time(end_time_ms)
            self._publish()

        self._ticker.start(end_time_ms, on_tick, lambda: self._complete(phase, end_time_ms))

    def _record_resume_late(self, now: int) -> None:
        break_ended_at = self._storage.break_ended_at_ms
        if break_ended_at <= 0:
            return
        elapsed = now - break_ended_at
        if elapsed <= RESUME_LATE_WINDOW_MS:
            self._storage.add_resume_late_outcome(elapsed > RESUME_LATE_THRESHOLD_MS)
        self._storage.break_ended_at_ms = 0

    def _record_focus_completion(self, now: int) -> None:
        minutes = max(1, self._storage.focus_minutes)
        today = date_key(now)
        self._storage.total_sessions = self._storage.total_sessions + 1
        self._storage.add_daily_minutes(today, minutes)
        self._storage.last_completion_date = today
        self._storage.increment_sessions_this_round()
        self._storage.add_focus_session_record(
            SessionRecord(timestamp_ms=now, duration_minutes=minutes, completed=True)
        )

    def _complete(self, completed: TimerPhase, end_time_ms: int) -> None:
        snapshot = self._storage.load_timer_state()
        if snapshot.is_idle or snapshot.phase is not completed or snapshot.end_time_ms != end_time_ms:
            logging.debug("completion for %s already handled", completed.key)
            return
        self._ticker.stop()
        self._alarms.cancel()
        now = self._clock.now_ms()
        if completed.is_focus:
            self._record_focus_completion(now)
            self._dnd.restore_on_focus_end()
        elif completed.is_break:
            self._storage.add_break_outcome(False)
            self._storage.break_ended_at_ms = now
        self._feedback.play_completion_sound_if_enabled()
        self._feedback.vibrate_if_enabled()
        if completed.is_focus:
            self._notifier.show_focus_ended()
        else:
            self._notifier.show_break_ended()
        self._storage.clear_timer_state()
        self._phase = TimerPhase.IDLE
        self._remaining_sec = 0
        self._running = False
        sessions = self._storage.get_sessions_this_round()
        logging.info("phase completed: %s sessions_this_round=%s", completed.key, sessions)

        if completed is TimerPhase.LONG_BREAK:
            self._storage.reset_sessions_this_round()
        if self._storage.get_config().auto_start_next:
            if completed.is_focus:
                if sessions >= MAX_SESSIONS_PER_ROUND:
                    self.start_phase(TimerPhase.LONG_BREAK)
                else:
                    self.start_phase(TimerPhase.SHORT_BREAK)
            else:
                self.start_phase(TimerPhase.FOCUS)
            return
        self._sessions_this_round = self._storage.get_sessions_this_round()
        self._publish()
