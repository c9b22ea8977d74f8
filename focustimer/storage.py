from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List

from .phases import TimerPhase
from .settings import (
    FOCUS_RANGE,
    LONG_BREAK_RANGE,
    SHORT_BREAK_RANGE,
    TimerConfig,
    clamp_minutes,
    normalize_settings,
)

MAX_SESSION_RECORDS = 30
MAX_OUTCOMES = 20
MAX_SESSIONS_PER_ROUND = 4


@dataclass(frozen=True)
class SessionRecord:
    timestamp_ms: int
    duration_minutes: int
    completed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp_ms": self.timestamp_ms,
            "duration_minutes": self.duration_minutes,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> "SessionRecord":
        completed = item["completed"]
        if not isinstance(completed, bool):
            raise ValueError(f"completed is not a bool: {completed!r}")
        return cls(
            timestamp_ms=int(item["timestamp_ms"]),
            duration_minutes=int(item["duration_minutes"]),
            completed=completed,
        )


@dataclass(frozen=True)
class TimerSnapshot:
    phase: TimerPhase
    end_time_ms: int = 0
    was_running: bool = False

    @property
    def is_idle(self) -> bool:
        return self.phase is TimerPhase.IDLE or self.end_time_ms <= 0


class TimerStorage:
    """JSON file holding configuration, the active timer snapshot and history.

    Every mutation is written through to disk before returning.
    """

    def __init__(self, path: str | None = None) -> None:
        base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
        self._path = path or os.path.join(base_dir, "data", "focus_timer.json")
        self._data: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        try:
            if os.path.exists(self._path):
                with open(self._path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._data = data if isinstance(data, dict) else {}
            logging.info("timer storage loaded: %s", self._path)
        except Exception as exc:
            logging.exception("timer storage read failed: %s", exc)
            self._data = {}

    def _save(self) -> None:
        try:
            os.makedirs(os.path.dirname(self._path), exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2)
        except Exception as exc:
            logging.exception("timer storage write failed: %s", exc)

    def _get_int(self, key: str, default: int = 0) -> int:
        try:
            return int(self._data.get(key, default))
        except (TypeError, ValueError, OverflowError):
            return default

    # Configuration

    def get_settings(self) -> Dict[str, Any]:
        return normalize_settings(self._data.get("settings"))

    def set_settings(self, values: Dict[str, Any]) -> None:
        if not isinstance(values, dict):
            return
        self._data["settings"] = normalize_settings(self._data.get("settings"), values)
        self._save()

    def get_config(self) -> TimerConfig:
        return TimerConfig.from_settings(self.get_settings())

    @property
    def focus_minutes(self) -> int:
        return self.get_config().focus_minutes

    @focus_minutes.setter
    def focus_minutes(self, value: int) -> None:
        self.set_settings({"focus_minutes": clamp_minutes(value, FOCUS_RANGE, 25)})

    @property
    def short_break_minutes(self) -> int:
        return self.get_config().short_break_minutes

    @short_break_minutes.setter
    def short_break_minutes(self, value: int) -> None:
        self.set_settings({"short_break_minutes": clamp_minutes(value, SHORT_BREAK_RANGE, 5)})

    @property
    def long_break_minutes(self) -> int:
        return self.get_config().long_break_minutes

    @long_break_minutes.setter
    def long_break_minutes(self, value: int) -> None:
        self.set_settings({"long_break_minutes": clamp_minutes(value, LONG_BREAK_RANGE, 15)})

    def phase_minutes(self, phase: TimerPhase) -> int:
        config = self.get_config()
        if phase is TimerPhase.FOCUS:
            return config.focus_minutes
        if phase is TimerPhase.SHORT_BREAK:
            return config.short_break_minutes
        if phase is TimerPhase.LONG_BREAK:
            return config.long_break_minutes
        return 0

    # Timer snapshot

    def load_timer_state(self) -> TimerSnapshot:
        timer = self._data.get("timer")
        if not isinstance(timer, dict):
            return TimerSnapshot(TimerPhase.IDLE)
        phase = TimerPhase.from_key(timer.get("phase"))
        if phase is TimerPhase.IDLE:
            return TimerSnapshot(TimerPhase.IDLE)
        try:
            end_time_ms = int(timer.get("end_time_ms", 0))
        except (TypeError, ValueError, OverflowError):
            end_time_ms = 0
        return TimerSnapshot(phase, end_time_ms, bool(timer.get("was_running", False)))

    def persist_timer_state(self, phase: TimerPhase, end_time_ms: int, was_running: bool) -> None:
        if phase is TimerPhase.IDLE:
            self.clear_timer_state()
            return
        self._data["timer"] = {
            "phase": phase.key,
            "end_time_ms": int(end_time_ms),
            "was_running": bool(was_running),
        }
        self._save()

    def set_timer_end_time(self, end_time_ms: int) -> None:
        timer = self._data.get("timer")
        if not isinstance(timer, dict):
            return
        timer["end_time_ms"] = int(end_time_ms)
        self._save()

    def set_timer_was_running(self, was_running: bool) -> None:
        timer = self._data.get("timer")
        if not isinstance(timer, dict):
            return
        timer["was_running"] = bool(was_running)
        self._save()

    def clear_timer_state(self) -> None:
        if self._data.pop("timer", None) is not None:
            self._save()

    # Round counter

    def get_sessions_this_round(self) -> int:
        return max(0, min(MAX_SESSIONS_PER_ROUND, self._get_int("sessions_this_round")))

    def increment_sessions_this_round(self) -> None:
        current = self.get_sessions_this_round()
        if current < MAX_SESSIONS_PER_ROUND:
            self._data["sessions_this_round"] = current + 1
            self._save()

    def reset_sessions_this_round(self) -> None:
        self._data["sessions_this_round"] = 0
        self._save()

    # Lifetime stats and daily ledger

    @property
    def total_sessions(self) -> int:
        return max(0, self._get_int("total_sessions"))

    @total_sessions.setter
    def total_sessions(self, value: int) -> None:
        self._data["total_sessions"] = max(0, int(value))
        self._save()

    @property
    def last_completion_date(self) -> str | None:
        value = self._data.get("last_completion_date")
        return value if isinstance(value, str) and value else None

    @last_completion_date.setter
    def last_completion_date(self, value: str | None) -> None:
        if value is None:
            return
        self._data["last_completion_date"] = str(value)
        self._save()

    def _daily_minutes(self) -> Dict[str, Any]:
        daily = self._data.get("daily_minutes")
        if not isinstance(daily, dict):
            daily = {}
            self._data["daily_minutes"] = daily
        return daily

    def get_daily_minutes(self, date_key: str) -> int:
        try:
            return max(0, int(self._daily_minutes().get(date_key, 0)))
        except (TypeError, ValueError, OverflowError):
            return 0

    def add_daily_minutes(self, date_key: str, minutes: int) -> None:
        if minutes <= 0:
            return
        daily = self._daily_minutes()
        daily[date_key] = self.get_daily_minutes(date_key) + int(minutes)
        self._save()

    # Session records

    def get_recent_focus_sessions(self) -> List[SessionRecord]:
        raw = self._data.get("session_records", [])
        if not isinstance(raw, list):
            logging.warning("session records malformed, discarding")
            self._data["session_records"] = []
            return []
        try:
            return [SessionRecord.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            logging.warning("session records malformed, discarding: %s", exc)
            self._data["session_records"] = []
            return []

    def add_focus_session_record(self, record: SessionRecord) -> None:
        records = self.get_recent_focus_sessions()
        records.append(record)
        self._data["session_records"] = [r.to_dict() for r in records[-MAX_SESSION_RECORDS:]]
        self._save()

    # Outcome sequences

    def _get_outcomes(self, key: str) -> List[bool]:
        raw = self._data.get(key, [])
        if not isinstance(raw, list) or not all(isinstance(v, bool) for v in raw):
            logging.warning("%s malformed, discarding", key)
            self._data[key] = []
            return []
        return list(raw)

    def _add_outcome(self, key: str, value: bool) -> None:
        outcomes = self._get_outcomes(key)
        outcomes.append(bool(value))
        self._data[key] = outcomes[-MAX_OUTCOMES:]
        self._save()

    @staticmethod
    def _rate(outcomes: List[bool]) -> float | None:
        if not outcomes:
            return None
        return sum(1 for v in outcomes if v) / len(outcomes)

    def get_break_outcomes(self) -> List[bool]:
        return self._get_outcomes("break_outcomes")

    def add_break_outcome(self, skipped: bool) -> None:
        self._add_outcome("break_outcomes", skipped)

    def get_break_skip_rate(self) -> float | None:
        return self._rate(self.get_break_outcomes())

    def get_resume_late_outcomes(self) -> List[bool]:
        return self._get_outcomes("resume_late_outcomes")

    def add_resume_late_outcome(self, late: bool) -> None:
        self._add_outcome("resume_late_outcomes", late)

    def get_resume_late_rate(self) -> float | None:
        return self._rate(self.get_resume_late_outcomes())

    # Break-ended marker

    @property
    def break_ended_at_ms(self) -> int:
        return max(0, self._get_int("break_ended_at_ms"))

    @break_ended_at_ms.setter
    def break_ended_at_ms(self, value: int) -> None:
        self._data["break_ended_at_ms"] = max(0, int(value))
        self._save()
