"""Rule-based focus and break duration suggestions.

Plain arithmetic over the most recent session records: completion rate,
rolling average and a handful of thresholds. No learned model is involved,
and the wording shown to the user says so ("based on your recent sessions").
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from .storage import SessionRecord, TimerStorage

MIN_FOCUS = 15
MAX_FOCUS = 45
STEP_MINUTES = 5
ROLLING_WINDOW = 7
HIGH_COMPLETION_THRESHOLD = 0.80
LOW_COMPLETION_THRESHOLD = 0.50
EARLY_STOP_COUNT_TO_REDUCE = 3
SHORT_AVG_MAX = 20
DEEP_AVG_MIN = 30
INCONSISTENT_STDDEV = 12

MIN_BREAK = 5
MAX_BREAK = 10
BREAK_SKIP_THRESHOLD = 0.40
RESUME_LATE_THRESHOLD = 0.50
BREAK_SKIP_STEP = 2
RESUME_LATE_STEP = 1


class FocusType(Enum):
    SHORT_FOCUS = "short_focus"
    DEEP_FOCUS = "deep_focus"
    INCONSISTENT = "inconsistent"


@dataclass(frozen=True)
class FocusRecommendation:
    recommended_focus_minutes: int
    message: str
    completion_rate_percent: int | None
    rolling_avg_minutes: float | None
    recommended_short_break_minutes: int | None = None

    def to_dict(self) -> dict:
        return {
            "recommended_focus_minutes": self.recommended_focus_minutes,
            "message": self.message,
            "completion_rate_percent": self.completion_rate_percent,
            "rolling_avg_minutes": self.rolling_avg_minutes,
            "recommended_short_break_minutes": self.recommended_short_break_minutes,
        }


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def round_half_away(numerator: int, denominator: int) -> int:
    """Round numerator/denominator to the nearest int, ties away from zero."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    magnitude = (2 * abs(numerator) + denominator) // (2 * denominator)
    return magnitude if numerator >= 0 else -magnitude


def formula_delta(completed: int, total: int) -> int:
    # round(0.6 * (completed / total - 0.5) * 10), kept in integers
    return round_half_away(3 * (2 * completed - total), total)


def population_stddev(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def classify(durations: Sequence[int], completion_rate: float) -> FocusType:
    rolling_avg = sum(durations) / len(durations) if durations else 0.0
    if population_stddev(durations) >= INCONSISTENT_STDDEV or completion_rate < LOW_COMPLETION_THRESHOLD:
        return FocusType.INCONSISTENT
    if rolling_avg < SHORT_AVG_MAX:
        return FocusType.SHORT_FOCUS
    if rolling_avg >= DEEP_AVG_MIN and completion_rate >= HIGH_COMPLETION_THRESHOLD:
        return FocusType.DEEP_FOCUS
    return FocusType.INCONSISTENT


def break_recommendation(
    break_skip_rate: float | None,
    resume_late_rate: float | None,
    current_short_break_minutes: int,
) -> int | None:
    if break_skip_rate is None and resume_late_rate is None:
        return None
    minutes = _clamp(int(current_short_break_minutes), MIN_BREAK, MAX_BREAK)
    if break_skip_rate is not None and break_skip_rate >= BREAK_SKIP_THRESHOLD:
        minutes = _clamp(minutes + BREAK_SKIP_STEP, MIN_BREAK, MAX_BREAK)
    if resume_late_rate is not None and resume_late_rate >= RESUME_LATE_THRESHOLD:
        minutes = _clamp(minutes - RESUME_LATE_STEP, MIN_BREAK, MAX_BREAK)
    return minutes


def build_message(recommended_minutes: int, focus_type: FocusType) -> str:
    if focus_type is FocusType.DEEP_FOCUS:
        return (
            f"Based on your recent sessions, you stay with long sessions. "
            f"{recommended_minutes} minutes works well for you."
        )
    if focus_type is FocusType.SHORT_FOCUS:
        return (
            f"Based on your recent sessions, shorter blocks suit you. "
            f"Try {recommended_minutes} minutes."
        )
    return (
        f"Based on your recent sessions, a steady {recommended_minutes} minutes "
        f"may be easier to finish."
    )


def recommend(
    recent_sessions: Sequence[SessionRecord],
    current_focus_minutes: int,
    break_skip_rate: float | None = None,
    resume_late_rate: float | None = None,
    current_short_break_minutes: int = 5,
) -> FocusRecommendation:
    window = list(recent_sessions)[-ROLLING_WINDOW:]
    break_minutes = break_recommendation(break_skip_rate, resume_late_rate, current_short_break_minutes)
    if not window:
        return FocusRecommendation(
            recommended_focus_minutes=current_focus_minutes,
            message="",
            completion_rate_percent=None,
            rolling_avg_minutes=None,
            recommended_short_break_minutes=break_minutes,
        )

    total = len(window)
    completed = sum(1 for r in window if r.completed)
    completion_rate = completed / total
    durations = [r.duration_minutes for r in window]
    rolling_avg = sum(durations) / total
    early_stops = total - completed

    base = _clamp(int(current_focus_minutes), MIN_FOCUS, MAX_FOCUS)
    if completion_rate >= HIGH_COMPLETION_THRESHOLD:
        base = min(base + STEP_MINUTES, MAX_FOCUS)
    elif completion_rate <= LOW_COMPLETION_THRESHOLD or early_stops >= EARLY_STOP_COUNT_TO_REDUCE:
        base = max(base - STEP_MINUTES, MIN_FOCUS)

    recommended = _clamp(base + formula_delta(completed, total), MIN_FOCUS, MAX_FOCUS)
    focus_type = classify(durations, completion_rate)

    return FocusRecommendation(
        recommended_focus_minutes=recommended,
        message=build_message(recommended, focus_type),
        completion_rate_percent=int(completion_rate * 100),
        rolling_avg_minutes=rolling_avg,
        recommended_short_break_minutes=break_minutes,
    )


def recommend_from_storage(storage: TimerStorage) -> FocusRecommendation:
    config = storage.get_config()
    return recommend(
        storage.get_recent_focus_sessions(),
        config.focus_minutes,
        break_skip_rate=storage.get_break_skip_rate(),
        resume_late_rate=storage.get_resume_late_rate(),
        current_short_break_minutes=config.short_break_minutes,
    )
