from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Dict, List

from .storage import TimerStorage

MAX_STREAK_LOOKBACK_DAYS = 366


@dataclass
class DayData:
    key: str
    label: str
    minutes: int
    is_today: bool


def _parse_day(day_key: str) -> datetime.date:
    return datetime.date.fromisoformat(day_key)


def today_minutes(storage: TimerStorage, today: str) -> int:
    return storage.get_daily_minutes(today)


def current_streak(storage: TimerStorage, today: str) -> int:
    if storage.get_daily_minutes(today) == 0:
        return 0
    day = _parse_day(today)
    streak = 0
    for _ in range(MAX_STREAK_LOOKBACK_DAYS):
        if storage.get_daily_minutes(day.isoformat()) <= 0:
            break
        streak += 1
        day -= datetime.timedelta(days=1)
    return streak


def last_7_days(storage: TimerStorage, today: str) -> List[DayData]:
    end = _parse_day(today)
    days: List[DayData] = []
    for offset in range(6, -1, -1):
        day = end - datetime.timedelta(days=offset)
        key = day.isoformat()
        days.append(
            DayData(
                key=key,
                label=f"{day.strftime('%a')} {day.day}",
                minutes=storage.get_daily_minutes(key),
                is_today=key == today,
            )
        )
    return days


def week_minutes(storage: TimerStorage, today: str) -> int:
    return sum(day.minutes for day in last_7_days(storage, today))


def format_minutes(minutes: int) -> str:
    minutes = max(0, int(minutes))
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    return f"{hours} h {rest} min"


def build_summary(storage: TimerStorage, today: str) -> Dict[str, Any]:
    minutes_today = today_minutes(storage, today)
    return {
        "total_sessions": storage.total_sessions,
        "today_minutes": minutes_today,
        "today_text": format_minutes(minutes_today),
        "streak_days": current_streak(storage, today),
        "last_completion_date": storage.last_completion_date,
        "last_7_days": [
            {"key": d.key, "label": d.label, "minutes": d.minutes, "is_today": d.is_today}
            for d in last_7_days(storage, today)
        ],
    }
