from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

FOCUS_RANGE = (1, 60)
SHORT_BREAK_RANGE = (1, 30)
LONG_BREAK_RANGE = (1, 60)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "focus_minutes": 25,
    "short_break_minutes": 5,
    "long_break_minutes": 15,
    "auto_start_next": True,
    "sound_enabled": True,
    "vibration_enabled": True,
}


def clamp_minutes(value: Any, bounds: tuple[int, int], default: int) -> int:
    low, high = bounds
    try:
        minutes = int(value)
    except (TypeError, ValueError, OverflowError):
        minutes = default
    return max(low, min(high, minutes))


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False
    return default


@dataclass(frozen=True)
class TimerConfig:
    focus_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    auto_start_next: bool = True
    sound_enabled: bool = True
    vibration_enabled: bool = True

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "TimerConfig":
        if not isinstance(settings, dict):
            settings = {}
        return cls(
            focus_minutes=clamp_minutes(
                settings.get("focus_minutes"), FOCUS_RANGE, DEFAULT_SETTINGS["focus_minutes"]
            ),
            short_break_minutes=clamp_minutes(
                settings.get("short_break_minutes"),
                SHORT_BREAK_RANGE,
                DEFAULT_SETTINGS["short_break_minutes"],
            ),
            long_break_minutes=clamp_minutes(
                settings.get("long_break_minutes"),
                LONG_BREAK_RANGE,
                DEFAULT_SETTINGS["long_break_minutes"],
            ),
            auto_start_next=_as_bool(settings.get("auto_start_next"), True),
            sound_enabled=_as_bool(settings.get("sound_enabled"), True),
            vibration_enabled=_as_bool(settings.get("vibration_enabled"), True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_settings(stored: Any, updates: Dict[str, Any] | None = None) -> Dict[str, Any]:
    """Merge updates over stored values over defaults, then clamp."""
    merged = DEFAULT_SETTINGS.copy()
    if isinstance(stored, dict):
        for key in DEFAULT_SETTINGS:
            if key in stored:
                merged[key] = stored[key]
    if isinstance(updates, dict):
        for key in DEFAULT_SETTINGS:
            if key in updates:
                merged[key] = updates[key]
    return TimerConfig.from_settings(merged).to_dict()
