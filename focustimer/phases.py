from __future__ import annotations

from enum import Enum


class TimerPhase(Enum):
    IDLE = "idle"
    FOCUS = "focus"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @classmethod
    def from_key(cls, key: str | None) -> "TimerPhase":
        for phase in cls:
            if phase.value == key:
                return phase
        return cls.IDLE

    @property
    def key(self) -> str:
        return self.value

    @property
    def is_focus(self) -> bool:
        return self is TimerPhase.FOCUS

    @property
    def is_break(self) -> bool:
        return self in (TimerPhase.SHORT_BREAK, TimerPhase.LONG_BREAK)
