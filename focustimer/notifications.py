from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtWidgets import QApplication, QSystemTrayIcon

FOCUS_ENDED_TITLE = "Focus ended"
FOCUS_ENDED_BODY = "Nice work. Time for a break."
BREAK_ENDED_TITLE = "Break ended"
BREAK_ENDED_BODY = "Ready for the next focus session?"


class NullNotifier:
    def show_focus_ended(self) -> None:
        logging.info("notification: %s", FOCUS_ENDED_TITLE)

    def show_break_ended(self) -> None:
        logging.info("notification: %s", BREAK_ENDED_TITLE)


class TrayNotifier:
    """Phase-ended messages through a QSystemTrayIcon balloon."""

    def __init__(self, tray, timeout_ms: int = 3000) -> None:
        self._tray = tray
        self._timeout_ms = timeout_ms

    def _show(self, title: str, body: str) -> None:
        try:
            if not QSystemTrayIcon.supportsMessages():
                logging.warning("tray messages unsupported, skipped: %s", title)
                return
            self._tray.showMessage(title, body, QSystemTrayIcon.Information, self._timeout_ms)
        except Exception as exc:
            logging.warning("notification failed: %s", exc)

    def show_focus_ended(self) -> None:
        self._show(FOCUS_ENDED_TITLE, FOCUS_ENDED_BODY)

    def show_break_ended(self) -> None:
        self._show(BREAK_ENDED_TITLE, BREAK_ENDED_BODY)


class NullFeedback:
    def play_completion_sound_if_enabled(self) -> None:
        pass

    def vibrate_if_enabled(self) -> None:
        pass


class FeedbackPlayer:
    """Sound and vibration on phase completion, gated by the stored flags."""

    def __init__(self, storage, beep: Callable[[], None] | None = None, vibrate: Callable[[], None] | None = None) -> None:
        self._storage = storage
        self._beep = beep or _qt_beep
        self._vibrate = vibrate

    def play_completion_sound_if_enabled(self) -> None:
        if not self._storage.get_config().sound_enabled:
            return
        try:
            self._beep()
        except Exception as exc:
            logging.warning("completion sound failed: %s", exc)

    def vibrate_if_enabled(self) -> None:
        if not self._storage.get_config().vibration_enabled:
            return
        if self._vibrate is None:
            logging.debug("no vibration device")
            return
        try:
            self._vibrate()
        except Exception as exc:
            logging.warning("vibration failed: %s", exc)


def _qt_beep() -> None:
    QApplication.beep()


class DndController:
    """Do-not-disturb toggling around Focus phases.

    The platform hooks may raise (typically PermissionError when access was not
    granted); failures are logged and the timer keeps going.
    """

    def __init__(
        self,
        enable_hook: Callable[[], None] | None = None,
        restore_hook: Callable[[], None] | None = None,
    ) -> None:
        self._enable_hook = enable_hook
        self._restore_hook = restore_hook
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def enable_on_focus_start(self) -> None:
        if self._active:
            return
        if self._enable_hook is not None:
            try:
                self._enable_hook()
            except Exception as exc:
                logging.warning("dnd enable failed: %s", exc)
                return
        self._active = True
        logging.info("dnd enabled")

    def restore_on_focus_end(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._restore_hook is not None:
            try:
                self._restore_hook()
            except Exception as exc:
                logging.warning("dnd restore failed: %s", exc)
                return
        logging.info("dnd restored")
