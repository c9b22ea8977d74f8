from __future__ import annotations

import logging
import os
import sys

from PySide6.QtCore import Qt
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QMenu,
    QMessageBox,
    QSpinBox,
    QStyle,
    QSystemTrayIcon,
)

from .bridge import BackendBridge
from .notifications import DndController, FeedbackPlayer, TrayNotifier
from .phases import TimerPhase
from .settings import FOCUS_RANGE, LONG_BREAK_RANGE, SHORT_BREAK_RANGE
from .stats import format_minutes
from .storage import TimerStorage
from .timer import TimerEngine, format_remaining

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
LOG_DIR = os.path.join(BASE_DIR, "data")
LOG_PATH = os.path.join(LOG_DIR, "focus_timer.log")

PHASE_LABELS = {
    TimerPhase.IDLE: "Idle",
    TimerPhase.FOCUS: "Focus",
    TimerPhase.SHORT_BREAK: "Short break",
    TimerPhase.LONG_BREAK: "Long break",
}


class SettingsDialog(QDialog):
    def __init__(self, settings: dict, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Timer settings")
        form = QFormLayout(self)

        self.focus_spin = QSpinBox()
        self.focus_spin.setRange(*FOCUS_RANGE)
        self.focus_spin.setSuffix(" min")

        self.short_spin = QSpinBox()
        self.short_spin.setRange(*SHORT_BREAK_RANGE)
        self.short_spin.setSuffix(" min")

        self.long_spin = QSpinBox()
        self.long_spin.setRange(*LONG_BREAK_RANGE)
        self.long_spin.setSuffix(" min")

        self.auto_start_check = QCheckBox("Start the next phase automatically")
        self.sound_check = QCheckBox("Play a sound when a phase ends")
        self.vibration_check = QCheckBox("Vibrate when a phase ends")

        form.addRow("Focus", self.focus_spin)
        form.addRow("Short break", self.short_spin)
        form.addRow("Long break", self.long_spin)
        form.addRow(self.auto_start_check)
        form.addRow(self.sound_check)
        form.addRow(self.vibration_check)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        form.addRow(buttons)

        self.focus_spin.setValue(int(settings["focus_minutes"]))
        self.short_spin.setValue(int(settings["short_break_minutes"]))
        self.long_spin.setValue(int(settings["long_break_minutes"]))
        self.auto_start_check.setChecked(bool(settings["auto_start_next"]))
        self.sound_check.setChecked(bool(settings["sound_enabled"]))
        self.vibration_check.setChecked(bool(settings["vibration_enabled"]))

    def get_values(self) -> dict:
        return {
            "focus_minutes": int(self.focus_spin.value()),
            "short_break_minutes": int(self.short_spin.value()),
            "long_break_minutes": int(self.long_spin.value()),
            "auto_start_next": bool(self.auto_start_check.isChecked()),
            "sound_enabled": bool(self.sound_check.isChecked()),
            "vibration_enabled": bool(self.vibration_check.isChecked()),
        }


def main() -> None:
    os.makedirs(LOG_DIR, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH, encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )
    logging.info("app start")

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)

    tray = QSystemTrayIcon(app.style().standardIcon(QStyle.StandardPixmap.SP_BrowserReload))
    tray.setToolTip("Focus timer")

    storage = TimerStorage()
    timer = TimerEngine(
        storage,
        notifier=TrayNotifier(tray),
        dnd=DndController(),
        feedback=FeedbackPlayer(storage),
    )
    bridge = BackendBridge(storage, timer)

    menu = QMenu()
    status_action = menu.addAction("Idle")
    status_action.setEnabled(False)
    menu.addSeparator()
    focus_action = menu.addAction("Start focus")
    focus_action.triggered.connect(bridge.startFocus)
    short_action = menu.addAction("Start short break")
    short_action.triggered.connect(lambda: bridge.startPhase(TimerPhase.SHORT_BREAK.key))
    long_action = menu.addAction("Start long break")
    long_action.triggered.connect(lambda: bridge.startPhase(TimerPhase.LONG_BREAK.key))
    pause_action = menu.addAction("Pause")
    pause_action.triggered.connect(bridge.pauseTimer)
    resume_action = menu.addAction("Resume")
    resume_action.triggered.connect(bridge.resumeTimer)
    reset_action = menu.addAction("Reset")
    reset_action.triggered.connect(bridge.resetTimer)
    menu.addSeparator()

    def show_stats() -> None:
        try:
            stats = bridge.getStats()
            rec = bridge.getRecommendation()
            lines = [
                f"Total focus sessions: {stats['total_sessions']}",
                f"Today: {stats['today_text']}",
                f"Streak: {stats['streak_days']} days",
                "",
            ]
            lines.extend(f"{d['label']}: {format_minutes(d['minutes'])}" for d in stats["last_7_days"])
            if rec["message"]:
                lines.extend(["", rec["message"]])
            msg = QMessageBox()
            msg.setIcon(QMessageBox.Information)
            msg.setWindowTitle("Focus stats")
            msg.setText("\n".join(lines))
            apply_button = None
            if rec["message"]:
                apply_button = msg.addButton("Apply suggestion", QMessageBox.AcceptRole)
            msg.addButton(QMessageBox.Close)
            msg.exec()
            if apply_button is not None and msg.clickedButton() is apply_button:
                bridge.applyRecommendation()
        except Exception as exc:
            logging.exception("show stats failed: %s", exc)

    menu.addAction("Statistics", show_stats)

    def open_settings() -> None:
        dialog = SettingsDialog(bridge.getSettings())
        if dialog.exec() == QDialog.Accepted:
            bridge.setSettings(dialog.get_values())

    menu.addAction("Settings", open_settings)
    menu.addSeparator()
    exit_action = menu.addAction("Quit")
    exit_action.triggered.connect(lambda: (logging.info("exit requested"), tray.hide(), app.quit()))

    def render(state: dict) -> None:
        phase = TimerPhase.from_key(state.get("phase"))
        running = bool(state.get("running"))
        label = PHASE_LABELS[phase]
        if phase is not TimerPhase.IDLE:
            label = f"{label} {state.get('remaining_text', '')}"
            if not running:
                label += " (paused)"
        status_action.setText(label)
        tray.setToolTip(f"Focus timer: {label}")
        pause_action.setEnabled(phase is not TimerPhase.IDLE and running)
        resume_action.setEnabled(phase is not TimerPhase.IDLE and not running)
        reset_action.setEnabled(phase is not TimerPhase.IDLE)

    bridge.timerUpdated.connect(render)
    initial = dict(bridge.getInitialState())
    initial["remaining_text"] = format_remaining(initial.get("remaining_sec", 0))
    render(initial)

    suspended = False

    def on_application_state(state) -> None:
        nonlocal suspended
        if state == Qt.ApplicationActive and suspended:
            suspended = False
            timer.on_app_resume()
        elif state in (Qt.ApplicationSuspended, Qt.ApplicationHidden) and not suspended:
            suspended = True
            timer.on_app_pause()

    QGuiApplication.instance().applicationStateChanged.connect(on_application_state)

    tray.setContextMenu(menu)
    tray.show()
    logging.info("tray shown")

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
