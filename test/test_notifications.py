import os
import tempfile
import unittest
from unittest import mock

from focustimer.notifications import (
    FOCUS_ENDED_TITLE,
    DndController,
    FeedbackPlayer,
    TrayNotifier,
)
from focustimer.storage import TimerStorage


class DndControllerTests(unittest.TestCase):
    def test_enable_and_restore_once(self):
        calls = []
        dnd = DndController(lambda: calls.append("on"), lambda: calls.append("off"))
        dnd.enable_on_focus_start()
        dnd.enable_on_focus_start()
        dnd.restore_on_focus_end()
        dnd.restore_on_focus_end()
        self.assertEqual(calls, ["on", "off"])
        self.assertFalse(dnd.active)

    def test_permission_denied_is_swallowed(self):
        def denied():
            raise PermissionError("dnd access not granted")

        dnd = DndController(denied, denied)
        with self.assertLogs(level="WARNING"):
            dnd.enable_on_focus_start()
        self.assertFalse(dnd.active)
        dnd.restore_on_focus_end()


class FeedbackPlayerTests(unittest.TestCase):
    def test_respects_flags(self):
        with tempfile.TemporaryDirectory() as tmp:
            storage = TimerStorage(os.path.join(tmp, "focus_timer.json"))
            calls = []
            player = FeedbackPlayer(storage, beep=lambda: calls.append("beep"), vibrate=lambda: calls.append("buzz"))
            player.play_completion_sound_if_enabled()
            player.vibrate_if_enabled()
            storage.set_settings({"sound_enabled": False, "vibration_enabled": False})
            player.play_completion_sound_if_enabled()
            player.vibrate_if_enabled()
            self.assertEqual(calls, ["beep", "buzz"])

    def test_sound_failure_is_logged(self):
        with tempfile.TemporaryDirectory() as tmp:
            storage = TimerStorage(os.path.join(tmp, "focus_timer.json"))

            def broken():
                raise OSError("no audio device")

            player = FeedbackPlayer(storage, beep=broken)
            with self.assertLogs(level="WARNING"):
                player.play_completion_sound_if_enabled()


class FakeTray:
    def __init__(self, fail=False):
        self.messages = []
        self.fail = fail

    def showMessage(self, title, body, icon, timeout):
        if self.fail:
            raise RuntimeError("tray gone")
        self.messages.append((title, timeout))


class TrayNotifierTests(unittest.TestCase):
    @mock.patch("focustimer.notifications.QSystemTrayIcon")
    def test_shows_message_when_supported(self, tray_icon):
        tray_icon.supportsMessages.return_value = True
        tray = FakeTray()
        TrayNotifier(tray, timeout_ms=1500).show_focus_ended()
        self.assertEqual(tray.messages, [(FOCUS_ENDED_TITLE, 1500)])

    @mock.patch("focustimer.notifications.QSystemTrayIcon")
    def test_unsupported_or_failing_tray_is_logged(self, tray_icon):
        tray_icon.supportsMessages.return_value = False
        tray = FakeTray()
        with self.assertLogs(level="WARNING"):
            TrayNotifier(tray).show_break_ended()
        self.assertEqual(tray.messages, [])
        tray_icon.supportsMessages.return_value = True
        with self.assertLogs(level="WARNING"):
            TrayNotifier(FakeTray(fail=True)).show_focus_ended()


if __name__ == "__main__":
    unittest.main()
