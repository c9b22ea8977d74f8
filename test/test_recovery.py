import tempfile
import unittest

from fakes import EngineHarness, ts_ms
from focustimer.phases import TimerPhase

T0 = ts_ms("2026-01-15", 9)
MINUTE = 60_000


class RecoveryTests(unittest.TestCase):
    def test_cold_start_without_snapshot_is_idle(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0)
            state = h.engine.state
            self.assertEqual(state.phase, TimerPhase.IDLE)
            self.assertEqual(state.remaining_sec, 0)
            self.assertFalse(state.running)

    def test_cold_start_restores_paused_display(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0)
            h.engine.start_phase(TimerPhase.FOCUS)
            h.clock.advance(10 * MINUTE)
            engine = h.reopen()
            self.assertEqual(engine.phase, TimerPhase.FOCUS)
            self.assertFalse(engine.is_running)
            self.assertEqual(engine.state.remaining_sec, 15 * 60)
            self.assertEqual(h.ticker.starts, 0)

    def test_cold_start_rearms_alarm_for_running_snapshot(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0)
            h.engine.start_phase(TimerPhase.FOCUS)
            h.clock.advance(MINUTE)
            h.reopen()
            self.assertEqual(h.alarms.scheduled, T0 + 25 * MINUTE)

    def test_cold_start_keeps_paused_snapshot_unarmed(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0)
            h.engine.start_phase(TimerPhase.FOCUS)
            h.engine.pause()
            h.reopen()
            self.assertIsNone(h.alarms.scheduled)

    def test_cold_start_past_end_time_does_not_complete(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0, auto_start_next=False)
            h.engine.start_phase(TimerPhase.FOCUS)
            h.clock.advance(40 * MINUTE)
            engine = h.reopen()
            self.assertEqual(engine.phase, TimerPhase.FOCUS)
            self.assertEqual(engine.state.remaining_sec, 0)
            self.assertEqual(h.storage.total_sessions, 0)

    def test_cold_start_past_end_time_arms_alarm_that_completes(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0, auto_start_next=False)
            h.engine.start_phase(TimerPhase.FOCUS)
            h.clock.advance(40 * MINUTE)
            engine = h.reopen()
            self.assertEqual(h.alarms.scheduled, T0 + 25 * MINUTE)
            self.assertFalse(engine.is_running)
            h.alarms.fire(T0 + 25 * MINUTE)
            self.assertEqual(engine.phase, TimerPhase.IDLE)
            self.assertEqual(h.storage.total_sessions, 1)
            records = h.storage.get_recent_focus_sessions()
            self.assertEqual([(r.duration_minutes, r.completed) for r in records], [(25, True)])
            engine.reset()
            self.assertEqual(len(h.storage.get_recent_focus_sessions()), 1)

    def test_pause_after_app_resume_restores_dnd(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0)
            h.engine.start_phase(TimerPhase.FOCUS)
            h.engine.on_app_pause()
            h.clock.advance(MINUTE)
            h.engine.on_app_resume()
            self.assertFalse(h.engine.is_running)
            self.assertTrue(h.dnd.active)
            h.engine.pause()
            self.assertFalse(h.dnd.active)
            self.assertEqual(h.dnd.events, ["enable", "restore"])
            self.assertFalse(h.storage.load_timer_state().was_running)

    def test_resume_catch_up_completion_runs_once(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0, auto_start_next=False)
            h.engine.start_phase(TimerPhase.FOCUS)
            h.engine.on_app_pause()
            h.clock.advance(40 * MINUTE)
            engine = h.reopen()
            engine.on_app_resume()
            engine.on_app_resume()
            self.assertEqual(h.storage.total_sessions, 1)
            records = h.storage.get_recent_focus_sessions()
            self.assertEqual(len(records), 1)
            self.assertTrue(records[0].completed)
            self.assertEqual(engine.phase, TimerPhase.IDLE)
            self.assertEqual(h.notifier.events, ["focus_ended"])

    def test_resume_catch_up_auto_advances(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0, auto_start_next=True)
            h.engine.start_phase(TimerPhase.FOCUS)
            h.engine.on_app_pause()
            h.clock.advance(30 * MINUTE)
            h.engine.on_app_resume()
            self.assertEqual(h.storage.total_sessions, 1)
            self.assertEqual(h.engine.phase, TimerPhase.SHORT_BREAK)
            self.assertTrue(h.engine.is_running)
            snapshot = h.storage.load_timer_state()
            self.assertEqual(snapshot.end_time_ms, h.clock.now + 5 * MINUTE)

    def test_resume_before_end_shows_paused(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0)
            h.engine.start_phase(TimerPhase.SHORT_BREAK)
            h.engine.on_app_pause()
            self.assertFalse(h.ticker.is_ticking())
            self.assertTrue(h.storage.load_timer_state().was_running)
            h.clock.advance(2 * MINUTE)
            h.engine.on_app_resume()
            self.assertEqual(h.engine.phase, TimerPhase.SHORT_BREAK)
            self.assertFalse(h.engine.is_running)
            self.assertEqual(h.engine.state.remaining_sec, 3 * 60)
            h.engine.resume()
            self.assertTrue(h.ticker.is_ticking())
            self.assertEqual(h.ticker.end_time_ms, T0 + 5 * MINUTE)

    def test_reset_after_restore_records_elapsed(self):
        with tempfile.TemporaryDirectory() as tmp:
            h = EngineHarness(tmp, T0)
            h.engine.start_phase(TimerPhase.FOCUS)
            h.clock.advance(12 * MINUTE)
            engine = h.reopen()
            engine.reset()
            records = h.storage.get_recent_focus_sessions()
            self.assertEqual(records[-1].duration_minutes, 12)
            self.assertFalse(records[-1].completed)


if __name__ == "__main__":
    unittest.main()
