import unittest

from PySide6.QtCore import QCoreApplication

from fakes import FakeClock
from focustimer.alarms import AlarmScheduler
from focustimer.ticker import TickLoop


class QtTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = QCoreApplication.instance() or QCoreApplication([])


class TickLoopTests(QtTestCase):
    def test_first_tick_is_immediate(self):
        clock = FakeClock(1_000_000)
        loop = TickLoop(clock)
        ticks = []
        loop.start(1_000_000 + 90_000, ticks.append, lambda: None)
        self.assertEqual(ticks, [90_000])
        self.assertTrue(loop.is_ticking())
        loop.stop()
        self.assertFalse(loop.is_ticking())

    def test_tick_recomputes_after_delay(self):
        clock = FakeClock(0)
        loop = TickLoop(clock)
        ticks = []
        loop.start(60_000, ticks.append, lambda: None)
        clock.advance(37_500)
        loop._run()
        self.assertEqual(ticks, [60_000, 22_500])
        loop.stop()

    def test_completes_and_stops_at_end(self):
        clock = FakeClock(0)
        loop = TickLoop(clock)
        done = []
        loop.start(2_000, lambda ms: None, lambda: done.append(True))
        clock.advance(5_000)
        loop._run()
        loop._run()
        self.assertEqual(done, [True])
        self.assertFalse(loop.is_ticking())

    def test_stopped_loop_ignores_timeouts(self):
        clock = FakeClock(0)
        loop = TickLoop(clock)
        ticks = []
        loop.start(60_000, ticks.append, lambda: None)
        loop.stop()
        loop._run()
        self.assertEqual(ticks, [60_000])


class AlarmSchedulerTests(QtTestCase):
    def test_schedule_and_cancel(self):
        clock = FakeClock(10_000)
        alarms = AlarmScheduler(clock)
        alarms.schedule_completion_at(25_000)
        self.assertTrue(alarms.is_scheduled())
        self.assertEqual(alarms.scheduled_ms, 25_000)
        alarms.cancel()
        self.assertFalse(alarms.is_scheduled())
        self.assertEqual(alarms.scheduled_ms, 0)

    def test_fire_passes_end_time(self):
        clock = FakeClock(10_000)
        alarms = AlarmScheduler(clock)
        fired = []
        alarms.bind(fired.append)
        alarms.schedule_completion_at(25_000)
        alarms._fire()
        self.assertEqual(fired, [25_000])
        alarms._fire()
        self.assertEqual(fired, [25_000])
        alarms.cancel()


if __name__ == "__main__":
    unittest.main()
