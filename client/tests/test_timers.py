import asyncio
import unittest

from chat_test_util import wait_until
from webim_client.timers import OneShotTimer, PeriodicTimer


class PeriodicTimerTests(unittest.IsolatedAsyncioTestCase):
    async def test_ticks_until_cancelled(self):
        ticks = []

        async def tick():
            ticks.append(asyncio.get_running_loop().time())

        timer = PeriodicTimer(0.02, tick, name="test")
        self.assertTrue(timer.start())
        await wait_until(lambda: len(ticks) >= 3)

        self.assertTrue(timer.cancel())
        self.assertFalse(timer.active)
        seen = len(ticks)
        await asyncio.sleep(0.08)
        self.assertEqual(len(ticks), seen)

    async def test_start_is_idempotent(self):
        async def tick():
            return None

        timer = PeriodicTimer(10, tick)
        self.assertTrue(timer.start())
        self.assertFalse(timer.start())
        self.assertTrue(timer.active)
        timer.cancel()
        self.assertFalse(timer.cancel())

    async def test_failing_callback_keeps_ticking(self):
        calls = []

        async def tick():
            calls.append(1)
            raise RuntimeError("boom")

        timer = PeriodicTimer(0.01, tick)
        timer.start()
        with self.assertLogs("webim_client.timers", level="ERROR"):
            await wait_until(lambda: len(calls) >= 2)
        timer.cancel()

    async def test_cancel_from_inside_callback_stops_loop(self):
        calls = []
        timer = None

        async def tick():
            calls.append(1)
            timer.cancel()

        timer = PeriodicTimer(0.01, tick)
        timer.start()
        await wait_until(lambda: len(calls) == 1)
        await asyncio.sleep(0.05)
        self.assertEqual(len(calls), 1)
        self.assertFalse(timer.active)

    def test_rejects_non_positive_interval(self):
        async def tick():
            return None

        with self.assertRaises(ValueError):
            PeriodicTimer(0, tick)


class OneShotTimerTests(unittest.IsolatedAsyncioTestCase):
    async def test_fires_once(self):
        calls = []

        async def fire():
            calls.append(1)

        timer = OneShotTimer(fire)
        self.assertTrue(timer.schedule(0.01))
        await wait_until(lambda: calls == [1])
        await asyncio.sleep(0.03)
        self.assertEqual(calls, [1])
        self.assertFalse(timer.active)

    async def test_second_schedule_while_pending_is_rejected(self):
        calls = []

        async def fire():
            calls.append(1)

        timer = OneShotTimer(fire)
        self.assertTrue(timer.schedule(0.02))
        self.assertFalse(timer.schedule(0.02))
        await wait_until(lambda: calls == [1])
        await asyncio.sleep(0.05)
        self.assertEqual(calls, [1])

    async def test_cancel_prevents_callback(self):
        calls = []

        async def fire():
            calls.append(1)

        timer = OneShotTimer(fire)
        timer.schedule(0.02)
        self.assertTrue(timer.cancel())
        await asyncio.sleep(0.05)
        self.assertEqual(calls, [])

    async def test_callback_may_rearm_the_timer(self):
        calls = []
        timer = None

        async def fire():
            calls.append(1)
            if len(calls) < 3:
                self.assertTrue(timer.schedule(0.01))

        timer = OneShotTimer(fire)
        timer.schedule(0.01)
        await wait_until(lambda: len(calls) == 3)
        self.assertFalse(timer.active)


if __name__ == "__main__":
    unittest.main()
