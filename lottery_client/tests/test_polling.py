import asyncio
import unittest

from lottery_client.errors import ReadFailed
from lottery_client.polling import PollingScheduler


class FlakyRefresh:
    def __init__(self, failures: int = 0, error: Exception = ReadFailed("rpc timeout")) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return True


class PollingSchedulerTests(unittest.TestCase):
    def test_failures_do_not_stop_the_interval(self) -> None:
        scheduler = PollingScheduler()
        expected_failure = FlakyRefresh(failures=2)
        crash = FlakyRefresh(failures=1, error=RuntimeError("boom"))

        async def scenario():
            scheduler.every("count", 0.005, expected_failure)
            scheduler.every("winner", 0.005, crash)
            await asyncio.sleep(0.08)
            running = sorted(scheduler.names)
            await scheduler.cancel_all()
            return running

        running = asyncio.run(scenario())

        self.assertEqual(running, ["count", "winner"])
        self.assertGreater(expected_failure.calls, 2)
        self.assertGreater(crash.calls, 1)

    def test_first_tick_waits_one_interval(self) -> None:
        scheduler = PollingScheduler()
        refresh = FlakyRefresh()

        async def scenario():
            scheduler.every("slow", 10, refresh)
            await asyncio.sleep(0.01)
            await scheduler.cancel_all()

        asyncio.run(scenario())

        self.assertEqual(refresh.calls, 0)

    def test_rescheduling_a_name_replaces_the_old_task(self) -> None:
        scheduler = PollingScheduler()

        async def scenario():
            first = scheduler.every("winner", 10, FlakyRefresh())
            second = scheduler.every("winner", 10, FlakyRefresh())
            await asyncio.sleep(0.01)
            state = (first.cancelled(), second.done(), scheduler.names)
            await scheduler.cancel_all()
            return state

        first_cancelled, second_done, names = asyncio.run(scenario())

        self.assertTrue(first_cancelled)
        self.assertFalse(second_done)
        self.assertEqual(names, ["winner"])

    def test_once_runs_a_single_time(self) -> None:
        scheduler = PollingScheduler()
        refresh = FlakyRefresh(failures=1)

        async def scenario():
            await scheduler.once("has-entered", refresh)
            await asyncio.sleep(0.01)
            return scheduler.is_running("has-entered")

        self.assertFalse(asyncio.run(scenario()))
        self.assertEqual(refresh.calls, 1)

    def test_cancel_stops_only_the_named_task(self) -> None:
        scheduler = PollingScheduler()

        async def scenario():
            scheduler.every("winner", 10, FlakyRefresh())
            scheduler.every("entry-count", 10, FlakyRefresh())
            await scheduler.cancel("winner")
            state = (scheduler.is_running("winner"), scheduler.is_running("entry-count"))
            await scheduler.cancel_all()
            return state

        self.assertEqual(asyncio.run(scenario()), (False, True))


if __name__ == "__main__":
    unittest.main()
