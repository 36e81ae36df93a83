import asyncio

import pytest

from supply_api.services.sweeper import PeriodicSweeper


class TestPeriodicSweeper:
    def test_run_once_runs_every_job(self):
        sweeper = PeriodicSweeper(interval=30)
        sweeper.register("a", lambda: 1)
        sweeper.register("b", lambda: 2)

        assert sweeper.run_once() == {"a": 1, "b": 2}
        assert sweeper.cycles == 1

    def test_failing_job_does_not_stop_others(self):
        sweeper = PeriodicSweeper(interval=30)

        def broken():
            raise RuntimeError("bad cycle")

        sweeper.register("broken", broken)
        sweeper.register("ok", lambda: "done")

        assert sweeper.run_once() == {"ok": "done"}
        assert sweeper.failures == 1

    @pytest.mark.asyncio
    async def test_loop_keeps_running_after_failures(self):
        ticks = []

        async def fast_sleep(_interval):
            await asyncio.sleep(0)

        def flaky():
            ticks.append(len(ticks))
            if len(ticks) % 2:
                raise ValueError("odd cycle")

        sweeper = PeriodicSweeper(interval=30, sleep=fast_sleep)
        sweeper.register("flaky", flaky)
        sweeper.start()
        for _ in range(50):
            if sweeper.cycles >= 4:
                break
            await asyncio.sleep(0)

        assert sweeper.running
        await sweeper.stop()

        assert sweeper.cycles >= 4
        assert sweeper.failures >= 2
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        sweeper = PeriodicSweeper(interval=30)
        sweeper.start()
        sweeper.start()

        await sweeper.stop()
        await sweeper.stop()

        assert not sweeper.running
