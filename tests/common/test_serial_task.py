"""
SerialTask: at most one run in flight, one queued follow-up shared by all late callers.
"""

import asyncio

import pytest

from cmake_driver.common.serial import SerialTask


class TestSerialTask:
    @pytest.mark.asyncio
    async def test_single_run_returns_result(self):
        async def op():
            return 42

        task = SerialTask(op, name="single")
        assert await task.run() == 42
        assert not task.running
        assert not task.pending

    @pytest.mark.asyncio
    async def test_runs_never_overlap(self):
        active = 0
        peak = 0

        async def op():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return True

        task = SerialTask(op)
        await asyncio.gather(*(task.run() for _ in range(5)))
        assert peak == 1

    @pytest.mark.asyncio
    async def test_triggers_during_run_coalesce_into_one_follow_up(self):
        """Three triggers during an in-flight run cause exactly one more run."""
        calls = 0
        gate = asyncio.Event()

        async def op():
            nonlocal calls
            calls += 1
            current = calls
            if current == 1:
                await gate.wait()
            return current

        task = SerialTask(op)
        first = asyncio.create_task(task.run())
        await asyncio.sleep(0)
        assert task.running

        second = asyncio.create_task(task.run())
        third = asyncio.create_task(task.run())
        fourth = asyncio.create_task(task.run())
        await asyncio.sleep(0)
        assert task.pending

        gate.set()
        results = await asyncio.gather(first, second, third, fourth)

        assert results == [1, 2, 2, 2]
        assert calls == 2
        assert not task.pending

    @pytest.mark.asyncio
    async def test_queued_failure_reaches_every_sharer(self):
        calls = 0
        gate = asyncio.Event()

        async def op():
            nonlocal calls
            calls += 1
            if calls == 1:
                await gate.wait()
                return "ok"
            raise ValueError("broken reply")

        task = SerialTask(op)
        first = asyncio.create_task(task.run())
        await asyncio.sleep(0)
        second = asyncio.create_task(task.run())
        third = asyncio.create_task(task.run())
        await asyncio.sleep(0)

        gate.set()
        results = await asyncio.gather(first, second, third, return_exceptions=True)

        assert results[0] == "ok"
        assert isinstance(results[1], ValueError)
        assert isinstance(results[2], ValueError)
        assert calls == 2

    @pytest.mark.asyncio
    async def test_failure_does_not_wedge_the_slot(self):
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("first run fails")
            return calls

        task = SerialTask(op)
        with pytest.raises(RuntimeError):
            await task.run()
        assert await task.run() == 2

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_sharers(self):
        """The caller that queued the follow-up is cancelled while the first run holds the slot."""
        calls = 0
        gate = asyncio.Event()

        async def op():
            nonlocal calls
            calls += 1
            current = calls
            if current == 1:
                await gate.wait()
            return current

        task = SerialTask(op)
        first = asyncio.create_task(task.run())
        await asyncio.sleep(0)
        queuer = asyncio.create_task(task.run())
        await asyncio.sleep(0)
        sharer = asyncio.create_task(task.run())
        await asyncio.sleep(0)

        queuer.cancel()
        with pytest.raises(asyncio.CancelledError):
            await queuer

        gate.set()
        assert await first == 1
        assert await sharer == 2
        assert calls == 2
        assert not task.pending
