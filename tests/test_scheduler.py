"""Tests for the tick-based Scheduler."""

import asyncio

import pytest

from core.registry import WorkerRegistry
from core.scheduler import Scheduler


class StubWorker:
    """Duck-typed Worker: counts cycles, optionally blocks or raises."""

    def __init__(self, site, gate=None, error=None, delay=0.0):
        self.site = site
        self.gate = gate
        self.error = error
        self.delay = delay
        self.started = 0
        self.finished = 0
        self.running = 0
        self.max_running = 0

    async def collect(self):
        self.started += 1
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
        finally:
            self.running -= 1
            self.finished += 1


def _registry(*workers):
    registry = WorkerRegistry()
    for w in workers:
        registry.register(w)
    return registry


async def _wait_until(predicate, timeout=1.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), timeout)


# =============================================================================
# Ticking
# =============================================================================


class TestTicks:
    @pytest.mark.asyncio
    async def test_first_tick_runs_immediately(self):
        w = StubWorker("dc1")
        stop = asyncio.Event()
        scheduler = Scheduler(_registry(w), interval=3600)

        run = asyncio.create_task(scheduler.run(stop))
        await _wait_until(lambda: w.finished == 1)
        stop.set()
        await asyncio.wait_for(run, 1.0)

        assert w.started == 1

    @pytest.mark.asyncio
    async def test_ticks_repeat_until_stopped(self):
        workers = [StubWorker(f"dc{i}") for i in range(3)]
        stop = asyncio.Event()
        scheduler = Scheduler(_registry(*workers), interval=0.01)

        run = asyncio.create_task(scheduler.run(stop))
        await _wait_until(lambda: all(w.finished >= 3 for w in workers))
        stop.set()
        await asyncio.wait_for(run, 1.0)

        assert all(w.started >= 3 for w in workers)

    @pytest.mark.asyncio
    async def test_next_tick_waits_for_slowest_worker(self):
        fast = StubWorker("fast")
        slow = StubWorker("slow", delay=0.05)
        stop = asyncio.Event()
        scheduler = Scheduler(_registry(fast, slow), interval=0.001)

        run = asyncio.create_task(scheduler.run(stop))
        await _wait_until(lambda: slow.finished >= 3)
        stop.set()
        await asyncio.wait_for(run, 1.0)

        assert slow.max_running == 1
        # Fast worker never gets ahead of the tick join.
        assert fast.started <= slow.started + 1

    @pytest.mark.asyncio
    async def test_stop_before_start_returns(self):
        w = StubWorker("dc1")
        stop = asyncio.Event()
        stop.set()

        await asyncio.wait_for(Scheduler(_registry(w), interval=1).run(stop), 1.0)

        assert w.started == 0


# =============================================================================
# Failures and cancellation
# =============================================================================


class TestIsolation:
    @pytest.mark.asyncio
    async def test_worker_exception_does_not_escape(self):
        broken = StubWorker("broken", error=RuntimeError("bug"))
        healthy = StubWorker("healthy")
        stop = asyncio.Event()
        scheduler = Scheduler(_registry(broken, healthy), interval=0.01)

        run = asyncio.create_task(scheduler.run(stop))
        await _wait_until(lambda: healthy.finished >= 2 and broken.finished >= 2)
        stop.set()

        assert await asyncio.wait_for(run, 1.0) is None

    @pytest.mark.asyncio
    async def test_stop_mid_tick_returns_without_waiting(self):
        gate = asyncio.Event()
        done_a = StubWorker("a")
        done_b = StubWorker("b")
        stuck = StubWorker("c", gate=gate)
        stop = asyncio.Event()
        scheduler = Scheduler(_registry(done_a, done_b, stuck), interval=3600)

        run = asyncio.create_task(scheduler.run(stop))
        await _wait_until(lambda: done_a.finished == 1 and done_b.finished == 1)
        assert stuck.running == 1

        stop.set()
        await asyncio.wait_for(run, 0.5)

        # The abandoned cycle keeps running in the background.
        assert stuck.finished == 0
        assert scheduler.inflight == 1

        gate.set()
        await _wait_until(lambda: scheduler.inflight == 0)
        assert stuck.finished == 1


class TestRegistry:
    def test_duplicate_site_rejected(self):
        registry = WorkerRegistry()
        registry.register(StubWorker("dc1"))

        with pytest.raises(ValueError):
            registry.register(StubWorker("dc1"))

        assert len(registry) == 1
