from __future__ import annotations

import asyncio
import logging

from core.registry import WorkerRegistry
from core.worker import Worker

log = logging.getLogger(__name__)

DEFAULT_INTERVAL = 40.0


class Scheduler:
    """Drives every registered Worker once per fixed interval.

    Each tick spawns one task per Worker and waits for all of them before
    the next tick is scheduled. The first tick runs immediately; later ticks
    start ``interval`` seconds after the previous one started, or at once if
    the previous tick overran.

    Setting the ``stop`` event ends ``run()`` promptly, even mid-tick. Tasks
    of an interrupted tick are not cancelled: they finish their fetches and
    their batch write in the background, so no write is cut in half.
    """

    def __init__(self, registry: WorkerRegistry, interval: float = DEFAULT_INTERVAL) -> None:
        self._registry = registry
        self._interval = interval
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def inflight(self) -> int:
        """Worker tasks spawned by this scheduler that have not finished."""
        return len(self._inflight)

    async def _run_worker(self, worker: Worker) -> None:
        try:
            await worker.collect()
        except Exception:
            log.exception("Worker %s cycle failed", worker.site)

    async def _run_tick(self, workers: list[Worker], stop: asyncio.Event) -> bool:
        """Run one tick; return False if ``stop`` fired before it finished."""
        pending: set[asyncio.Task[None]] = set()
        for w in workers:
            task = asyncio.create_task(self._run_worker(w), name=f"collect-{w.site}")
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            pending.add(task)

        stop_waiter = asyncio.create_task(stop.wait(), name="scheduler-stop")
        try:
            while pending:
                done, _ = await asyncio.wait(
                    pending | {stop_waiter},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                pending -= done
                if stop_waiter in done:
                    if pending:
                        log.info(
                            "Stop requested mid-tick, %d worker(s) left to finish",
                            len(pending),
                        )
                    return False
        finally:
            stop_waiter.cancel()
        return True

    async def run(self, stop: asyncio.Event) -> None:
        """Collect until ``stop`` is set, then return.

        Worker failures never propagate out of this method.
        """
        workers = self._registry.workers
        if not workers:
            log.warning("No workers registered")

        log.info(
            "Scheduler starting %d worker(s), interval=%ss",
            len(workers),
            self._interval,
        )

        loop = asyncio.get_running_loop()
        while not stop.is_set():
            tick_started = loop.time()
            if not await self._run_tick(workers, stop):
                break

            delay = max(0.0, self._interval - (loop.time() - tick_started))
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

        log.info("Scheduler shutting down")
