from __future__ import annotations

from core.worker import Worker


class WorkerRegistry:
    """The fixed set of Workers, one per enabled NSX Manager.

    Sites are unique: registering a second Worker for the same site is a
    configuration error.
    """

    def __init__(self) -> None:
        self._workers: dict[str, Worker] = {}

    def register(self, worker: Worker) -> None:
        if worker.site in self._workers:
            raise ValueError(f"duplicate site {worker.site!r}")
        self._workers[worker.site] = worker

    @property
    def workers(self) -> list[Worker]:
        return list(self._workers.values())

    def __len__(self) -> int:
        return len(self._workers)
